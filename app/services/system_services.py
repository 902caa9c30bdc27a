import logging
from sqlalchemy import text
from app.db.session import engine

logger = logging.getLogger(__name__)

async def check_db_service():
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"db": True, "message": "Database is connected"}
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        return {"db": False, "error": type(e).__name__}

async def system_health():
    return {
        "status": "ok"
    }
