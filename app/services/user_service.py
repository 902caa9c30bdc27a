import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select
from app.models.user import User
from app.schemas.user import UserCreate
from app.core.errors import Conflict, InvalidInput, PersistenceFailure
from app.core.security import hash_password, verify_password

logger = logging.getLogger(__name__)

async def get_user_by_email(db: AsyncSession, email:str):
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()

async def get_user_by_id(db: AsyncSession, id:str):
    result = await db.execute(select(User).where(User.id == id))
    return result.scalar_one_or_none()

async def get_usernames(db: AsyncSession, user_ids) -> dict[str, str]:
    if not user_ids:
        return {}
    result = await db.execute(select(User.id, User.username).where(User.id.in_(list(user_ids))))
    return {uid: name for uid, name in result.all()}

async def create_user(db: AsyncSession, data: UserCreate):
    username = data.username.strip()
    if not username or not data.password:
        raise InvalidInput("Username, email, and password are required")

    q = select(User.id).where((User.email == data.email) | (User.username == username))
    existing = await db.execute(q)
    if existing.first():
        raise Conflict("Email or username already taken")

    user = User(
        username = username,
        email = data.email,
        password_hash = hash_password(data.password)
    )

    db.add(user)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Signup failed for %s: %s", data.email, e)
        raise PersistenceFailure("Could not create user") from e

    await db.refresh(user)
    logger.info("User %s signed up", user.id)
    return user

async def authenticate_user(db:AsyncSession, email:str, password:str):
    user = await get_user_by_email(db, email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user
