from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.core.dependencies import get_current_user
from app.schemas.balances import OverallBalanceOut, CounterpartyBalance
from app.services.balance_services import overall_balance, detailed_balance

router = APIRouter()

@router.get("/overall", response_model=OverallBalanceOut)
async def overall(
    group_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await overall_balance(db, current_user.id, group_id=group_id)


@router.get("/detailed", response_model=list[CounterpartyBalance])
async def detailed(
    group_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await detailed_balance(db, current_user.id, group_id=group_id)
