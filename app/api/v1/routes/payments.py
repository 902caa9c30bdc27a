from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.core.dependencies import get_current_user
from app.schemas.payment import PaymentCreate, PaymentOut
from app.services.payment_services import record_payment, list_payments

router = APIRouter()

@router.post("/", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
async def add_payment(
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await record_payment(db, current_user.id, data)

@router.get("/", response_model=list[PaymentOut])
async def my_payments(
    group_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await list_payments(db, current_user.id, group_id=group_id)
