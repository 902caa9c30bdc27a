import logging
from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from app.models.payment import Payment
from app.schemas.payment import PaymentCreate
from app.core.errors import InvalidInput, NotFound, PersistenceFailure
from app.core.splits import money
from app.services.group_services import ensure_group_member, get_group_or_404, is_group_member
from app.services.user_service import get_user_by_id

logger = logging.getLogger(__name__)

async def record_payment(db: AsyncSession, payer_id: str, data: PaymentCreate):
    """Record a direct settlement from ``payer_id`` to ``data.payee_id``."""
    if data.payee_id == payer_id:
        raise InvalidInput("Cannot make payment to yourself", field="payee_id")

    amount = money(data.amount)

    payee = await get_user_by_id(db, data.payee_id)
    if not payee:
        raise NotFound("Payee not found", payee_id=data.payee_id)

    if data.group_id is not None:
        await get_group_or_404(db, data.group_id)

        payer_in = await is_group_member(db, data.group_id, payer_id)
        payee_in = await is_group_member(db, data.group_id, data.payee_id)
        if not (payer_in and payee_in):
            raise InvalidInput("Both users must be group members", group_id=data.group_id)

    payment = Payment(
        amount=amount,
        payer_id=payer_id,
        payee_id=data.payee_id,
        group_id=data.group_id
    )

    db.add(payment)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to record payment %s -> %s: %s", payer_id, data.payee_id, e)
        raise PersistenceFailure("Failed to record payment") from e

    logger.info("Payment %s recorded: %s -> %s, %s", payment.id, payer_id, data.payee_id, amount)
    return await _load_payment(db, payment.id)

async def _load_payment(db: AsyncSession, payment_id: str):
    q = (
        select(Payment)
        .where(Payment.id == payment_id)
        .options(selectinload(Payment.payer), selectinload(Payment.payee))
        .execution_options(populate_existing=True)
    )
    res = await db.execute(q)
    return res.scalar_one()

async def list_payments(db: AsyncSession, user_id: str, group_id: str | None = None):
    if group_id is not None:
        await ensure_group_member(db, group_id, user_id)

    q = (
        select(Payment)
        .where(or_(Payment.payer_id == user_id, Payment.payee_id == user_id))
        .options(selectinload(Payment.payer), selectinload(Payment.payee))
        .order_by(Payment.created_at.desc())
    )
    if group_id is not None:
        q = q.where(Payment.group_id == group_id)

    res = await db.execute(q)
    return res.scalars().all()
