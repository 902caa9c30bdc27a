"""
Balances derived on demand from the ledger of expenses, splits and payments.

Sign convention everywhere: positive means the user is owed money,
negative means the user owes money.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from app.core.config import settings
from app.core.utils import ZERO, SETTLED_EPSILON, qround
from app.models.expense import Expense
from app.models.expense_split import ExpenseSplit
from app.models.payment import Payment
from app.services.group_services import ensure_group_member, list_user_group_ids
from app.services.user_service import get_usernames

logger = logging.getLogger(__name__)

async def _sum(db: AsyncSession, q) -> Decimal:
    res = await db.execute(q)
    return Decimal(str(res.scalar() or 0))

async def overall_balance(
    db: AsyncSession,
    user_id: str,
    group_id: str | None = None
):
    """
    Scalar summary for one user, optionally limited to one group.

    net_balance = (total_paid + payments_received) - (total_owed + payments_made)
    """
    if group_id is not None:
        await ensure_group_member(db, group_id, user_id)

    paid_q = select(func.coalesce(func.sum(Expense.amount), 0)).where(Expense.paid_by == user_id)

    owed_q = (
        select(func.coalesce(func.sum(ExpenseSplit.amount_owed), 0))
        .join(Expense, Expense.id == ExpenseSplit.expense_id)
        .where(ExpenseSplit.user_id == user_id)
    )

    made_q = select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.payer_id == user_id)
    received_q = select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.payee_id == user_id)

    if group_id is not None:
        paid_q = paid_q.where(Expense.group_id == group_id)
        owed_q = owed_q.where(Expense.group_id == group_id)
        made_q = made_q.where(Payment.group_id == group_id)
        received_q = received_q.where(Payment.group_id == group_id)

    total_paid = qround(await _sum(db, paid_q))
    total_owed = qround(await _sum(db, owed_q))
    payments_made = qround(await _sum(db, made_q))
    payments_received = qround(await _sum(db, received_q))

    net = (total_paid + payments_received) - (total_owed + payments_made)

    logger.debug(
        "Overall balance for %s: paid=%s owed=%s made=%s received=%s net=%s",
        user_id, total_paid, total_owed, payments_made, payments_received, net
    )

    return {
        "total_paid": total_paid,
        "total_owed": total_owed,
        "payments_made": payments_made,
        "payments_received": payments_received,
        "net_balance": net,
    }

def accumulate_expense_balances(user_id: str, expenses, balances: Dict[str, Decimal], names: Dict[str, str]):
    """
    Walk each expense's splits from ``user_id``'s point of view.

    Payer is the user: every other participant owes the user their share.
    Someone else paid and the user participated: the user owes the payer.
    The payer's own share is skipped.
    """
    for expense in expenses:
        payer_id = expense.paid_by

        for split in expense.splits:
            debtor_id = split.user_id
            if debtor_id == payer_id:
                continue

            amount = Decimal(str(split.amount_owed))

            if payer_id == user_id:
                balances[debtor_id] += amount
                if split.user is not None:
                    names[debtor_id] = split.user.username
            elif debtor_id == user_id:
                balances[payer_id] -= amount
                if expense.payer is not None:
                    names[payer_id] = expense.payer.username

def accumulate_payment_balances(user_id: str, payments, balances: Dict[str, Decimal]):
    """A payment payer -> payee reduces what the payer owes the payee."""
    for payment in payments:
        amount = Decimal(str(payment.amount))

        if payment.payer_id == user_id:
            balances[payment.payee_id] += amount
        elif payment.payee_id == user_id:
            balances[payment.payer_id] -= amount

async def detailed_balance(
    db: AsyncSession,
    user_id: str,
    group_id: str | None = None,
    include_payments: bool | None = None
):
    if include_payments is None:
        include_payments = settings.DETAILED_BALANCE_INCLUDES_PAYMENTS

    # 1. Scope: one group, or every group the user belongs to
    if group_id is not None:
        await ensure_group_member(db, group_id, user_id)
        group_ids = [group_id]
    else:
        group_ids = await list_user_group_ids(db, user_id)

    if not group_ids:
        return []

    balances: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    names: Dict[str, str] = {}

    # 2. Expenses in scope that involve the user, with their splits
    involved = select(ExpenseSplit.expense_id).where(ExpenseSplit.user_id == user_id)
    q = (
        select(Expense)
        .where(
            Expense.group_id.in_(group_ids),
            or_(Expense.paid_by == user_id, Expense.id.in_(involved))
        )
        .options(
            selectinload(Expense.payer),
            selectinload(Expense.splits).selectinload(ExpenseSplit.user),
        )
    )
    res = await db.execute(q)
    accumulate_expense_balances(user_id, res.scalars().all(), balances, names)

    # 3. Direct payments between the user and others
    if include_payments:
        pq = select(Payment).where(or_(Payment.payer_id == user_id, Payment.payee_id == user_id))
        if group_id is not None:
            pq = pq.where(Payment.group_id == group_id)
        res = await db.execute(pq)
        accumulate_payment_balances(user_id, res.scalars().all(), balances)

    # 4. Round and drop settled counterparties
    missing = [uid for uid in balances if uid not in names]
    names.update(await get_usernames(db, missing))

    out = []
    for uid, amount in balances.items():
        rounded = qround(amount)
        if abs(rounded) <= SETTLED_EPSILON:
            continue
        out.append({
            "user_id": uid,
            "username": names.get(uid),
            "balance": rounded,
        })

    out.sort(key=lambda b: ((b["username"] or ""), b["user_id"]))
    return out
