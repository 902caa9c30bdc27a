import logging
from decimal import Decimal
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from app.models.expense import Expense
from app.models.expense_split import ExpenseSplit
from app.models.group import Group
from app.models.user import User
from app.schemas.expense import ExpenseCreate, ExpenseUpdate
from app.core.errors import Forbidden, InvalidInput, NotFound, PersistenceFailure
from app.core.splits import Allocation, allocate, ensure_reconciles, money
from app.core.utils import qround
from app.services.group_services import ensure_group_member, list_member_ids

logger = logging.getLogger(__name__)

def _clean_description(description: str | None) -> str:
    description = (description or "").strip()
    if not description:
        raise InvalidInput("Description is required", field="description")
    return description

def _validate_allocations(amount: Decimal, allocations: Sequence[Allocation], member_ids: Sequence[str]):
    if not allocations:
        raise InvalidInput("Splits must be a non-empty list")

    user_ids = [a.user_id for a in allocations]
    if len(user_ids) != len(set(user_ids)):
        raise InvalidInput("Duplicate users found in splits")

    if any(a.amount_owed < 0 for a in allocations):
        raise InvalidInput("Split amounts must be non-negative")

    outsiders = set(user_ids) - set(member_ids)
    if outsiders:
        raise InvalidInput(
            "One or more users in splits are not members of the group",
            user_ids=sorted(outsiders)
        )

    ensure_reconciles(amount, allocations)

async def _insert_splits(db: AsyncSession, expense_id: str, allocations: Sequence[Allocation]):
    db.add_all([
        ExpenseSplit(
            expense_id=expense_id,
            user_id=a.user_id,
            amount_owed=a.amount_owed
        )
        for a in allocations
    ])
    await db.flush()

async def create_expense(db: AsyncSession, data: ExpenseCreate, requesting_user_id: str):
    # 1. Caller must belong to the group
    await ensure_group_member(db, data.group_id, requesting_user_id)

    # 2. Validate request fields
    description = _clean_description(data.description)
    amount = money(data.amount)

    member_ids = await list_member_ids(db, data.group_id)

    payer_id = data.payer_id or requesting_user_id
    if payer_id not in member_ids:
        raise InvalidInput("Payer is not a member of the group", payer_id=payer_id)

    # 3. Allocate and check the splits reconcile with the total
    allocations = allocate(amount, data.split, member_ids)
    _validate_allocations(amount, allocations, member_ids)

    # 4. Expense and splits commit together or not at all
    expense = Expense(
        group_id=data.group_id,
        paid_by=payer_id,
        amount=amount,
        description=description
    )
    if data.date is not None:
        expense.date = data.date

    try:
        db.add(expense)
        await db.flush()  # gives expense.id

        await _insert_splits(db, expense.id, allocations)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to persist expense for group %s: %s", data.group_id, e)
        raise PersistenceFailure("Could not save expense, nothing was recorded") from e

    await db.refresh(expense)
    logger.info(
        "Expense %s created in group %s: %s paid by %s, %d splits (%s)",
        expense.id, expense.group_id, amount, payer_id, len(allocations), data.split.split_method
    )
    return expense

async def _load_expense(db: AsyncSession, expense_id: str, refresh: bool = False) -> Expense:
    q = (
        select(Expense)
        .where(Expense.id == expense_id)
        .options(
            selectinload(Expense.payer),
            selectinload(Expense.group),
            selectinload(Expense.splits),
        )
    )
    if refresh:
        q = q.execution_options(populate_existing=True)

    res = await db.execute(q)
    expense = res.scalar_one_or_none()

    if not expense:
        raise NotFound("Expense not found", expense_id=expense_id)
    return expense

async def get_expense(db: AsyncSession, expense_id: str, requesting_user_id: str, refresh: bool = False):
    expense = await _load_expense(db, expense_id, refresh=refresh)

    try:
        await ensure_group_member(db, expense.group_id, requesting_user_id)
    except Forbidden:
        raise Forbidden("Unauthorized access", expense_id=expense_id)

    return expense

async def edit_expense(db: AsyncSession, expense_id: str, data: ExpenseUpdate, requesting_user_id: str):
    """
    Change an expense's description and/or amount.

    Group and payer never change. A new amount needs a new split request,
    and the old splits are replaced in the same transaction.
    """
    expense = await get_expense(db, expense_id, requesting_user_id)

    if data.description is None and data.amount is None and data.split is None:
        raise InvalidInput("Nothing to update")

    description = _clean_description(data.description) if data.description is not None else expense.description
    amount = money(data.amount) if data.amount is not None else qround(Decimal(str(expense.amount)))

    allocations = None
    if data.split is not None:
        member_ids = await list_member_ids(db, expense.group_id)
        allocations = allocate(amount, data.split, member_ids)
        _validate_allocations(amount, allocations, member_ids)
    elif amount != qround(Decimal(str(expense.amount))):
        raise InvalidInput("Changing the amount requires new splits", field="split")

    try:
        expense.description = description
        expense.amount = amount

        if allocations is not None:
            expense.splits.clear()
            await db.flush()
            await _insert_splits(db, expense.id, allocations)

        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to update expense %s: %s", expense_id, e)
        raise PersistenceFailure("Could not update expense") from e

    logger.info("Expense %s updated by %s", expense_id, requesting_user_id)
    return await get_expense(db, expense_id, requesting_user_id, refresh=True)

async def delete_expense(db: AsyncSession, expense_id: str, requesting_user_id: str):
    expense = await get_expense(db, expense_id, requesting_user_id)

    try:
        # splits are loaded, so the delete cascades to them
        await db.delete(expense)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to delete expense %s: %s", expense_id, e)
        raise PersistenceFailure("Could not delete expense") from e

    logger.info("Expense %s deleted by %s", expense_id, requesting_user_id)
    return {"status": "deleted"}

async def get_user_expenses(
    db: AsyncSession,
    user_id: str,
    group_id: str | None = None
):
    q = (
        select(
            Expense.id.label("expense_id"),
            Expense.description,
            Expense.amount,
            Expense.date,
            ExpenseSplit.amount_owed,
            User.id.label("payer_id"),
            User.username.label("payer_name"),
            Group.id.label("group_id"),
            Group.name.label("group_name")
        )
        .join(ExpenseSplit, Expense.id == ExpenseSplit.expense_id)
        .join(User, User.id == Expense.paid_by)
        .join(Group, Group.id == Expense.group_id)
        .where(ExpenseSplit.user_id == user_id)
        .order_by(Expense.date.desc(), Expense.created_at.desc())
    )

    if group_id is not None:
        q = q.where(Expense.group_id == group_id)

    res = await db.execute(q)

    return [
        {
            "expense_id": row.expense_id,
            "amount_owed": qround(Decimal(str(row.amount_owed))),
            "description": row.description,
            "amount": qround(Decimal(str(row.amount))),
            "date": row.date,
            "paid_by": {
                "id": row.payer_id,
                "username": row.payer_name
            },
            "group": {
                "id": row.group_id,
                "name": row.group_name
            }
        }
        for row in res.all()
    ]
