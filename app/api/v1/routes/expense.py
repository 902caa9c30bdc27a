from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.schemas.expense import ExpenseCreate, ExpenseUpdate, ExpenseOut, ExpenseDetailOut, UserExpenseOut
from app.services.expense_services import create_expense, delete_expense, edit_expense, get_expense, get_user_expenses
from app.core.dependencies import get_current_user

router = APIRouter()

@router.post("/", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
async def add_expense(data: ExpenseCreate, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await create_expense(db, data, current_user.id)

@router.get("/", response_model=list[UserExpenseOut], description="splits involving the current user")
async def my_expenses(
    group_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return await get_user_expenses(db, user_id=current_user.id, group_id=group_id)

@router.get("/{expense_id}", response_model=ExpenseDetailOut)
async def fetch(
    expense_id: str,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return await get_expense(db, expense_id, current_user.id)

@router.patch("/{expense_id}", response_model=ExpenseDetailOut)
async def edit(expense_id: str, data: ExpenseUpdate, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await edit_expense(db, expense_id, data, current_user.id)

@router.delete("/{expense_id}")
async def del_expense(expense_id: str, db:AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await delete_expense(db, expense_id, current_user.id)
