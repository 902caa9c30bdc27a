from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.session import Base

class ExpenseSplit(Base):
    __tablename__ = "expense_splits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    expense_id = Column(String(36), ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount_owed = Column(Numeric(12, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("expense_id", "user_id", name="uq_expense_split_expense_user"),
    )

    expense = relationship("Expense", back_populates="splits")
    user = relationship("User")
