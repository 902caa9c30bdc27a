from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.core.utils import gen_id

class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=gen_id)
    amount = Column(Numeric(12, 2), nullable=False)
    payer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    payee_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint("payer_id <> payee_id", name="ck_payments_not_self"),
    )

    payer = relationship("User", foreign_keys=[payer_id])
    payee = relationship("User", foreign_keys=[payee_id])
