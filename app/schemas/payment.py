from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict
from app.schemas.expense import UserRef

class PaymentCreate(BaseModel):
    payee_id: str
    amount: Decimal
    group_id: str | None = None

class PaymentOut(BaseModel):
    id: str
    amount: Decimal
    payer_id: str
    payee_id: str
    group_id: str | None = None
    created_at: datetime | None = None
    payer: UserRef
    payee: UserRef

    model_config = ConfigDict(from_attributes=True)
