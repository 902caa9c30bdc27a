from decimal import Decimal
from pydantic import BaseModel

class OverallBalanceOut(BaseModel):
    total_paid: Decimal
    total_owed: Decimal
    payments_made: Decimal
    payments_received: Decimal
    net_balance: Decimal

class CounterpartyBalance(BaseModel):
    """Positive: they owe the caller. Negative: the caller owes them."""
    user_id: str
    username: str | None = None
    balance: Decimal
