from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

class ExactShare(BaseModel):
    user_id: str
    amount_owed: Decimal

class PercentageShare(BaseModel):
    user_id: str
    percentage: Decimal

class WeightedShare(BaseModel):
    user_id: str
    shares: int

class EqualSplitIn(BaseModel):
    split_method: Literal["equally"]
    # None splits across every group member, in join order
    member_ids: Optional[List[str]] = None

class ExactSplitIn(BaseModel):
    split_method: Literal["exact"]
    splits: List[ExactShare]

class PercentageSplitIn(BaseModel):
    split_method: Literal["percentage"]
    splits: List[PercentageShare]

class SharesSplitIn(BaseModel):
    split_method: Literal["shares"]
    splits: List[WeightedShare]

SplitRequest = Annotated[
    Union[EqualSplitIn, ExactSplitIn, PercentageSplitIn, SharesSplitIn],
    Field(discriminator="split_method"),
]

class ExpenseCreate(BaseModel):
    group_id: str
    description: str
    amount: Decimal
    payer_id: str | None = None
    date: datetime | None = None
    split: SplitRequest

class ExpenseUpdate(BaseModel):
    description: str | None = None
    amount: Decimal | None = None
    split: Optional[SplitRequest] = None

class UserRef(BaseModel):
    id: str
    username: str

    model_config = ConfigDict(from_attributes=True)

class GroupRef(BaseModel):
    id: str
    name: str

    model_config = ConfigDict(from_attributes=True)

class SplitOut(BaseModel):
    user_id: str
    amount_owed: Decimal

    model_config = ConfigDict(from_attributes=True)

class ExpenseOut(BaseModel):
    id: str
    group_id: str
    description: str
    amount: Decimal
    paid_by: str
    date: datetime

    model_config = ConfigDict(from_attributes=True)

class ExpenseDetailOut(ExpenseOut):
    payer: UserRef
    group: GroupRef
    splits: List[SplitOut]

class UserExpenseOut(BaseModel):
    """One of the caller's splits joined with its expense."""
    expense_id: str
    amount_owed: Decimal
    description: str
    amount: Decimal
    date: datetime
    paid_by: UserRef
    group: GroupRef
