from datetime import datetime
from pydantic import BaseModel, EmailStr
from typing import List
from app.schemas.expense import UserRef

class GroupCreate(BaseModel):
    name: str

class GroupOut(BaseModel):
    id: str
    name: str
    created_at: datetime | None = None
    members: List[UserRef]

class MemberAdd(BaseModel):
    email: EmailStr

class GroupMemberOut(BaseModel):
    group_id: str
    user_id: str
    username: str
