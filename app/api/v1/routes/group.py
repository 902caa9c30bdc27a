from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.services.group_services import create_group, add_member, list_user_groups, get_group
from app.schemas.group import GroupCreate, GroupOut, GroupMemberOut, MemberAdd
from app.core.dependencies import get_current_user

router = APIRouter()

@router.post("/", response_model=GroupOut, status_code=status.HTTP_201_CREATED, description="create new group")
async def create_new_group(
    data: GroupCreate,
    db: AsyncSession = Depends(get_db),
    user = Depends(get_current_user)
):
    return await create_group(db, data.name, user.id)

@router.get("/my-groups", response_model=list[GroupOut], description="get user groups")
async def my_groups(db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await list_user_groups(db, user.id)

@router.get("/{group_id}", response_model=GroupOut)
async def group_detail(group_id: str, db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await get_group(db, group_id, user.id)

@router.post("/{group_id}/members", response_model=GroupMemberOut, status_code=status.HTTP_201_CREATED)
async def add_user_to_group(
    group_id: str,
    data: MemberAdd,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await add_member(db, group_id, data.email, current_user.id)
