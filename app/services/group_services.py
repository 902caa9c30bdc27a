import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from app.models.group import Group
from app.models.group_member import GroupMember
from app.models.user import User
from app.core.errors import Conflict, Forbidden, InvalidInput, NotFound, PersistenceFailure

logger = logging.getLogger(__name__)

async def get_group_or_404(db: AsyncSession, group_id: str) -> Group:
    group = await db.get(Group, group_id)
    if not group:
        raise NotFound("Group does not exist", group_id=group_id)
    return group

async def is_group_member(db: AsyncSession, group_id: str, user_id: str) -> bool:
    q = select(GroupMember.id).where(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id
    )
    res = await db.execute(q)
    return res.scalar_one_or_none() is not None

async def ensure_group_member(db: AsyncSession, group_id: str, user_id: str):
    await get_group_or_404(db, group_id)

    if not await is_group_member(db, group_id, user_id):
        raise Forbidden("You are not a member of this group", group_id=group_id)

async def list_member_ids(db: AsyncSession, group_id: str) -> list[str]:
    q = (
        select(GroupMember.user_id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.id)
    )
    res = await db.execute(q)
    return list(res.scalars().all())

async def list_user_group_ids(db: AsyncSession, user_id: str) -> list[str]:
    res = await db.execute(select(GroupMember.group_id).where(GroupMember.user_id == user_id))
    return list(res.scalars().all())

async def create_group(db: AsyncSession, name: str, creator_id: str):
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Group name is required", field="name")

    try:
        group = Group(name=name)
        db.add(group)
        await db.flush()

        # creator joins in the same transaction
        db.add(GroupMember(group_id=group.id, user_id=creator_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to create group %r: %s", name, e)
        raise PersistenceFailure("Could not create group") from e

    logger.info("Group %s created by user %s", group.id, creator_id)
    return await get_group(db, group.id, creator_id)

async def list_user_groups(db: AsyncSession, user_id: str):
    q = (
        select(Group)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .where(GroupMember.user_id == user_id)
        .options(selectinload(Group.members).selectinload(GroupMember.user))
        .order_by(Group.name)
    )
    res = await db.execute(q)
    return [_group_view(g) for g in res.scalars().all()]

async def get_group(db: AsyncSession, group_id: str, user_id: str):
    await ensure_group_member(db, group_id, user_id)

    q = (
        select(Group)
        .where(Group.id == group_id)
        .options(selectinload(Group.members).selectinload(GroupMember.user))
        .execution_options(populate_existing=True)
    )
    res = await db.execute(q)
    return _group_view(res.scalar_one())

async def add_member(db: AsyncSession, group_id: str, email: str, requesting_user_id: str):
    # all members have equal rights, any of them may add others
    await ensure_group_member(db, group_id, requesting_user_id)

    res = await db.execute(select(User).where(User.email == email))
    user = res.scalar_one_or_none()

    if not user:
        raise NotFound(f"User with email {email} not found", email=email)

    if await is_group_member(db, group_id, user.id):
        raise Conflict(f"User {user.username} is already a member of this group", user_id=user.id)

    member = GroupMember(group_id=group_id, user_id=user.id)
    db.add(member)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to add user %s to group %s: %s", user.id, group_id, e)
        raise PersistenceFailure("Could not add member") from e

    logger.info("User %s added to group %s by %s", user.id, group_id, requesting_user_id)
    return {"group_id": group_id, "user_id": user.id, "username": user.username}

def _group_view(group: Group) -> dict:
    members = sorted(group.members, key=lambda m: m.id)
    return {
        "id": group.id,
        "name": group.name,
        "created_at": group.created_at,
        "members": [
            {"id": m.user.id, "username": m.user.username}
            for m in members
        ],
    }
