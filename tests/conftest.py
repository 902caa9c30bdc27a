import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base, User
from app.core.security import hash_password
from app.services.group_services import create_group, add_member


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def make_user(db, username, password="password123"):
    user = User(
        username=username,
        email=f"{username.lower()}@example.com",
        password_hash=hash_password(password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_group(db, name, creator, *others):
    group = await create_group(db, name, creator.id)
    for other in others:
        await add_member(db, group["id"], other.email, creator.id)
    return group["id"]


@pytest.fixture
async def alice(db):
    return await make_user(db, "alice")


@pytest.fixture
async def bob(db):
    return await make_user(db, "bob")


@pytest.fixture
async def carol(db):
    return await make_user(db, "carol")


@pytest.fixture
async def outsider(db):
    return await make_user(db, "mallory")


@pytest.fixture
async def flat(db, alice, bob, carol):
    """Group with alice, bob and carol, joined in that order."""
    return await make_group(db, "Flat", alice, bob, carol)
