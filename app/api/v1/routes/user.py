from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.schemas.user import UserCreate, UserOut, UserLogin, LoginOut
from app.models.user import User
from app.services.user_service import create_user, authenticate_user
from app.core.dependencies import get_current_user
from app.core.errors import Unauthorized
from app.core.jwt_config import create_access_token

router = APIRouter()

@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register_user(data:UserCreate, db:AsyncSession = Depends(get_db)):
    return await create_user(db, data)

@router.post("/login", response_model=LoginOut)
async def login_user(data:UserLogin, response : Response, db:AsyncSession = Depends(get_db)):
    user = await authenticate_user(db, data.email, data.password)

    if not user:
        raise Unauthorized("Invalid credentials")

    access = create_access_token({"sub": str(user.id)})

    response.set_cookie(
        key="access_token",
        value=access,
        httponly=True,
        samesite="lax"
    )

    return {"access_token": access, "user": user}

@router.get("/me", response_model=UserOut)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user

@router.post("/logout")
async def logout_user(response: Response):
    response.delete_cookie("access_token")
    return {"message":"Logged out"}
