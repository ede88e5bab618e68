"""
User endpoints: signup, login and profiles.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from madsocial.db.session import get_db
from madsocial.schemas.user import UserCreate, UserLogin, UserUpdate, UserResponse, AuthResponse
from madsocial.schemas.pregame import MyPregamesResponse
from madsocial.services.auth_service import signup_user, authenticate_user, get_user, update_profile
from madsocial.services.pregame_service import list_user_pregames
from madsocial.core.security import get_current_user_id

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Create an account and receive a bearer token."""
    user, token = await signup_user(db, user_data)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a bearer token."""
    user, token = await authenticate_user(db, login_data)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.get("/me", response_model=UserResponse)
async def read_current_user(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, user_id)


@router.patch("/me", response_model=UserResponse)
async def update_current_user(
    update_data: UserUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Update the caller's own profile fields."""
    return await update_profile(db, user_id, update_data)


@router.get("/me/pregames", response_model=MyPregamesResponse)
async def read_my_pregames(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Pregames the caller is hosting and attending."""
    return await list_user_pregames(db, user_id)


@router.get("/{user_id}", response_model=UserResponse)
async def read_user(
    user_id: int,
    _: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, user_id)
