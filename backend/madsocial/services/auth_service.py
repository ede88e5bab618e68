"""
Identity service: signup, login and profile reads/updates.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from madsocial.models.user import User
from madsocial.schemas.user import UserCreate, UserLogin, UserUpdate
from madsocial.core.exceptions import AuthenticationError, ConflictError, NotFoundError
from madsocial.core.security import hash_password, verify_password, create_access_token
from madsocial.core.logging import get_logger

logger = get_logger(__name__)


def issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "email": user.email})


async def signup_user(db: AsyncSession, user_data: UserCreate) -> tuple[User, str]:
    """
    Register a new user with hashed password and return it with a token.
    Raises ConflictError if the email is already in use.
    """
    email = user_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        logger.warning("signup_failed", reason="email_exists", email=email)
        raise ConflictError("Email already in use")

    user = User(
        email=email,
        hashed_password=hash_password(user_data.password),
        name=user_data.name,
        year=user_data.year.value,
        major=user_data.major,
        dorm=user_data.dorm,
        bio=user_data.bio,
        avatar_url=user_data.avatar_url or None,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Concurrent signup with the same email
        await db.rollback()
        raise ConflictError("Email already in use")
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user, issue_token(user)


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[User, str]:
    """
    Authenticate a user and return it with a token.
    Raises AuthenticationError if credentials are invalid.
    """
    email = login_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=email)
        raise AuthenticationError("Invalid credentials")

    logger.info("user_logged_in", user_id=user.id)
    return user, issue_token(user)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def update_profile(db: AsyncSession, user_id: int, update_data: UserUpdate) -> User:
    """Apply a partial update to the mutable profile fields."""
    user = await get_user(db, user_id)

    changes = update_data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if field == "year" and value is not None:
            value = value.value
        if field in ("name", "year", "major", "dorm") and value is None:
            # Required profile fields cannot be cleared
            continue
        setattr(user, field, value)

    await db.flush()
    await db.refresh(user)

    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return user
