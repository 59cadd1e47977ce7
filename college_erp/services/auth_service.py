# college_erp/services/auth_service.py

from typing import List, Optional

from loguru import logger
from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from college_erp.models.user import User, UserRole
from college_erp.core.security import (
    hash_password,
    verify_password,
    create_access_token,
)
from college_erp.schemas.auth import TokenWithUser
from college_erp.schemas.user import UserRead


# ============================================================================
# FETCH USER BY EMAIL
# ============================================================================
async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


# ============================================================================
# FETCH USER BY ID
# ============================================================================
async def get_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


# ============================================================================
# LIST USERS
# ============================================================================
async def list_users(session: AsyncSession, role: Optional[UserRole] = None) -> List[User]:
    query = select(User).order_by(User.name)
    if role:
        query = query.where(User.role == role)
    result = await session.execute(query)
    return list(result.scalars().all())


# ============================================================================
# CREATE USER
# ============================================================================
async def create_user(
    session: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: UserRole,
    department: str | None = None,
) -> User:

    user = User(
        name=name,
        email=email.strip().lower(),
        password_hash=hash_password(password),
        role=role,
        department=department,
    )

    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
        logger.info(f"User created: {user.email} ({user.role.value})")
        return user

    except IntegrityError:
        await session.rollback()
        raise ValueError("User with this email already exists")


# ============================================================================
# AUTHENTICATE
# ============================================================================
async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
    user = await get_user_by_email(session, email.strip().lower())
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


# ============================================================================
# CREATE LOGIN RESPONSE
# ============================================================================
def create_login_response(user: User) -> TokenWithUser:
    # JWT carries role & department so dashboards can route without a lookup
    token = create_access_token(
        subject=user.id,
        data={
            "role": user.role.value,
            "department": user.department,
        },
    )

    return TokenWithUser(
        access_token=token,
        user=UserRead.model_validate(user),
    )
