# college_erp/api/endpoints/users.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from college_erp.api.deps import get_db_session, require_admin
from college_erp.schemas.user import UserCreate, UserRead
from college_erp.services.auth_service import get_user_by_email, create_user, list_users
from college_erp.models.user import User, UserRole

router = APIRouter(prefix="/api/users", tags=["Users"])


# -------------------------------------------------------------------
# Create ANY user (Admin only)
# -------------------------------------------------------------------
@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_new_user(
    data: UserCreate,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(require_admin)
):
    existing = await get_user_by_email(session, data.email)
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    try:
        return await create_user(
            session,
            data.name,
            data.email,
            data.password,
            role=data.role,
            department=data.department,
        )
    except ValueError as e:
        raise HTTPException(400, detail=str(e))


# -------------------------------------------------------------------
# List users (Admin only), optionally by role
# -------------------------------------------------------------------
@router.get("/", response_model=List[UserRead])
async def get_users(
    role: Optional[UserRole] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(require_admin)
):
    return await list_users(session, role)
