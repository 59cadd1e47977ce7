# college_erp/api/deps.py

from typing import AsyncGenerator
import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from college_erp.core.security import decode_token
from college_erp.core.database import get_session
from college_erp.services.auth_service import get_user_by_id
from college_erp.services.request_manager import RequestManager
from college_erp.models.user import User, UserRole


# ------------------------------------------------------------
# HTTP Bearer Authentication
# ------------------------------------------------------------
bearer_scheme = HTTPBearer(auto_error=False)


# ------------------------------------------------------------
# DB Session
# ------------------------------------------------------------
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


# ------------------------------------------------------------
# Request manager (built once at startup, see main.py)
# ------------------------------------------------------------
def get_request_manager(request: Request) -> RequestManager:
    manager = getattr(request.app.state, "request_manager", None)
    if manager is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Request service not ready")
    return manager


# ------------------------------------------------------------
# Get current logged-in user from JWT
# ------------------------------------------------------------
async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> User:

    if credentials is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
        user_id = payload.get("sub")

        if not user_id:
            raise HTTPException(401, "Invalid token payload")

    except jwt.InvalidTokenError:
        raise HTTPException(401, "Could not validate credentials")

    user = await get_user_by_id(session, user_id)

    if not user:
        raise HTTPException(401, "User not found")

    return user


# ------------------------------------------------------------
# Role-based access control (CASE-SAFE, enum-safe)
# ------------------------------------------------------------
def role_required(*allowed_roles: UserRole):
    """
    Enforces that the current user has one of the allowed roles.
    """

    def normalize_role(role):
        if isinstance(role, UserRole):
            return role.value.strip().lower()
        return str(role).strip().lower()

    normalized_allowed = set(normalize_role(r) for r in allowed_roles)

    async def checker(current_user: User = Depends(get_current_user)):

        if normalize_role(current_user.role) not in normalized_allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Access denied for role '{normalize_role(current_user.role)}'"
            )

        return current_user

    return checker


# ------------------------------------------------------------
# Exposed dependencies for routers
# ------------------------------------------------------------
require_admin = role_required(UserRole.Admin)
