# college_erp/api/endpoints/hierarchy.py

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from college_erp.api.deps import get_current_user
from college_erp.core.hierarchy import HIERARCHY_CONFIG, get_role_config, get_role_permissions
from college_erp.core.request_types import (
    REQUEST_TYPE_HIERARCHIES,
    get_categories_for_role,
    get_hierarchies_by_category,
    get_next_approver_for_request_type,
    get_request_type_hierarchy,
    get_request_types_for_role,
)
from college_erp.models.user import User
from college_erp.schemas.hierarchy import (
    NextApproverRead,
    RequestTypeRead,
    RoleConfigRead,
    RoleRequestTypesRead,
)

router = APIRouter(
    prefix="/api/hierarchy",
    tags=["Hierarchy"],
    dependencies=[Depends(get_current_user)],
)


@router.get("/roles", response_model=List[RoleConfigRead])
async def list_roles():
    return [RoleConfigRead.from_config(cfg) for cfg in HIERARCHY_CONFIG.values()]


@router.get("/roles/{role}", response_model=RoleConfigRead)
async def get_role(role: str):
    config = get_role_config(role)
    if not config:
        raise HTTPException(404, f"Unknown role '{role}'")
    return RoleConfigRead.from_config(config, get_role_permissions(config.role))


@router.get("/request-types", response_model=List[RequestTypeRead])
async def list_request_types(category: Optional[str] = Query(None)):
    hierarchies = get_hierarchies_by_category(category) if category else REQUEST_TYPE_HIERARCHIES
    return [RequestTypeRead.from_hierarchy(h) for h in hierarchies]


@router.get("/request-types/{request_type}/next", response_model=NextApproverRead)
async def next_approver(request_type: str, role: str = Query(...)):
    if not get_request_type_hierarchy(request_type):
        raise HTTPException(404, f"Unknown request type '{request_type}'")

    next_role = get_next_approver_for_request_type(role, request_type)
    return NextApproverRead(
        request_type=request_type,
        current_role=role,
        next_role=next_role.value if next_role else None,
    )


@router.get("/my-request-types", response_model=RoleRequestTypesRead)
async def my_request_types(current_user: User = Depends(get_current_user)):
    return RoleRequestTypesRead(
        role=current_user.role.value,
        request_types=get_request_types_for_role(current_user.role),
        categories=get_categories_for_role(current_user.role),
    )
