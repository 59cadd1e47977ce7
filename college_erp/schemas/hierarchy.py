from typing import List, Optional

from pydantic import BaseModel

from college_erp.core.hierarchy import RoleConfig, RolePermissions
from college_erp.core.request_types import RequestTypeHierarchy


def _ref_values(refs) -> List[str]:
    return sorted(ref.value for ref in refs)


class RolePermissionsRead(BaseModel):
    can_view_students: bool
    can_view_faculty: bool
    can_view_reports: bool
    can_approve_certificates: bool
    can_manage_inventory: bool
    can_handle_complaints: bool
    can_manage_fees: bool
    can_view_all_departments: bool
    can_manage_staff: bool
    can_view_audit_logs: bool

    @classmethod
    def from_permissions(cls, permissions: RolePermissions) -> "RolePermissionsRead":
        return cls(**permissions.__dict__)


class RoleConfigRead(BaseModel):
    role: str
    level: int
    can_send_requests_to: List[str]
    can_receive_from: List[str]
    can_approve: List[str]
    can_view: List[str]
    description: str
    department: Optional[str] = None
    permissions: Optional[RolePermissionsRead] = None

    @classmethod
    def from_config(cls, config: RoleConfig, permissions: Optional[RolePermissions] = None):
        return cls(
            role=config.role.value,
            level=config.level,
            can_send_requests_to=_ref_values(config.can_send_requests_to),
            can_receive_from=_ref_values(config.can_receive_from),
            can_approve=_ref_values(config.can_approve),
            can_view=_ref_values(config.can_view),
            description=config.description,
            department=config.department,
            permissions=RolePermissionsRead.from_permissions(permissions) if permissions else None,
        )


class RequestTypeRead(BaseModel):
    request_type: str
    category: str
    hierarchy: List[str]
    auto_forward: bool
    requires_approval: bool
    max_levels: int
    description: str

    @classmethod
    def from_hierarchy(cls, h: RequestTypeHierarchy) -> "RequestTypeRead":
        return cls(
            request_type=h.request_type,
            category=h.category,
            hierarchy=[r.value for r in h.hierarchy],
            auto_forward=h.auto_forward,
            requires_approval=h.requires_approval,
            max_levels=h.max_levels,
            description=h.description,
        )


class NextApproverRead(BaseModel):
    request_type: str
    current_role: str
    next_role: Optional[str] = None


class RoleRequestTypesRead(BaseModel):
    role: str
    request_types: List[str]
    categories: List[str]
