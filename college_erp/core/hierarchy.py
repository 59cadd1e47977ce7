# college_erp/core/hierarchy.py
"""
Static role hierarchy for request routing.

Every staff/student role lists who it may send requests to, who it accepts
requests from and whose requests it may approve. Permission sets mix concrete
roles (``UserRole``) with role groups (``RoleGroup``); a group entry admits
every known role.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple, Union

from college_erp.models.user import UserRole


class RoleGroup(str, Enum):
    All = "all"
    AllStaff = "all_staff"
    AllNonTeaching = "all_non_teaching"


RoleRef = Union[UserRole, RoleGroup]


@dataclass(frozen=True)
class RoleConfig:
    role: UserRole
    level: int
    can_send_requests_to: FrozenSet[RoleRef]
    can_receive_from: FrozenSet[RoleRef]
    can_approve: FrozenSet[RoleRef]
    can_view: FrozenSet[RoleRef]
    description: str
    department: Optional[str] = None


@dataclass(frozen=True)
class RequestFlow:
    from_role: RoleRef
    to_role: UserRole
    auto_forward: bool
    requires_approval: bool
    max_response_time: Optional[int] = None  # hours


@dataclass(frozen=True)
class RolePermissions:
    can_view_students: bool = False
    can_view_faculty: bool = False
    can_view_reports: bool = False
    can_approve_certificates: bool = False
    can_manage_inventory: bool = False
    can_handle_complaints: bool = False
    can_manage_fees: bool = False
    can_view_all_departments: bool = False
    can_manage_staff: bool = False
    can_view_audit_logs: bool = False


def _refs(*items: RoleRef) -> FrozenSet[RoleRef]:
    return frozenset(items)


R = UserRole
G = RoleGroup

# ==========================================================
# ROLE TABLE
# ==========================================================
_ROLE_CONFIGS: List[RoleConfig] = [
    # --- ACADEMIC HIERARCHY ---
    RoleConfig(
        role=R.Student,
        level=1,
        can_send_requests_to=_refs(
            R.Teacher, R.Clerk, R.Registrar, R.HOD, R.WorkshopInstructor,
            R.Electrician, R.ComputerTechnician, R.AsstLibrarian, R.TechLabAsst,
            R.LabAsstCivil, R.SecurityGuard, R.FireOperator, R.AccountsAsst,
            R.Plumber, R.GirlsHostelRector,
        ),
        can_receive_from=_refs(),
        can_approve=_refs(),
        can_view=_refs(R.Student),
        description="Students can request certificates, submit complaints",
        department="academic",
    ),
    RoleConfig(
        role=R.Teacher,
        level=2,
        can_send_requests_to=_refs(R.HOD, R.Registrar, R.Principal, R.AsstLibrarian),
        can_receive_from=_refs(R.Student),
        can_approve=_refs(R.Student),
        can_view=_refs(R.Student, R.Teacher),
        description="Class coordinators and teachers - can submit applications and complaints",
        department="academic",
    ),
    RoleConfig(
        role=R.HOD,
        level=3,
        can_send_requests_to=_refs(R.Principal, R.Registrar, R.CivilSupervisor),
        can_receive_from=_refs(
            R.Teacher, R.Student, R.TechLabAsst, R.LabAsstCivil, R.WorkshopInstructor,
        ),
        can_approve=_refs(
            R.Teacher, R.Student, R.TechLabAsst, R.LabAsstCivil, R.WorkshopInstructor,
        ),
        can_view=_refs(R.Student, R.Teacher, R.HOD, R.TechLabAsst, R.LabAsstCivil),
        description="Head of Department - reviews teacher applications and complaints",
        department="academic",
    ),
    RoleConfig(
        role=R.Principal,
        level=4,
        can_send_requests_to=_refs(),
        can_receive_from=_refs(R.HOD, R.Registrar, G.AllStaff),
        can_approve=_refs(G.All),
        can_view=_refs(G.All),
        description="Principal - Final authority",
        department="academic",
    ),

    # --- NON-TEACHING STAFF HIERARCHY ---
    RoleConfig(
        role=R.Registrar,
        level=3,
        can_send_requests_to=_refs(R.Principal),
        can_receive_from=_refs(G.AllNonTeaching, R.HOD, R.Student),
        can_approve=_refs(G.AllNonTeaching, R.Student),
        can_view=_refs(G.AllNonTeaching, R.Student, R.HOD),
        description="Registrar - Handles administrative requests",
        department="administration",
    ),
    RoleConfig(
        role=R.WorkshopInstructor,
        level=2,
        can_send_requests_to=_refs(R.HOD, R.Registrar, R.AsstStore),
        can_receive_from=_refs(R.Student, R.TechLabAsst),
        can_approve=_refs(R.Student),
        can_view=_refs(R.Student, R.TechLabAsst),
        description="Workshop Instructor",
        department="mechanical",
    ),
    RoleConfig(
        role=R.Electrician,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.CivilSupervisor, R.Principal),
        can_receive_from=_refs(G.AllStaff, R.Student),
        can_approve=_refs(),
        can_view=_refs(G.AllStaff),
        description="Electrician - Maintenance",
        department="maintenance",
    ),
    RoleConfig(
        role=R.ComputerTechnician,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal),
        can_receive_from=_refs(G.AllStaff, R.Student),
        can_approve=_refs(),
        can_view=_refs(G.AllStaff),
        description="Computer Technician",
        department="it",
    ),
    RoleConfig(
        role=R.AsstLibrarian,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal),
        can_receive_from=_refs(R.Student, R.Teacher),
        can_approve=_refs(R.Student),
        can_view=_refs(R.Student, R.Teacher),
        description="Assistant Librarian",
        department="library",
    ),
    RoleConfig(
        role=R.AsstStore,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal),
        can_receive_from=_refs(R.WorkshopInstructor, R.TechLabAsst, R.LabAsstCivil),
        can_approve=_refs(R.WorkshopInstructor, R.TechLabAsst, R.LabAsstCivil),
        can_view=_refs(R.WorkshopInstructor, R.TechLabAsst, R.LabAsstCivil),
        description="Assistant Store",
        department="store",
    ),
    RoleConfig(
        role=R.TechLabAsst,
        level=2,
        can_send_requests_to=_refs(R.HOD, R.WorkshopInstructor, R.AsstStore),
        can_receive_from=_refs(R.Student),
        can_approve=_refs(R.Student),
        can_view=_refs(R.Student),
        description="Technical Lab Assistant",
        department="technical",
    ),
    RoleConfig(
        role=R.LabAsstCivil,
        level=2,
        can_send_requests_to=_refs(R.HOD, R.AsstStore),
        can_receive_from=_refs(R.Student),
        can_approve=_refs(R.Student),
        can_view=_refs(R.Student),
        description="Civil Lab Assistant",
        department="civil",
    ),
    RoleConfig(
        role=R.Clerk,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal, R.AccountsAsst),
        can_receive_from=_refs(G.AllStaff, R.Student),
        can_approve=_refs(R.Student),
        can_view=_refs(G.AllStaff, R.Student),
        description="Clerk - Document processing",
        department="administration",
    ),
    RoleConfig(
        role=R.SecurityGuard,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal),
        can_receive_from=_refs(G.AllStaff, R.Student),
        can_approve=_refs(),
        can_view=_refs(G.AllStaff),
        description="Security Guard",
        department="security",
    ),
    RoleConfig(
        role=R.FireOperator,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal),
        can_receive_from=_refs(G.AllStaff, R.Student),
        can_approve=_refs(),
        can_view=_refs(G.AllStaff),
        description="Fire Operator",
        department="safety",
    ),
    RoleConfig(
        role=R.AccountsAsst,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal),
        can_receive_from=_refs(R.Student, R.Clerk),
        can_approve=_refs(R.Student),
        can_view=_refs(R.Student, R.Clerk),
        description="Accounts Assistant",
        department="accounts",
    ),
    RoleConfig(
        role=R.CivilSupervisor,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal, R.EtpOperator),
        can_receive_from=_refs(R.HOD, R.Plumber, R.Electrician),
        can_approve=_refs(R.Plumber, R.Electrician),
        can_view=_refs(R.Plumber, R.Electrician),
        description="Civil Supervisor",
        department="maintenance",
    ),
    RoleConfig(
        role=R.Plumber,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.CivilSupervisor),
        can_receive_from=_refs(G.AllStaff, R.Student),
        can_approve=_refs(),
        can_view=_refs(G.AllStaff),
        description="Plumber",
        department="maintenance",
    ),
    RoleConfig(
        role=R.GirlsHostelRector,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal),
        can_receive_from=_refs(R.Student),
        can_approve=_refs(R.Student),
        can_view=_refs(R.Student),
        description="Girls Hostel Rector",
        department="hostel",
    ),
    RoleConfig(
        role=R.Peon,
        level=1,
        can_send_requests_to=_refs(R.Registrar, R.Clerk),
        can_receive_from=_refs(G.AllStaff),
        can_approve=_refs(),
        can_view=_refs(G.AllStaff),
        description="Peon",
        department="general",
    ),
    RoleConfig(
        role=R.EtpOperator,
        level=2,
        can_send_requests_to=_refs(R.Registrar, R.Principal),
        can_receive_from=_refs(R.CivilSupervisor),
        can_approve=_refs(),
        can_view=_refs(R.CivilSupervisor),
        description="ETP Operator",
        department="maintenance",
    ),
]

HIERARCHY_CONFIG = {cfg.role: cfg for cfg in _ROLE_CONFIGS}


# ==========================================================
# REQUEST FLOWS (sender -> recipient pairs)
# ==========================================================
REQUEST_FLOWS: List[RequestFlow] = [
    # Academic flows
    RequestFlow(R.Student, R.Teacher, auto_forward=False, requires_approval=True),
    RequestFlow(R.Teacher, R.HOD, auto_forward=False, requires_approval=True),
    RequestFlow(R.HOD, R.Principal, auto_forward=False, requires_approval=True),

    # Certificate requests
    RequestFlow(R.Student, R.Clerk, auto_forward=False, requires_approval=True),
    RequestFlow(R.Clerk, R.Registrar, auto_forward=True, requires_approval=True),
    RequestFlow(R.Registrar, R.Principal, auto_forward=True, requires_approval=True),

    # Maintenance flows
    RequestFlow(G.AllStaff, R.Electrician, auto_forward=False, requires_approval=False),
    RequestFlow(R.Electrician, R.CivilSupervisor, auto_forward=True, requires_approval=False),
    RequestFlow(R.CivilSupervisor, R.Registrar, auto_forward=True, requires_approval=True),

    # Library flows
    RequestFlow(R.Student, R.AsstLibrarian, auto_forward=False, requires_approval=True),
    RequestFlow(R.AsstLibrarian, R.Registrar, auto_forward=True, requires_approval=True),

    # Store flows
    RequestFlow(R.WorkshopInstructor, R.AsstStore, auto_forward=False, requires_approval=True),
    RequestFlow(R.AsstStore, R.Registrar, auto_forward=True, requires_approval=True),

    # Lab flows
    RequestFlow(R.Student, R.TechLabAsst, auto_forward=False, requires_approval=True),
    RequestFlow(R.TechLabAsst, R.WorkshopInstructor, auto_forward=True, requires_approval=True),
    RequestFlow(R.WorkshopInstructor, R.HOD, auto_forward=True, requires_approval=True),
]


# ==========================================================
# ROLE PERMISSIONS
# ==========================================================
_ALL_PERMISSIONS = RolePermissions(**{f: True for f in RolePermissions.__dataclass_fields__})

ROLE_PERMISSIONS = {
    R.Admin: _ALL_PERMISSIONS,
    R.Principal: _ALL_PERMISSIONS,
    R.Registrar: RolePermissions(
        can_view_students=True,
        can_view_reports=True,
        can_approve_certificates=True,
        can_manage_inventory=True,
        can_handle_complaints=True,
        can_view_all_departments=True,
        can_view_audit_logs=True,
    ),
    R.HOD: RolePermissions(
        can_view_students=True,
        can_view_faculty=True,
        can_view_reports=True,
        can_handle_complaints=True,
    ),
    R.Teacher: RolePermissions(
        can_view_students=True,
        can_handle_complaints=True,
    ),
    R.Student: RolePermissions(),
}


# ==========================================================
# LOOKUPS
# ==========================================================
def as_role(value) -> Optional[UserRole]:
    """Normalize a role given as enum or raw string; None if unknown."""
    if isinstance(value, UserRole):
        return value
    if value is None:
        return None
    try:
        return UserRole(str(value).strip().lower())
    except ValueError:
        return None


def role_matches(refs: FrozenSet[RoleRef], role) -> bool:
    """True if ``role`` is listed in ``refs`` or ``refs`` holds a role group."""
    resolved = as_role(role)
    if resolved is None:
        return False
    if resolved in refs:
        return True
    return any(isinstance(ref, RoleGroup) for ref in refs)


def get_role_config(role) -> Optional[RoleConfig]:
    resolved = as_role(role)
    if resolved is None:
        return None
    return HIERARCHY_CONFIG.get(resolved)


def get_role_level(role) -> int:
    config = get_role_config(role)
    return config.level if config else 0


def can_send_request_to(from_role, to_role) -> bool:
    config = get_role_config(from_role)
    if not config:
        return False
    return role_matches(config.can_send_requests_to, to_role)


def can_receive_from(to_role, from_role) -> bool:
    config = get_role_config(to_role)
    if not config:
        return False
    return role_matches(config.can_receive_from, from_role)


def can_approve_role(approver_role, from_role) -> bool:
    config = get_role_config(approver_role)
    if not config:
        return False
    return role_matches(config.can_approve, from_role)


def get_role_permissions(role) -> RolePermissions:
    resolved = as_role(role)
    return ROLE_PERMISSIONS.get(resolved, RolePermissions())


def has_audit_visibility(role) -> bool:
    return get_role_permissions(role).can_view_audit_logs


def find_request_flow(from_role, to_role) -> Optional[RequestFlow]:
    """
    First flow whose recipient is ``to_role`` and whose sender is ``from_role``
    or a role group. Exact sender matches win over group matches.
    """
    sender = as_role(from_role)
    recipient = as_role(to_role)
    if sender is None or recipient is None:
        return None

    group_match = None
    for flow in REQUEST_FLOWS:
        if flow.to_role != recipient:
            continue
        if flow.from_role == sender:
            return flow
        if group_match is None and isinstance(flow.from_role, RoleGroup):
            group_match = flow
    return group_match


def get_next_approver(current_role, request_type: str) -> Optional[UserRole]:
    """Next role after ``current_role`` in the approval chain of ``request_type``."""
    # Single source of truth: the per-type chain table
    from college_erp.core.request_types import get_next_approver_for_request_type

    return get_next_approver_for_request_type(current_role, request_type)


# ==========================================================
# TABLE CONSISTENCY
# ==========================================================
def _has_group(refs: FrozenSet[RoleRef]) -> bool:
    return any(isinstance(ref, RoleGroup) for ref in refs)


def find_asymmetric_pairs() -> List[Tuple[UserRole, UserRole]]:
    """
    (sender, recipient) pairs where the send table and the receive table
    disagree and neither side relies on a role group.
    """
    mismatches = []
    for sender, s_cfg in HIERARCHY_CONFIG.items():
        for recipient, r_cfg in HIERARCHY_CONFIG.items():
            sends = recipient in s_cfg.can_send_requests_to
            receives = sender in r_cfg.can_receive_from
            if sends and not receives and not _has_group(r_cfg.can_receive_from):
                mismatches.append((sender, recipient))
            elif receives and not sends and not _has_group(s_cfg.can_send_requests_to):
                mismatches.append((sender, recipient))
    return mismatches


def validate_hierarchy() -> List[str]:
    """Human-readable problems with the static tables; empty when consistent."""
    from college_erp.core.request_types import REQUEST_TYPE_HIERARCHIES

    problems = []
    for cfg in HIERARCHY_CONFIG.values():
        if not 1 <= cfg.level <= 4:
            problems.append(f"{cfg.role.value}: level {cfg.level} outside 1-4")
        for label in ("can_send_requests_to", "can_receive_from", "can_approve", "can_view"):
            for ref in getattr(cfg, label):
                if isinstance(ref, UserRole) and ref not in HIERARCHY_CONFIG:
                    problems.append(f"{cfg.role.value}.{label} references unknown role '{ref.value}'")

    for flow in REQUEST_FLOWS:
        for ref in (flow.from_role, flow.to_role):
            if isinstance(ref, UserRole) and ref not in HIERARCHY_CONFIG:
                problems.append(f"flow {flow.from_role.value}->{flow.to_role.value} references unknown role")

    for chain in REQUEST_TYPE_HIERARCHIES:
        if not chain.hierarchy:
            problems.append(f"request type '{chain.request_type}' has an empty chain")
        for role in chain.hierarchy:
            if role not in HIERARCHY_CONFIG:
                problems.append(f"request type '{chain.request_type}' references unknown role '{role.value}'")

    for sender, recipient in find_asymmetric_pairs():
        problems.append(f"send/receive tables disagree for {sender.value} -> {recipient.value}")

    return problems
