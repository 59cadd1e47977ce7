# college_erp/core/request_types.py

from dataclasses import dataclass
from typing import List, Optional, Tuple

from college_erp.core.hierarchy import as_role
from college_erp.models.user import UserRole


@dataclass(frozen=True)
class RequestTypeHierarchy:
    request_type: str
    category: str
    hierarchy: Tuple[UserRole, ...]
    auto_forward: bool
    requires_approval: bool
    description: str

    @property
    def max_levels(self) -> int:
        return len(self.hierarchy)


def _chain(request_type, category, roles, description, auto_forward=True, requires_approval=True):
    return RequestTypeHierarchy(
        request_type=request_type,
        category=category,
        hierarchy=tuple(UserRole(r) for r in roles),
        auto_forward=auto_forward,
        requires_approval=requires_approval,
        description=description,
    )


_STUDENT_ACADEMIC = ["student", "teacher", "hod", "principal"]
_TEACHER_CHAIN = ["teacher", "hod", "registrar", "principal"]

# ==========================================================
# APPROVAL CHAINS PER REQUEST TYPE
# (first role originates, last role is the final authority)
# ==========================================================
REQUEST_TYPE_HIERARCHIES: List[RequestTypeHierarchy] = [
    # --- ACADEMIC ---
    _chain("certificate", "Academic", ["student", "clerk", "registrar", "principal"],
           "Certificate requests follow academic hierarchy"),
    _chain("achievement", "Academic", _STUDENT_ACADEMIC,
           "Achievement submissions for verification"),
    _chain("academic", "Academic", _STUDENT_ACADEMIC, "General academic requests"),
    _chain("leave", "Academic", _STUDENT_ACADEMIC, "Student leave applications"),

    # --- MAINTENANCE ---
    _chain("maintenance", "Technical", ["student", "clerk", "electrician", "civil_supervisor", "registrar"],
           "General maintenance requests"),
    _chain("electrical", "Technical", ["student", "clerk", "electrician", "civil_supervisor", "registrar"],
           "Electrical maintenance issues"),
    _chain("plumbing", "Technical", ["student", "clerk", "plumber", "civil_supervisor", "registrar"],
           "Plumbing and water supply issues"),
    _chain("it_maintenance", "Technical",
           ["student", "clerk", "computer_technician", "tech_lab_asst", "registrar"],
           "IT and computer maintenance"),

    # --- EQUIPMENT & TOOLS ---
    _chain("tool_request", "Equipment", ["workshop_instructor", "asst_store", "registrar"],
           "Workshop tool and equipment requests"),
    _chain("lab_equipment", "Equipment", ["tech_lab_asst", "asst_store", "registrar"],
           "Laboratory equipment requests"),
    _chain("computer_equipment", "Equipment", ["computer_technician", "asst_store", "registrar"],
           "Computer and IT equipment requests"),

    # --- STOCK & INVENTORY ---
    _chain("inventory", "Inventory", ["workshop_instructor", "asst_store", "registrar"],
           "Inventory issue and replenishment requests"),
    _chain("stock_request", "Inventory", ["workshop_instructor", "asst_store", "registrar"],
           "General stock and inventory requests"),
    _chain("plumbing_stock", "Inventory", ["plumber", "asst_store", "registrar"],
           "Plumbing supplies and materials"),
    _chain("electrical_stock", "Inventory", ["electrician", "asst_store", "registrar"],
           "Electrical supplies and materials"),

    # --- LIBRARY ---
    _chain("library_request", "Library", ["student", "asst_librarian", "registrar"],
           "Library book and resource requests"),
    _chain("library_timing", "Library", ["asst_librarian", "registrar", "principal"],
           "Library timing and schedule changes"),

    # --- FINANCIAL ---
    _chain("fee_payment", "Financial", ["student", "accounts_asst", "registrar"],
           "Student fee payments", auto_forward=False, requires_approval=False),
    _chain("fee_waiver", "Financial", ["student", "accounts_asst", "registrar", "principal"],
           "Fee waiver applications"),
    _chain("payroll", "Financial", ["clerk", "accounts_asst", "registrar"],
           "Staff payroll and salary requests"),

    # --- SECURITY & SAFETY ---
    _chain("security_incident", "Security", ["security_guard", "registrar", "principal"],
           "Security incident reports"),
    _chain("visitor_log", "Security", ["security_guard", "registrar"],
           "Visitor entry and exit logs", auto_forward=False, requires_approval=False),
    _chain("fire_incident", "Safety", ["fire_operator", "registrar", "principal"],
           "Fire safety incident reports"),
    _chain("safety_audit", "Safety", ["fire_operator", "civil_supervisor", "registrar"],
           "Safety audit and inspection reports"),

    # --- HOSTEL ---
    _chain("hostel_allocation", "Hostel", ["student", "girls_hostel_rector", "registrar"],
           "Hostel room allocation requests"),
    _chain("hostel_complaint", "Hostel", ["student", "girls_hostel_rector", "registrar"],
           "Hostel-related complaints"),

    # --- STAFF MANAGEMENT ---
    _chain("staff_leave", "Administrative", ["clerk", "registrar", "principal"],
           "Staff leave applications"),
    _chain("performance_review", "Administrative", ["hod", "registrar", "principal"],
           "Faculty performance reviews"),

    # --- TECHNICAL SUPPORT ---
    _chain("it_complaint", "Technical", ["student", "computer_technician", "tech_lab_asst", "registrar"],
           "IT and computer complaints"),
    _chain("lab_assistance", "Technical", ["student", "tech_lab_asst", "hod", "registrar"],
           "Laboratory assistance requests"),

    # --- WORKSHOP ---
    _chain("workshop_request", "Workshop", ["student", "workshop_instructor", "hod", "registrar"],
           "Workshop equipment and safety requests"),
    _chain("safety_notice", "Workshop", ["workshop_instructor", "registrar", "principal"],
           "Workshop safety notices and protocols"),

    # --- UTILITY ---
    _chain("etp_operation", "Utility", ["etp_operator", "civil_supervisor", "registrar"],
           "ETP plant operation reports"),
    _chain("general_service", "Utility", ["peon", "clerk", "registrar"],
           "General service and support requests"),

    # --- TEACHER APPLICATIONS & COMPLAINTS ---
    _chain("teacher_application", "Teacher", _TEACHER_CHAIN,
           "Teacher applications for leave, resources, permissions, etc."),
    _chain("teacher_complaint", "Teacher", _TEACHER_CHAIN,
           "Teacher complaints about infrastructure, technology, administrative issues"),
    _chain("teacher_leave", "Teacher", _TEACHER_CHAIN, "Teacher leave applications"),
    _chain("teacher_resource", "Teacher", _TEACHER_CHAIN, "Teacher resource and equipment requests"),
    _chain("teacher_permission", "Teacher", _TEACHER_CHAIN,
           "Teacher permission requests for schedule changes, events, etc."),

    # --- GENERAL ---
    _chain("general", "General", ["student", "clerk", "registrar"], "General inquiries and requests"),
    _chain("complaint", "General", ["student", "clerk", "registrar", "principal"],
           "General complaints and grievances"),
    _chain("feedback", "General", ["student", "clerk", "registrar"],
           "Feedback and suggestions", auto_forward=False, requires_approval=False),
]

_BY_TYPE = {h.request_type: h for h in REQUEST_TYPE_HIERARCHIES}


def get_request_type_hierarchy(request_type: str) -> Optional[RequestTypeHierarchy]:
    return _BY_TYPE.get(request_type)


def is_known_request_type(request_type: str) -> bool:
    return request_type in _BY_TYPE


def get_hierarchies_by_category(category: str) -> List[RequestTypeHierarchy]:
    return [h for h in REQUEST_TYPE_HIERARCHIES if h.category == category]


def get_next_approver_for_request_type(current_role, request_type: str) -> Optional[UserRole]:
    hierarchy = get_request_type_hierarchy(request_type)
    role = as_role(current_role)
    if not hierarchy or role is None or role not in hierarchy.hierarchy:
        return None

    index = hierarchy.hierarchy.index(role)
    if index >= len(hierarchy.hierarchy) - 1:
        return None  # already the final authority
    return hierarchy.hierarchy[index + 1]


def can_approve_request_type(role, request_type: str) -> bool:
    hierarchy = get_request_type_hierarchy(request_type)
    resolved = as_role(role)
    if not hierarchy or resolved is None:
        return False
    return resolved in hierarchy.hierarchy


def get_request_types_for_role(role) -> List[str]:
    resolved = as_role(role)
    return [h.request_type for h in REQUEST_TYPE_HIERARCHIES if resolved in h.hierarchy]


def get_categories_for_role(role) -> List[str]:
    resolved = as_role(role)
    categories = []
    for h in REQUEST_TYPE_HIERARCHIES:
        if resolved in h.hierarchy and h.category not in categories:
            categories.append(h.category)
    return categories
