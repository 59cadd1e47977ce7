from college_erp.core.hierarchy import (
    HIERARCHY_CONFIG,
    RoleGroup,
    can_approve_role,
    can_receive_from,
    can_send_request_to,
    find_asymmetric_pairs,
    find_request_flow,
    get_next_approver,
    get_role_config,
    get_role_level,
    get_role_permissions,
    has_audit_visibility,
    role_matches,
    validate_hierarchy,
)
from college_erp.core.request_types import (
    REQUEST_TYPE_HIERARCHIES,
    can_approve_request_type,
    get_categories_for_role,
    get_hierarchies_by_category,
    get_next_approver_for_request_type,
    get_request_type_hierarchy,
    get_request_types_for_role,
)
from college_erp.models.user import UserRole


# ------------------------------------------------------------------
# Role table lookups
# ------------------------------------------------------------------
def test_role_levels():
    assert get_role_level(UserRole.Student) == 1
    assert get_role_level("teacher") == 2
    assert get_role_level(UserRole.HOD) == 3
    assert get_role_level(UserRole.Principal) == 4
    assert get_role_level("janitor") == 0


def test_every_level_in_range():
    for cfg in HIERARCHY_CONFIG.values():
        assert 1 <= cfg.level <= 4, cfg.role


def test_unknown_role_has_no_config():
    assert get_role_config("dean") is None
    assert get_role_config(None) is None
    assert not can_send_request_to("dean", UserRole.Principal)
    assert not can_receive_from("dean", UserRole.Student)
    assert not can_approve_role("dean", UserRole.Student)


def test_role_strings_are_normalized():
    assert get_role_config(" Clerk ").role == UserRole.Clerk


def test_can_send_request_to():
    assert can_send_request_to(UserRole.Student, UserRole.Teacher)
    assert can_send_request_to(UserRole.Clerk, UserRole.Registrar)
    assert not can_send_request_to(UserRole.Student, UserRole.Principal)
    assert not can_send_request_to(UserRole.Principal, UserRole.Registrar)


def test_can_receive_from():
    assert can_receive_from(UserRole.HOD, UserRole.Teacher)
    assert not can_receive_from(UserRole.HOD, UserRole.Clerk)
    assert not can_receive_from(UserRole.Student, UserRole.Teacher)


def test_role_groups_match_every_known_role():
    # electrician receives from all_staff
    assert can_receive_from(UserRole.Electrician, UserRole.Peon)
    assert can_receive_from(UserRole.Electrician, UserRole.Principal)
    # principal approves all
    for role in HIERARCHY_CONFIG:
        assert can_approve_role(UserRole.Principal, role)


def test_role_groups_never_match_unknown_roles():
    refs = frozenset([RoleGroup.All])
    assert role_matches(refs, UserRole.Clerk)
    assert not role_matches(refs, "all")
    assert not role_matches(refs, "dean")


def test_literal_group_name_is_not_a_role():
    # "all" is a group tag, never a role identifier
    assert get_role_config("all") is None
    assert not can_send_request_to("all", UserRole.Registrar)


def test_send_and_receive_tables_agree():
    assert find_asymmetric_pairs() == []


def test_validate_hierarchy_clean():
    assert validate_hierarchy() == []


# ------------------------------------------------------------------
# Flows
# ------------------------------------------------------------------
def test_exact_flow_lookup():
    flow = find_request_flow(UserRole.Clerk, UserRole.Registrar)
    assert flow is not None
    assert flow.auto_forward is True


def test_group_flow_lookup():
    # all_staff -> electrician
    flow = find_request_flow(UserRole.Peon, UserRole.Electrician)
    assert flow is not None
    assert flow.from_role == RoleGroup.AllStaff
    assert flow.auto_forward is False


def test_missing_flow():
    assert find_request_flow(UserRole.Student, UserRole.Registrar) is None
    assert find_request_flow("dean", UserRole.Registrar) is None


# ------------------------------------------------------------------
# Approval chains
# ------------------------------------------------------------------
def test_next_approver_certificate():
    assert get_next_approver(UserRole.Registrar, "certificate") == UserRole.Principal
    assert get_next_approver("clerk", "certificate") == UserRole.Registrar


def test_next_approver_follows_every_chain():
    for chain in REQUEST_TYPE_HIERARCHIES:
        roles = chain.hierarchy
        for i, role in enumerate(roles[:-1]):
            assert get_next_approver(role, chain.request_type) == roles[i + 1]
        assert get_next_approver(roles[-1], chain.request_type) is None


def test_next_approver_unknown_inputs():
    assert get_next_approver(UserRole.Registrar, "time_travel") is None
    assert get_next_approver(UserRole.Peon, "certificate") is None
    assert get_next_approver_for_request_type("dean", "certificate") is None


def test_single_chain_source():
    # the generic helper and the per-type table never disagree
    for chain in REQUEST_TYPE_HIERARCHIES:
        for role in chain.hierarchy:
            assert get_next_approver(role, chain.request_type) == \
                get_next_approver_for_request_type(role, chain.request_type)


def test_max_levels_is_chain_length():
    for chain in REQUEST_TYPE_HIERARCHIES:
        assert chain.max_levels == len(chain.hierarchy)


def test_non_forwarding_types():
    for request_type in ("fee_payment", "visitor_log", "feedback"):
        chain = get_request_type_hierarchy(request_type)
        assert chain.auto_forward is False
        assert chain.requires_approval is False


def test_hierarchies_by_category():
    inventory = get_hierarchies_by_category("Inventory")
    names = {h.request_type for h in inventory}
    assert {"inventory", "stock_request", "plumbing_stock", "electrical_stock"} <= names
    assert all(h.category == "Inventory" for h in inventory)
    assert get_hierarchies_by_category("Astrology") == []


def test_request_types_for_role():
    types = get_request_types_for_role(UserRole.AsstLibrarian)
    assert "library_request" in types
    assert "library_timing" in types
    assert "certificate" not in types
    assert get_request_types_for_role("dean") == []


def test_categories_for_role_are_unique_and_ordered():
    categories = get_categories_for_role(UserRole.Student)
    assert len(categories) == len(set(categories))
    assert categories[0] == "Academic"
    assert "Hostel" in categories


def test_can_approve_request_type():
    assert can_approve_request_type(UserRole.Registrar, "certificate")
    assert not can_approve_request_type(UserRole.Plumber, "certificate")
    assert not can_approve_request_type(UserRole.Registrar, "time_travel")


# ------------------------------------------------------------------
# Permissions
# ------------------------------------------------------------------
def test_audit_visibility():
    assert has_audit_visibility(UserRole.Principal)
    assert has_audit_visibility(UserRole.Registrar)
    assert has_audit_visibility(UserRole.Admin)
    assert not has_audit_visibility(UserRole.HOD)
    assert not has_audit_visibility("dean")


def test_permissions_default_to_none():
    perms = get_role_permissions(UserRole.Plumber)
    assert not any(perms.__dict__.values())


def test_registrar_permissions():
    perms = get_role_permissions("registrar")
    assert perms.can_approve_certificates
    assert perms.can_manage_inventory
    assert not perms.can_manage_fees
