import pytest

from compass.core.permissions import (
    PERMISSIONS,
    AgentMemberPermissions,
    CommonPermissions,
    PackagePermissions,
    Role,
    catalog_keys,
    derive_permissions,
    get_entry,
    normalize_delegate_permissions,
)


def test_catalog_indexes_every_group_entry_once():
    assert len(PERMISSIONS) == 18
    assert get_entry("package:update") is PackagePermissions.UPDATE
    assert get_entry("search_email:read") is CommonPermissions.SEARCH_CUSTOMER_EMAIL
    assert get_entry("agent_member:read") is AgentMemberPermissions.READ


def test_traveller_only_derives_shared_read_keys():
    assert derive_permissions(Role.TRAVELLER) == frozenset({"package:read", "countries:read"})


def test_agent_derives_entire_catalog():
    assert derive_permissions(Role.AGENT) == catalog_keys()


def test_derived_keys_respect_role_ceiling():
    for role in Role:
        for key in derive_permissions(role):
            assert role in PERMISSIONS[key].allowed_roles


def test_normalize_delegate_permissions_strips_lowercases_and_dedupes():
    result = normalize_delegate_permissions([" Package:Read", "package:read", "agent_member:create", ""])

    assert result == ["agent_member:create", "package:read"]


def test_normalize_delegate_permissions_handles_none():
    assert normalize_delegate_permissions(None) == []


def test_normalize_delegate_permissions_rejects_unknown_keys():
    with pytest.raises(ValueError) as exc_info:
        normalize_delegate_permissions(["package:read", "billing:refund"])

    assert "billing:refund" in str(exc_info.value)
