import math
from types import SimpleNamespace

import pytest

from admin_backend.core import rbac
from admin_backend.core.rbac import Role, RiskTier
from admin_backend.db.seeds import seed_policy


class TestHasPermission:
    def test_granted_permission(self):
        assert rbac.has_permission("support_admin", "users:suspend")
        assert rbac.has_permission("finance_admin", "payments:release_escrow")

    def test_missing_grant_is_denied(self):
        assert not rbac.has_permission("moderator", "payments:release_escrow")
        assert not rbac.has_permission("support_admin", "users:ban_permanent")

    @pytest.mark.parametrize("role", [r for r in Role if r is not Role.SUPER_ADMIN])
    def test_unknown_permission_denied_for_every_non_super_role(self, role):
        assert not rbac.has_permission(role, "spaceships:launch")

    def test_super_admin_wildcard(self):
        assert rbac.has_permission("super_admin", "admins:delete")
        assert rbac.has_permission("super_admin", "audit:export")

    @pytest.mark.parametrize("role,permission", [
        (None, "users:view"),
        ("", "users:view"),
        ("root", "users:view"),
        (42, "users:view"),
        ("super_admin", None),
        ("super_admin", ""),
        ("super_admin", "users"),
        ("super_admin", ":view"),
        ("super_admin", 17),
    ])
    def test_malformed_input_never_grants(self, role, permission):
        assert rbac.has_permission(role, permission) is False

    def test_marketplace_roles_hold_no_admin_permissions(self):
        for role in seed_policy.MARKETPLACE_ROLES:
            assert rbac.permissions_for_role(role) == frozenset()

    def test_resource_wildcard(self, monkeypatch):
        source = SimpleNamespace(**{
            name: getattr(seed_policy, name) for name in dir(seed_policy) if name.isupper()
        })
        source.PERMISSION_GRANTS = {"payments:*": ["moderator"], "payments:view": []}
        monkeypatch.setattr(rbac, "TABLES", rbac.build_tables(source))

        assert rbac.has_permission("moderator", "payments:view")
        assert rbac.has_permission("moderator", "payments:process_payout")
        assert not rbac.has_permission("moderator", "users:view")


class TestAnyAll:
    def test_any(self):
        assert rbac.has_any_permission("moderator", ["payments:view", "listings:approve"])
        assert not rbac.has_any_permission("moderator", ["payments:view"])

    def test_all(self):
        assert rbac.has_all_permissions("moderator", ["listings:view", "listings:approve"])
        assert not rbac.has_all_permissions("moderator", ["listings:view", "payments:view"])

    def test_empty_lists_are_false(self):
        assert rbac.has_any_permission("super_admin", []) is False
        assert rbac.has_all_permissions("super_admin", []) is False


class TestNormalizeRole:
    @pytest.mark.parametrize("raw,expected", [
        ("admin", Role.SUPER_ADMIN),
        (" Support_Admin ", Role.SUPPORT_ADMIN),
        ("host", Role.HOST),
        (Role.FINANCE_ADMIN, Role.FINANCE_ADMIN),
        (None, Role.GUEST),
        ("root", Role.GUEST),
        (3.5, Role.GUEST),
    ])
    def test_normalize(self, raw, expected):
        assert rbac.normalize_role(raw) is expected

    def test_legacy_admin_behaves_as_super_admin(self):
        assert rbac.has_permission("admin", "settings:edit")

    def test_is_admin_role(self):
        assert rbac.is_admin_role("compliance_admin")
        assert rbac.is_admin_role("admin")
        assert not rbac.is_admin_role("host")
        assert not rbac.is_admin_role(None)


class TestRisk:
    def test_tiers(self):
        assert rbac.risk_level_of("users:view") is RiskTier.LOW
        assert rbac.risk_level_of("listings:approve") is RiskTier.MEDIUM
        assert rbac.risk_level_of("users:suspend") is RiskTier.HIGH
        assert rbac.risk_level_of("payments:release_escrow") is RiskTier.CRITICAL

    def test_unclassified_is_low(self):
        assert rbac.risk_level_of("spaceships:launch") is RiskTier.LOW
        assert rbac.risk_level_of(None) is RiskTier.LOW

    def test_critical(self):
        assert rbac.is_critical_action("payments:process_payout")
        assert not rbac.is_critical_action("users:suspend")

    def test_reason_required_from_high(self):
        assert rbac.requires_reason("users:suspend")
        assert rbac.requires_reason("payments:release_escrow")
        assert not rbac.requires_reason("listings:approve")


class TestThresholds:
    def test_refund_ceilings(self):
        assert rbac.max_threshold_for("support_admin", "refund") == 100_000
        assert rbac.max_threshold_for("operations_admin", "refund") == 500_000
        assert rbac.max_threshold_for("finance_admin", "refund") == 5_000_000
        assert rbac.max_threshold_for("super_admin", "refund") == math.inf

    def test_absent_is_zero(self):
        assert rbac.max_threshold_for("moderator", "refund") == 0
        assert rbac.max_threshold_for("support_admin", "payout") == 0
        assert rbac.max_threshold_for("finance_admin", "bonus") == 0
        assert rbac.max_threshold_for(None, "refund") == 0

    @pytest.mark.parametrize("amount,expected", [
        (5_000_001, True),
        (5_000_000, False),
        (250, False),
        ("7000000", True),
        ("lots", True),
        (None, True),
        (float("nan"), True),
    ])
    def test_dual_approval(self, amount, expected):
        assert rbac.requires_dual_approval(amount) is expected


class TestHierarchy:
    def test_can_oversee(self):
        assert rbac.can_oversee("super_admin", "moderator")
        assert rbac.can_oversee("operations_admin", "support_admin")
        assert not rbac.can_oversee("finance_admin", "support_admin")
        assert not rbac.can_oversee("support_admin", "operations_admin")

    def test_escalation_targets(self):
        assert rbac.escalation_targets("support_admin") == (Role.OPERATIONS_ADMIN, Role.SUPER_ADMIN)
        assert rbac.escalation_targets("host") == ()

    def test_session_timeouts(self):
        assert rbac.session_timeout_for("support_admin") == 3600
        assert rbac.session_timeout_for("finance_admin") == 900
        assert rbac.session_timeout_for("host") == 900


def test_tables_are_read_only():
    with pytest.raises(TypeError):
        rbac.TABLES.role_permissions[Role.GUEST] = frozenset({"*"})
    with pytest.raises(TypeError):
        rbac.TABLES.permission_risk["users:suspend"] = RiskTier.LOW


def test_permissions_for_role_expands_wildcard():
    perms = rbac.permissions_for_role("super_admin")
    assert "*" not in perms
    assert "audit:export" in perms
    assert perms == rbac.TABLES.known_permissions
