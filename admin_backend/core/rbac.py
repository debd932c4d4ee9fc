"""Role-based access control: permissions, risk tiers and thresholds.

Every check here is pure and total. Missing or malformed data never
grants access.
"""

import enum
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Tuple, FrozenSet

from admin_backend.db.seeds import seed_policy

WILDCARD = "*"


class Role(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    OPERATIONS_ADMIN = "operations_admin"
    FINANCE_ADMIN = "finance_admin"
    COMPLIANCE_ADMIN = "compliance_admin"
    MODERATOR = "moderator"
    VERIFICATION_ADMIN = "verification_admin"
    SUPPORT_ADMIN = "support_admin"
    USER = "user"
    HOST = "host"
    AGENT = "agent"
    SELLER = "seller"
    SERVICE = "service"
    PROVIDER = "provider"
    GUEST = "guest"


class RiskTier(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ThresholdKind(str, enum.Enum):
    REFUND = "refund"
    PAYOUT = "payout"


@dataclass(frozen=True)
class PolicyTables:
    """Immutable role/permission/risk/threshold tables."""

    role_permissions: Mapping[Role, FrozenSet[str]]
    permission_risk: Mapping[str, RiskTier]
    thresholds: Mapping[ThresholdKind, Mapping[Role, float]]
    dual_approval_amount: float
    hierarchy: Mapping[Role, Tuple[Role, ...]]
    escalation: Mapping[Role, Tuple[Role, ...]]
    session_timeouts: Mapping[Role, int]
    admin_roles: FrozenSet[Role]
    aliases: Mapping[str, Role]

    @property
    def known_permissions(self) -> FrozenSet[str]:
        return frozenset(self.permission_risk) | frozenset(
            p for perms in self.role_permissions.values() for p in perms if p != WILDCARD
        )


def _freeze_roles(mapping: Mapping[str, Iterable[str]]) -> Mapping[Role, Tuple[Role, ...]]:
    return MappingProxyType({Role(k): tuple(Role(v) for v in vs) for k, vs in mapping.items()})


def build_tables(source=seed_policy) -> PolicyTables:
    """Freeze seed data into a ``PolicyTables`` value object."""
    grants = {role: set() for role in Role}
    grants[Role.SUPER_ADMIN].add(WILDCARD)
    for permission, roles in source.PERMISSION_GRANTS.items():
        for role in roles:
            grants[Role(role)].add(permission)

    risk = {}
    for tier, permissions in source.RISK_TIERS.items():
        for permission in permissions:
            risk[permission] = RiskTier(tier)
    for permission in source.PERMISSION_GRANTS:
        risk.setdefault(permission, RiskTier.LOW)

    thresholds = {
        ThresholdKind(kind): MappingProxyType({Role(r): float(v) for r, v in limits.items()})
        for kind, limits in source.THRESHOLDS.items()
    }

    return PolicyTables(
        role_permissions=MappingProxyType({r: frozenset(p) for r, p in grants.items()}),
        permission_risk=MappingProxyType(risk),
        thresholds=MappingProxyType(thresholds),
        dual_approval_amount=float(source.DUAL_APPROVAL_AMOUNT),
        hierarchy=_freeze_roles(source.ROLE_HIERARCHY),
        escalation=_freeze_roles(source.ESCALATION_TARGETS),
        session_timeouts=MappingProxyType(
            {Role(r): int(s) for r, s in source.SESSION_TIMEOUTS.items()}
        ),
        admin_roles=frozenset(Role(r) for r in source.ADMIN_ROLES),
        aliases=MappingProxyType({k: Role(v) for k, v in source.LEGACY_ROLE_ALIASES.items()}),
    )


TABLES = build_tables()


def normalize_role(raw: Any) -> Role:
    """Map a raw role value to a ``Role``; unknown input becomes ``GUEST``."""
    if isinstance(raw, Role):
        return raw
    if not isinstance(raw, str):
        return Role.GUEST
    key = raw.strip().lower()
    if key in TABLES.aliases:
        return TABLES.aliases[key]
    try:
        return Role(key)
    except ValueError:
        return Role.GUEST


def _is_well_formed(permission: Any) -> bool:
    if not isinstance(permission, str):
        return False
    resource, sep, action = permission.partition(":")
    return bool(sep and resource and action)


def has_permission(role: Any, permission: Any) -> bool:
    """True iff the role's permission set covers ``permission``."""
    if not _is_well_formed(permission):
        return False
    granted = TABLES.role_permissions.get(normalize_role(role), frozenset())
    if WILDCARD in granted or permission in granted:
        return True
    resource = permission.split(":", 1)[0]
    return f"{resource}:{WILDCARD}" in granted


def has_any_permission(role: Any, permissions: Iterable[str]) -> bool:
    return any(has_permission(role, p) for p in permissions or ())


def has_all_permissions(role: Any, permissions: Iterable[str]) -> bool:
    permissions = list(permissions or ())
    if not permissions:
        return False
    return all(has_permission(role, p) for p in permissions)


def is_admin_role(role: Any) -> bool:
    return normalize_role(role) in TABLES.admin_roles


def risk_level_of(permission: Any) -> RiskTier:
    """Confirmation tier for a permission; unclassified permissions are low."""
    if not isinstance(permission, str):
        return RiskTier.LOW
    return TABLES.permission_risk.get(permission, RiskTier.LOW)


def is_critical_action(permission: Any) -> bool:
    return risk_level_of(permission) is RiskTier.CRITICAL


def requires_reason(permission: Any) -> bool:
    """High and critical actions need a typed reason."""
    return risk_level_of(permission) in (RiskTier.HIGH, RiskTier.CRITICAL)


def max_threshold_for(role: Any, kind: Any) -> float:
    """Ceiling for ``kind`` under ``role``; ``math.inf`` means unlimited, 0 when absent."""
    try:
        kind = ThresholdKind(kind)
    except ValueError:
        return 0.0
    return TABLES.thresholds.get(kind, {}).get(normalize_role(role), 0.0)


def requires_dual_approval(amount: Any) -> bool:
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        return True
    if math.isnan(amount):
        return True
    return amount > TABLES.dual_approval_amount


def permissions_for_role(role: Any) -> FrozenSet[str]:
    """Concrete permissions held by ``role``, wildcards expanded."""
    return frozenset(p for p in TABLES.known_permissions if has_permission(role, p))


def escalation_targets(role: Any) -> Tuple[Role, ...]:
    return TABLES.escalation.get(normalize_role(role), ())


def can_oversee(role_a: Any, role_b: Any) -> bool:
    """True if ``role_a`` sits above ``role_b`` in the reporting hierarchy."""
    a, b = normalize_role(role_a), normalize_role(role_b)
    if a is Role.SUPER_ADMIN:
        return True
    pending = list(TABLES.hierarchy.get(a, ()))
    seen = set()
    while pending:
        child = pending.pop()
        if child is b:
            return True
        if child not in seen:
            seen.add(child)
            pending.extend(TABLES.hierarchy.get(child, ()))
    return False


def session_timeout_for(role: Any) -> int:
    """Idle timeout in seconds; unknown roles get the strictest value."""
    strictest = min(TABLES.session_timeouts.values())
    return TABLES.session_timeouts.get(normalize_role(role), strictest)
