"""Default role/permission, risk and threshold data for the policy engine.

Plain data only; ``admin_backend.core.rbac`` freezes it into immutable
tables at import time.
"""

import math

ADMIN_ROLES = [
    "super_admin",
    "operations_admin",
    "moderator",
    "verification_admin",
    "support_admin",
    "finance_admin",
    "compliance_admin",
]

MARKETPLACE_ROLES = ["user", "host", "agent", "seller", "service", "provider"]

# Legacy role strings still found in older sessions / tokens.
LEGACY_ROLE_ALIASES = {
    "admin": "super_admin",
}

# super_admin holds "*" and is not listed per permission.
PERMISSION_GRANTS = {
    # Dashboard
    "dashboard:view": ADMIN_ROLES,
    "dashboard:view_revenue": ["finance_admin"],
    "dashboard:view_system_health": [],

    # Admin management and platform configuration are super_admin only
    "admins:view": [],
    "admins:create": [],
    "admins:edit_role": [],
    "admins:suspend": [],
    "admins:delete": [],
    "admins:force_password_reset": [],
    "admins:view_sessions": [],
    "admins:restrict_permissions": [],
    "settings:view": [],
    "settings:edit": [],
    "settings:commission": [],
    "settings:feature_flags": [],
    "settings:payment_gateway": [],
    "settings:region_management": [],
    "settings:announcements": [],

    # Users
    "users:view": ["operations_admin", "support_admin", "compliance_admin"],
    "users:edit": ["operations_admin"],
    "users:view_pii_masked": ["operations_admin", "compliance_admin", "support_admin"],
    "users:view_pii_unmasked": ["compliance_admin"],
    "users:temp_suspend": ["operations_admin", "support_admin", "moderator"],
    "users:suspend": ["operations_admin", "support_admin"],
    "users:ban_permanent": ["operations_admin"],
    "users:delete": [],
    "users:merge_accounts": ["operations_admin"],
    "users:unlock_account": ["operations_admin", "support_admin"],
    "users:update_profile": ["operations_admin", "support_admin"],
    "users:reset_verification": ["operations_admin", "support_admin"],

    # Listings
    "listings:view": ["operations_admin", "moderator"],
    "listings:approve": ["operations_admin", "moderator"],
    "listings:reject": ["operations_admin", "moderator"],
    "listings:flag": ["operations_admin", "moderator"],
    "listings:request_edit": ["operations_admin", "moderator"],
    "listings:delete": ["operations_admin"],
    "listings:bulk_actions": ["operations_admin"],
    "listings:feature": ["operations_admin"],

    # Bookings
    "bookings:view": ["operations_admin", "support_admin"],
    "bookings:cancel": ["operations_admin"],
    "bookings:modify": ["operations_admin", "support_admin"],
    "bookings:resolve_dispute": ["operations_admin", "support_admin"],

    # Payments & escrow
    "payments:view": ["finance_admin"],
    "payments:view_amounts": ["finance_admin"],
    "payments:release_escrow": ["finance_admin", "operations_admin"],
    "payments:freeze_escrow": ["finance_admin"],
    "payments:process_refund": ["finance_admin"],
    "payments:process_refund_small": ["finance_admin", "support_admin"],
    "payments:process_payout": ["finance_admin"],
    "payments:dual_approve": ["finance_admin"],
    "payments:view_reports": ["finance_admin"],
    "payments:tax_reporting": ["finance_admin"],
    "payments:reconciliation": ["finance_admin"],
    "payments:chargeback": ["finance_admin"],

    # Analytics
    "analytics:view": ["operations_admin", "finance_admin"],
    "analytics:export": ["operations_admin"],
    "analytics:view_revenue": ["finance_admin"],
    "analytics:view_engagement": ["operations_admin"],

    # Reports
    "reports:view": ["operations_admin", "moderator", "support_admin"],
    "reports:resolve": ["operations_admin", "moderator"],
    "reports:escalate": ["operations_admin", "moderator", "support_admin"],

    # Provider verification
    "verification:view": ["operations_admin", "verification_admin"],
    "verification:approve": ["operations_admin", "verification_admin"],
    "verification:reject": ["operations_admin", "verification_admin"],
    "verification:request_docs": ["operations_admin", "verification_admin"],
    "verification:upgrade_tier": ["operations_admin"],

    # Support tickets and live chat
    "tickets:view": ["operations_admin", "support_admin"],
    "tickets:respond": ["operations_admin", "support_admin"],
    "tickets:escalate": ["operations_admin", "support_admin"],
    "tickets:close": ["operations_admin", "support_admin"],
    "tickets:label": ["operations_admin", "support_admin"],
    "tickets:route": ["operations_admin", "support_admin"],
    "chat:live": ["operations_admin", "support_admin"],
    "chat:route": ["operations_admin", "support_admin"],

    # KYC / compliance
    "kyc:view": ["compliance_admin"],
    "kyc:approve": ["compliance_admin"],
    "kyc:approve_l3": ["compliance_admin", "verification_admin"],
    "kyc:reject": ["compliance_admin"],
    "kyc:flag_risk": ["compliance_admin"],
    "kyc:freeze_account": ["compliance_admin"],
    "kyc:sanctions_screening": ["compliance_admin"],
    "kyc:file_sar": ["compliance_admin"],
    "kyc:risk_scoring": ["compliance_admin"],
    "kyc:block_jurisdiction": ["compliance_admin"],
    "kyc:view_documents": ["compliance_admin", "verification_admin"],
    "compliance:gdpr_requests": ["compliance_admin"],
    "compliance:data_export": ["compliance_admin"],
    "compliance:consent_management": ["compliance_admin"],
    "compliance:data_retention": ["compliance_admin"],

    # Audit
    "audit:view": ["compliance_admin"],
    "audit:export": [],
    "audit:admin_behavior": [],

    # Escalation and inter-admin messaging
    "escalation:create": ADMIN_ROLES,
    "escalation:receive": ["finance_admin", "operations_admin", "compliance_admin"],
    "messaging:admin_chat": ADMIN_ROLES,
    "messaging:panel_channels": ADMIN_ROLES,
    "messaging:secure_send": [],

    # Providers and quality
    "providers:view": ["operations_admin", "support_admin"],
    "providers:suspend": ["operations_admin"],
    "providers:remove": [],
    "providers:view_performance": ["operations_admin"],
    "quality:review_decisions": ["operations_admin"],
    "quality:view_metrics": ["operations_admin"],
}

# Anything not listed here is "low".
RISK_TIERS = {
    "medium": [
        "listings:approve", "listings:reject", "listings:flag", "listings:request_edit",
        "users:edit", "users:update_profile", "users:unlock_account", "users:reset_verification",
        "users:temp_suspend", "tickets:respond", "tickets:close", "tickets:label", "tickets:route",
        "reports:resolve", "verification:request_docs", "analytics:export", "audit:export",
        "chat:live", "chat:route", "escalation:create", "bookings:modify",
        "payments:process_refund_small",
    ],
    "high": [
        "users:suspend", "users:merge_accounts", "users:view_pii_unmasked",
        "bookings:cancel", "bookings:resolve_dispute", "reports:escalate", "tickets:escalate",
        "verification:approve", "verification:reject", "verification:upgrade_tier",
        "kyc:approve", "kyc:approve_l3", "kyc:reject", "kyc:flag_risk",
        "kyc:sanctions_screening", "kyc:risk_scoring", "listings:delete",
        "listings:bulk_actions", "listings:feature", "providers:suspend",
        "compliance:gdpr_requests", "compliance:data_export", "quality:review_decisions",
    ],
    "critical": [
        "users:ban_permanent", "users:delete",
        "payments:release_escrow", "payments:freeze_escrow", "payments:process_refund",
        "payments:process_payout", "payments:dual_approve",
        "settings:edit", "settings:commission", "settings:payment_gateway",
        "kyc:freeze_account", "kyc:file_sar", "kyc:block_jurisdiction",
        "admins:create", "admins:suspend", "admins:delete", "admins:edit_role",
        "providers:remove",
    ],
}

# Naira amounts per role and kind.
THRESHOLDS = {
    "refund": {
        "support_admin": 100_000,
        "operations_admin": 500_000,
        "finance_admin": 5_000_000,
        "super_admin": math.inf,
    },
    "payout": {
        "finance_admin": 5_000_000,
        "super_admin": math.inf,
    },
}

# Above this, two principals must approve regardless of role.
DUAL_APPROVAL_AMOUNT = 5_000_000

ROLE_HIERARCHY = {
    "super_admin": ["finance_admin", "operations_admin", "compliance_admin"],
    "operations_admin": ["moderator", "verification_admin", "support_admin"],
}

ESCALATION_TARGETS = {
    "support_admin": ["operations_admin", "super_admin"],
    "moderator": ["operations_admin", "super_admin"],
    "verification_admin": ["operations_admin", "compliance_admin", "super_admin"],
    "operations_admin": ["finance_admin", "compliance_admin", "super_admin"],
    "finance_admin": ["compliance_admin", "super_admin"],
    "compliance_admin": ["super_admin"],
}

# Idle timeout in seconds before the console locks.
SESSION_TIMEOUTS = {
    "super_admin": 15 * 60,
    "finance_admin": 15 * 60,
    "compliance_admin": 15 * 60,
    "operations_admin": 30 * 60,
    "moderator": 30 * 60,
    "verification_admin": 30 * 60,
    "support_admin": 60 * 60,
}
