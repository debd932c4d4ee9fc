"""PII masking by viewer role, computed at read time."""

import enum
import re
from typing import Any, Dict, Optional

from admin_backend.core.rbac import Role, normalize_role

HIDDEN = "***hidden***"
HIDDEN_EMAIL = "***@***.***"


class MaskLevel(str, enum.Enum):
    FULL = "full"
    PARTIAL = "partial"
    MASKED = "masked"


FULL_ACCESS_ROLES = frozenset({Role.SUPER_ADMIN, Role.COMPLIANCE_ADMIN})
PARTIAL_ACCESS_ROLES = frozenset({Role.SUPPORT_ADMIN, Role.OPERATIONS_ADMIN})

PHONE_FIELDS = ("phone", "userPhone", "user_phone", "phone_number")
EMAIL_FIELDS = ("email", "userEmail", "user_email")
NAME_FIELDS = ("name", "userName", "user_name", "providerName", "provider_name", "full_name")
ACCOUNT_FIELDS = ("bankAccount", "bank_account", "accountNumber", "account_number")
NATIONAL_ID_FIELDS = ("bvn", "nin", "national_id")


# Exact shapes each masker produces; anything else is treated as raw input.
_MASKED_PHONE = re.compile(r"\d{3}\*+\d{4}")
_MASKED_EMAIL = re.compile(r"[^\s@*]\*{3}[^\s@*]?@[^\s@]+")
_MASKED_NAME = re.compile(r"(?:[^\s*]\.|[^\s*]{2}\*{3}\S)(?: (?:[^\s*]\.|[^\s*]{2}\*{3}\S))*")
_MASKED_ACCOUNT = re.compile(r"\*{6}\S{4}|\*{3}\S{1,4}")
_PLACEHOLDERS = frozenset({"***", "******", HIDDEN, HIDDEN_EMAIL})


def _is_masked(value: str, shape: re.Pattern) -> bool:
    return value in _PLACEHOLDERS or shape.fullmatch(value) is not None


def mask_phone(phone: Any) -> str:
    """080****5678 - keeps the digit count, shows 3 leading and 4 trailing digits."""
    if not phone or not isinstance(phone, str):
        return "***"
    if _is_masked(phone, _MASKED_PHONE):
        return phone
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 10:
        return "***"
    return digits[:3] + "*" * (len(digits) - 7) + digits[-4:]


def mask_email(email: Any) -> str:
    """u***r@mail.com"""
    if not email or not isinstance(email, str):
        return HIDDEN_EMAIL
    if _is_masked(email, _MASKED_EMAIL):
        return email
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain:
        return HIDDEN_EMAIL
    if len(local) <= 2:
        return local[0] + "***@" + domain
    return local[0] + "***" + local[-1] + "@" + domain


def mask_name(name: Any) -> str:
    """Chioma Eze -> Ch***a Ez***e"""
    if not name or not isinstance(name, str) or not name.strip():
        return "***"
    if _is_masked(name, _MASKED_NAME):
        return name
    masked = []
    for part in name.split():
        if len(part) <= 2:
            masked.append(part[0] + ".")
        else:
            masked.append(part[:2] + "***" + part[-1])
    return " ".join(masked)


def mask_account(account: Any) -> str:
    """******3456"""
    if not account or not isinstance(account, str):
        return "******"
    if _is_masked(account, _MASKED_ACCOUNT):
        return account
    if len(account) <= 4:
        return "***" + account
    return "******" + account[-4:]


def mask_level_for(role: Any) -> MaskLevel:
    role = normalize_role(role)
    if role in FULL_ACCESS_ROLES:
        return MaskLevel.FULL
    if role in PARTIAL_ACCESS_ROLES:
        return MaskLevel.PARTIAL
    return MaskLevel.MASKED


def apply_masking(record: Optional[Dict[str, Any]], role: Any) -> Optional[Dict[str, Any]]:
    """Return a shallow copy of ``record`` with PII fields masked for ``role``.

    Unrecognized fields pass through. Bank accounts and national
    identifiers are hidden for every role without full access.
    """
    if not isinstance(record, dict):
        return record

    level = mask_level_for(role)
    masked = dict(record)
    if level is MaskLevel.FULL:
        return masked

    for field in PHONE_FIELDS:
        if masked.get(field):
            masked[field] = mask_phone(masked[field]) if level is MaskLevel.PARTIAL else HIDDEN

    for field in EMAIL_FIELDS:
        if masked.get(field):
            masked[field] = mask_email(masked[field]) if level is MaskLevel.PARTIAL else HIDDEN_EMAIL

    if level is MaskLevel.MASKED:
        for field in NAME_FIELDS:
            if masked.get(field):
                masked[field] = mask_name(masked[field])

    for field in ACCOUNT_FIELDS + NATIONAL_ID_FIELDS:
        if masked.get(field):
            masked[field] = HIDDEN

    return masked


# Contact details in free text (chat transcripts, ticket bodies)
CONTACT_PATTERNS = [
    # Nigerian mobile
    re.compile(r"(\+?234|0)[-.\s]?[7-9][01]\d[-.\s]?\d{3}[-.\s]?\d{4}"),
    # Generic international phone
    re.compile(r"(\+\d{1,3}[\s.-]?)?\(?\d{2,4}\)?[\s.-]?\d{3,4}[\s.-]?\d{3,4}"),
    re.compile(r"wa\.me/\+?\d{7,15}", re.IGNORECASE),
    re.compile(
        r"\b(wa|whatsapp|watsapp|call me|phone|mobile|tel|contact me on|reach me on|chat on)"
        r"\s*:?\s*(\+?[\d\s().-]{7,15})",
        re.IGNORECASE,
    ),
    re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
    # Social handles
    re.compile(r"@[a-zA-Z0-9_.]{3,30}"),
]

CONTACT_REPLACEMENT = "[ Contact hidden - complete booking to exchange details ]"


def mask_contacts(text: Any) -> Any:
    if not text or not isinstance(text, str):
        return text
    for pattern in CONTACT_PATTERNS:
        text = pattern.sub(CONTACT_REPLACEMENT, text)
    return text


def contains_contact(text: Any) -> bool:
    if not text or not isinstance(text, str):
        return False
    return any(pattern.search(text) for pattern in CONTACT_PATTERNS)
