"""
Key naming scheme for everything this service stores.

Variable components are percent-encoded (":" included) so two different
entities can never map to the same key. Share link ids are used verbatim as
their own key (`share_<hex>`).
"""

from datetime import date
from urllib.parse import quote

ACCOUNT_PREFIX = "user:"
BENEFICIARY_PREFIX = "beneficiary:"
SHARE_PREFIX = "share_"
COLLECTION_SHARES_PREFIX = "collection_shares:"
OWNER_SHARES_PREFIX = "owner_shares:"
GRANT_PREFIX = "legacy_access_grant:"
GRANT_TOKEN_PREFIX = "legacy_access_token:"
WARNING_PREFIX = "inactivity_warning:"
EMAIL_QUEUE_PREFIX = "email_queue:"
AUDIT_LOG_PREFIX = "audit_log:"


def _part(value: str) -> str:
    return quote(str(value), safe="")


def _email(value: str) -> str:
    return _part(value.strip().lower())


def account_key(account_id: str) -> str:
    return f"{ACCOUNT_PREFIX}{_part(account_id)}"


def beneficiary_prefix(account_id: str) -> str:
    return f"{BENEFICIARY_PREFIX}{_part(account_id)}:"


def beneficiary_key(account_id: str, email: str) -> str:
    return f"{beneficiary_prefix(account_id)}{_email(email)}"


def share_key(share_id: str) -> str:
    return share_id


def collection_shares_key(collection_id: str) -> str:
    return f"{COLLECTION_SHARES_PREFIX}{_part(collection_id)}"


def owner_shares_key(owner_id: str) -> str:
    return f"{OWNER_SHARES_PREFIX}{_part(owner_id)}"


def grant_marker_key(account_id: str) -> str:
    return f"{GRANT_PREFIX}{_part(account_id)}"


def grant_key(account_id: str, beneficiary_email: str) -> str:
    return f"{grant_marker_key(account_id)}:{_email(beneficiary_email)}"


def grant_token_key(token: str) -> str:
    return f"{GRANT_TOKEN_PREFIX}{_part(token)}"


def warning_key(account_id: str, day: date) -> str:
    return f"{WARNING_PREFIX}{_part(account_id)}:{day.isoformat()}"


def email_queue_key(email_id: str) -> str:
    return f"{EMAIL_QUEUE_PREFIX}{_part(email_id)}"


def audit_log_key(timestamp_iso: str, event_id: str) -> str:
    return f"{AUDIT_LOG_PREFIX}{_part(timestamp_iso)}:{_part(event_id)}"
