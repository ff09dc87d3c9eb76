from datetime import date

from pydantic import BaseModel, Field

from vault_access.models.domain.common import UtcDatetime
from vault_access.models.domain.errors import AccessError


class LegacyAccessGrant(BaseModel):
    """Per-beneficiary access grant issued when an account goes inactive."""

    account_id: str
    beneficiary_email: str
    access_token: str
    granted_at: UtcDatetime
    expires_at: UtcDatetime
    email_sent: bool = False
    email_sent_at: UtcDatetime | None = None
    first_used_at: UtcDatetime | None = None

    def is_expired(self, now: UtcDatetime) -> bool:
        return now >= self.expires_at

    def to_record(self) -> dict:
        return self.model_dump(mode="json")


class GrantMarker(BaseModel):
    """Processed marker: grants for this inactivity episode were issued."""

    account_id: str
    processed_at: UtcDatetime
    beneficiary_count: int = 0
    # last activity the episode was measured from; a new login starts a new episode
    episode_started_at: UtcDatetime | None = None

    def to_record(self) -> dict:
        return self.model_dump(mode="json")


class WarningRecord(BaseModel):
    account_id: str
    warning_date: date
    sent_at: UtcDatetime
    days_until_inactive: int

    def to_record(self) -> dict:
        return self.model_dump(mode="json")


class GrantValidationResult(BaseModel):
    valid: bool
    grant: LegacyAccessGrant | None = None
    error: AccessError | None = None


class WarningPassResult(BaseModel):
    accounts_checked: int = 0
    warnings_sent: int = 0
    warnings_queued: int = 0
    errors: list[dict] = Field(default_factory=list)


class InactivityPassResult(BaseModel):
    accounts_checked: int = 0
    accounts_marked_inactive: int = 0
    access_grants_issued: int = 0
    notifications_queued: int = 0
    accounts_skipped_processed: int = 0
    errors: list[dict] = Field(default_factory=list)
