"""
Account and beneficiary records.

Both are owned by the user-management subsystem. This service only reads them,
except for the status/activity fields on Account, so unknown fields are kept
intact across read-modify-write.
"""

from datetime import timedelta
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from vault_access.config import settings
from vault_access.models.domain.common import UtcDatetime

AccountStatus = Literal["active", "inactive"]

DAY = timedelta(days=1)


class Account(BaseModel):
    """Account fields the inactivity monitor depends on."""

    model_config = ConfigDict(extra="allow")

    id: str
    email: str
    name: str | None = None
    created_at: UtcDatetime
    last_activity_at: UtcDatetime | None = None

    legacy_access_enabled: bool = False
    account_status: AccountStatus = "active"
    inactivity_threshold_days: int = Field(
        default_factory=lambda: settings.DEFAULT_INACTIVITY_THRESHOLD_DAYS, ge=1
    )
    warning_lead_days: int = Field(default_factory=lambda: settings.DEFAULT_WARNING_LEAD_DAYS, ge=0)

    inactive_at: UtcDatetime | None = None
    reactivated_at: UtcDatetime | None = None
    legacy_message: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email

    @property
    def activity_reference(self) -> UtcDatetime:
        """Last activity, falling back to signup for accounts that never logged in."""
        return self.last_activity_at or self.created_at

    def days_since_activity(self, now: UtcDatetime) -> int:
        """Whole days elapsed since last activity (floor)."""
        return (now - self.activity_reference) // DAY

    @property
    def warning_day(self) -> int:
        return self.inactivity_threshold_days - self.warning_lead_days

    def to_record(self) -> dict:
        return self.model_dump(mode="json")


class Beneficiary(BaseModel):
    """A contact designated to receive access once the account goes inactive."""

    model_config = ConfigDict(extra="allow")

    account_id: str
    email: str
    name: str | None = None
    role: str | None = None
