from typing import Any, Literal

from pydantic import BaseModel, Field

from vault_access.models.domain.common import UtcDatetime

QueueStatus = Literal["pending", "sent", "failed"]


class SendResult(BaseModel):
    success: bool
    message_id: str | None = None
    error: str | None = None


class QueuedEmail(BaseModel):
    """Retry queue entry, picked up by the email queue job."""

    id: str
    type: str
    recipient_email: str
    subject: str
    template: str
    variables: dict[str, Any] = Field(default_factory=dict)
    status: QueueStatus = "pending"
    attempts: int = 0
    max_attempts: int = 3
    next_retry: UtcDatetime
    created_at: UtcDatetime
    last_attempt_at: UtcDatetime | None = None
    sent_at: UtcDatetime | None = None
    error_message: str | None = None
    # set for beneficiary grant emails so a late delivery can be recorded on the grant
    grant_token: str | None = None

    def to_record(self) -> dict:
        return self.model_dump(mode="json")
