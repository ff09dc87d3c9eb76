"""
Notification delivery for warnings and beneficiary grants.

The mail service owns template rendering and transport; this module only hands
it `{to, subject, template, variables}` and, when that fails, writes a durable
retry entry for the email queue job. Sends are attempted exactly once here.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol
from uuid import uuid4

import httpx

from vault_access.config import settings
from vault_access.infrastructure.observability.logging import get_logger
from vault_access.models.domain.common import utc_now
from vault_access.models.domain.errors import AccessError
from vault_access.models.domain.notification_domain import QueuedEmail, SendResult
from vault_access.storage import keys
from vault_access.storage.kv_store import KeyValueStore

logger = get_logger(__name__)


class NotifierError(Exception):
    """Raised when a notification cannot be sent or queued."""

    def __init__(self, message: str, recipient: str | None = None):
        super().__init__(message)
        self.recipient = recipient


class Notifier(Protocol):
    async def send(
        self, to: str, subject: str, template: str, variables: dict[str, Any]
    ) -> SendResult: ...

    async def queue(
        self,
        to: str,
        subject: str,
        template: str,
        variables: dict[str, Any],
        grant_token: str | None = None,
    ) -> str: ...


async def enqueue_email(
    store: KeyValueStore,
    to: str,
    subject: str,
    template: str,
    variables: dict[str, Any],
    grant_token: str | None = None,
) -> str:
    """Persist a retry queue entry and return its id."""
    now = utc_now()
    email_id = str(uuid4())
    entry = QueuedEmail(
        id=email_id,
        type=template,
        recipient_email=to,
        subject=subject,
        template=template,
        variables=variables,
        max_attempts=settings.EMAIL_QUEUE_MAX_ATTEMPTS,
        next_retry=now + timedelta(minutes=settings.EMAIL_QUEUE_INITIAL_DELAY_MINUTES),
        created_at=now,
        grant_token=grant_token,
    )
    await store.set(keys.email_queue_key(email_id), entry.to_record())
    logger.info("Email queued for retry", email_id=email_id, template=template)
    return email_id


class HttpNotifier:
    """Posts notifications to the mail service over HTTP."""

    def __init__(
        self,
        store: KeyValueStore,
        endpoint: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.store = store
        self.endpoint = endpoint or settings.MAILER_URL
        self.api_key = api_key or settings.MAILER_API_KEY
        self.transport = transport

    async def send(
        self, to: str, subject: str, template: str, variables: dict[str, Any]
    ) -> SendResult:
        if not self.endpoint:
            logger.warning("Mailer endpoint not configured", template=template)
            return SendResult(success=False, error="MAILER_URL not configured")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {"to": to, "subject": subject, "template": template, "variables": variables}

        try:
            async with httpx.AsyncClient(
                timeout=settings.MAILER_TIMEOUT_SECONDS, transport=self.transport
            ) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(
                "Mailer request failed",
                template=template,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SendResult(success=False, error=str(e))

        if response.is_error:
            logger.error(
                "Mailer returned an error",
                template=template,
                status_code=response.status_code,
            )
            return SendResult(success=False, error=f"HTTP {response.status_code}")

        message_id = None
        if response.headers.get("content-type", "").startswith("application/json"):
            body = response.json()
            if isinstance(body, dict):
                message_id = body.get("id")

        logger.info("Email sent", template=template, message_id=message_id)
        return SendResult(success=True, message_id=message_id)

    async def queue(
        self,
        to: str,
        subject: str,
        template: str,
        variables: dict[str, Any],
        grant_token: str | None = None,
    ) -> str:
        return await enqueue_email(self.store, to, subject, template, variables, grant_token)


@dataclass(slots=True)
class DeliveryOutcome:
    sent: bool
    queue_id: str | None = None
    error: AccessError | None = None


async def deliver_or_queue(
    notifier: Notifier,
    to: str,
    subject: str,
    template: str,
    variables: dict[str, Any],
    grant_token: str | None = None,
) -> DeliveryOutcome:
    """
    Try one send; on any failure hand the message to the retry queue.

    Raises:
        NotifierError: If the message could not even be queued.
    """
    try:
        result = await notifier.send(to, subject, template, variables)
    except Exception as e:
        logger.error(
            "Notification send raised",
            template=template,
            error=str(e),
            error_type=type(e).__name__,
        )
        result = SendResult(success=False, error=str(e))

    if result.success:
        return DeliveryOutcome(sent=True)

    try:
        queue_id = await notifier.queue(to, subject, template, variables, grant_token=grant_token)
    except Exception as e:
        raise NotifierError(f"Failed to queue {template}: {e}", recipient=to) from e

    logger.warning(
        "Notification delivery failed, queued for retry",
        template=template,
        queue_id=queue_id,
        error=result.error,
    )
    return DeliveryOutcome(sent=False, queue_id=queue_id, error=AccessError.DELIVERY_FAILED)
