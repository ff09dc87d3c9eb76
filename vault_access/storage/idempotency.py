"""
Check-then-set guard for side effects that must happen once.

The marker is read *before* the effect runs and written only after the effect
reports success, so a crashed or failed run leaves the key absent and the next
scheduled run tries again.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from vault_access.infrastructure.observability.logging import get_logger
from vault_access.models.domain.errors import AccessError
from vault_access.storage.kv_store import KeyValueStore

logger = get_logger(__name__)

MarkerAction = Callable[[], Awaitable[dict[str, Any] | None]]
MarkerCheck = Callable[[dict[str, Any]], bool]


@dataclass(slots=True)
class OnceOutcome:
    """Result of an `ensure_once` call."""

    performed: bool
    marker: dict[str, Any] | None = None
    skipped_reason: AccessError | None = None

    @property
    def already_processed(self) -> bool:
        return self.skipped_reason is AccessError.ALREADY_PROCESSED


async def ensure_once(
    store: KeyValueStore,
    key: str,
    action: MarkerAction,
    is_current: MarkerCheck | None = None,
) -> OnceOutcome:
    """
    Run `action` unless a marker already exists at `key`.

    Args:
        store: Key-value store holding the marker.
        key: Marker key.
        action: Performs the side effect. Returns the marker to persist, or None
            when the effect did not complete and must be retried later.
        is_current: Optional predicate; an existing marker it rejects (e.g. one
            left by an earlier episode) is treated as absent and overwritten.
    """
    existing = await store.get(key)
    if existing is not None and (is_current is None or is_current(existing)):
        logger.debug("Idempotency marker present, skipping", marker_key=key)
        return OnceOutcome(
            performed=False, marker=existing, skipped_reason=AccessError.ALREADY_PROCESSED
        )

    marker = await action()
    if marker is None:
        logger.debug("Action did not complete, marker left absent", marker_key=key)
        return OnceOutcome(performed=False)

    await store.set(key, marker)
    return OnceOutcome(performed=True, marker=marker)
