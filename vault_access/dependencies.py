"""
Service wiring for the API and the background worker.

Everything is built on the Redis-backed store; tests replace these providers
through `app.dependency_overrides` or by constructing services directly.
"""

from functools import lru_cache

from vault_access.infrastructure.audit import AuditLogger
from vault_access.services.account_service import AccountService
from vault_access.services.email_queue_service import EmailQueueService
from vault_access.services.inactivity_monitor import InactivityMonitor
from vault_access.services.legacy_grant_manager import LegacyAccessGrantManager
from vault_access.services.notifier import HttpNotifier
from vault_access.services.share_link_service import ShareLinkService
from vault_access.storage.kv_store import KeyValueStore, RedisKeyValueStore


@lru_cache(maxsize=1)
def get_store() -> KeyValueStore:
    return RedisKeyValueStore()


@lru_cache(maxsize=1)
def get_notifier() -> HttpNotifier:
    return HttpNotifier(get_store())


@lru_cache(maxsize=1)
def get_audit_logger() -> AuditLogger:
    return AuditLogger(get_store())


def get_share_link_service() -> ShareLinkService:
    return ShareLinkService(get_store(), audit=get_audit_logger())


def get_account_service() -> AccountService:
    return AccountService(get_store())


def get_grant_manager() -> LegacyAccessGrantManager:
    return LegacyAccessGrantManager(
        get_store(),
        get_notifier(),
        accounts=get_account_service(),
        audit=get_audit_logger(),
    )


def get_inactivity_monitor() -> InactivityMonitor:
    return InactivityMonitor(
        get_store(),
        get_notifier(),
        accounts=get_account_service(),
        grant_manager=get_grant_manager(),
    )


def get_email_queue_service() -> EmailQueueService:
    return EmailQueueService(get_store(), get_notifier(), grant_manager=get_grant_manager())
