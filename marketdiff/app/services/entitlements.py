"""Application wiring for the entitlement manager."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from ...store import create_store, load_store_config
from ..entitlements import (
    AdvisoryNotifier,
    EntitlementManager,
    JsonFileEntitlementCache,
    Transaction,
    VerificationFailed,
)


logger = logging.getLogger("entitlements")


class LoggingAdvisoryNotifier(AdvisoryNotifier):
    """Records the latest advisory for the UI and writes it to the log."""

    def __init__(self) -> None:
        self.latest: Optional[str] = None

    def notify_unverified(self, transaction: Transaction, error: VerificationFailed) -> None:
        self.latest = error.message
        logger.warning(
            "Unverified transaction %s product=%s reason=%s",
            transaction.transaction_id,
            transaction.product_id,
            error.message,
        )

    def acknowledge(self) -> Optional[str]:
        message, self.latest = self.latest, None
        return message


@lru_cache(maxsize=1)
def get_advisory_notifier() -> LoggingAdvisoryNotifier:
    return LoggingAdvisoryNotifier()


@lru_cache(maxsize=1)
def get_entitlement_manager() -> EntitlementManager:
    config = load_store_config()
    store = create_store(config)
    cache = JsonFileEntitlementCache(config.cache_path)
    manager = EntitlementManager(
        store=store,
        cache=cache,
        notifier=get_advisory_notifier(),
        catalog_max_attempts=config.catalog_max_attempts,
        catalog_backoff_seconds=config.catalog_backoff_seconds,
        reconcile_timeout_seconds=config.reconcile_timeout_seconds,
        listener_restart_backoff_seconds=config.listener_restart_backoff_seconds,
        listener_max_restarts=config.listener_max_restarts,
    )
    logger.info(
        "Entitlement manager configured",
        extra={"store_provider": config.provider_name, "cache_path": config.cache_path},
    )
    return manager


__all__ = ["get_advisory_notifier", "get_entitlement_manager", "LoggingAdvisoryNotifier"]
