"""Background consumer of the store's transaction update feed."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

from .catalog import grants_premium
from .exceptions import VerificationFailed
from .ledger import TransactionLedger
from .models import Transaction, Unverified, Verified, VerificationResult
from .state import EntitlementState
from .store import StoreClient

logger = logging.getLogger(__name__)


class AdvisoryNotifier(Protocol):
    """Surfaces non-fatal problems to the user."""

    def notify_unverified(self, transaction: Transaction, error: VerificationFailed) -> None:
        ...


class TransactionListener:
    """Applies renewals, refunds, restores and cross-device purchases.

    Updates are handled one at a time in delivery order; an update, including
    its finish call, is fully processed before the next one is awaited. A
    revoked transaction never upgrades state; ``on_revoked`` is invoked so the
    owner can reconcile.
    """

    def __init__(
        self,
        store: StoreClient,
        state: EntitlementState,
        ledger: TransactionLedger,
        notifier: AdvisoryNotifier,
        *,
        restart_backoff_seconds: float = 2.0,
        max_restarts: Optional[int] = 5,
        on_revoked: Optional[Callable[[Transaction], Awaitable[object]]] = None,
    ) -> None:
        self._store = store
        self._state = state
        self._ledger = ledger
        self._notifier = notifier
        self._restart_backoff_seconds = max(0.0, restart_backoff_seconds)
        self._max_restarts = max_restarts
        self._on_revoked = on_revoked
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.create_task(self.run(), name="transaction-listener")
        return self._task

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        logger.info("Transaction listener stopped")

    async def run(self) -> None:
        """Consume the update feed, resubscribing after stream errors."""

        restarts = 0
        while True:
            try:
                async for result in self._store.transaction_updates():
                    await self.handle(result)
                    restarts = 0
            except Exception:
                restarts += 1
                logger.exception(
                    "Transaction update stream failed",
                    extra={"listener_restarts": restarts, "listener_max_restarts": self._max_restarts},
                )
                if self._max_restarts is not None and restarts > self._max_restarts:
                    logger.error("Transaction listener giving up after %s restarts", restarts - 1)
                    return
                if self._restart_backoff_seconds > 0:
                    await asyncio.sleep(self._restart_backoff_seconds * restarts)
                continue
            logger.info("Transaction update stream ended")
            return

    async def handle(self, result: VerificationResult) -> None:
        if isinstance(result, Verified):
            await self._handle_verified(result.transaction)
        elif isinstance(result, Unverified):
            error = VerificationFailed(result.reason)
            logger.warning(
                "Unverified transaction update: %s",
                result.reason,
                extra={"transaction_id": result.transaction.transaction_id},
            )
            try:
                self._notifier.notify_unverified(result.transaction, error)
            except Exception:
                logger.exception("Advisory notifier failed")
        else:
            logger.warning("Ignoring unrecognized transaction update %r", result)

    async def _handle_verified(self, transaction: Transaction) -> None:
        try:
            await self._ledger.finish_once(transaction, self._store.finish)
        except Exception:
            logger.exception(
                "Failed to finish transaction %s",
                transaction.transaction_id,
                extra={"product_id": transaction.product_id},
            )
            return

        if transaction.is_revoked:
            logger.info(
                "Transaction %s was revoked",
                transaction.transaction_id,
                extra={"product_id": transaction.product_id},
            )
            if self._on_revoked is not None:
                try:
                    await self._on_revoked(transaction)
                except Exception:
                    logger.exception("Revocation handler failed")
            return

        # redelivered transactions skip finish but are still applied
        await self._state.record_purchase(
            transaction.product_id,
            grants_premium=grants_premium(transaction.product_id),
        )
