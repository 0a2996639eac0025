"""Facade coordinating catalog loading, purchases, updates and reconciliation."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .cache import EntitlementCache
from .catalog import ProductCatalog
from .ledger import TransactionLedger
from .listener import AdvisoryNotifier, TransactionListener
from .models import EntitlementSnapshot, Product, Transaction
from .purchases import PurchaseExecutor
from .reconciler import EntitlementReconciler
from .state import EntitlementState, Observer
from .store import StoreClient

logger = logging.getLogger(__name__)


class EntitlementManager:
    """Entry point the UI and access-control code talk to.

    All writers share one :class:`EntitlementState` and one
    :class:`TransactionLedger`.
    """

    def __init__(
        self,
        store: StoreClient,
        cache: EntitlementCache,
        notifier: AdvisoryNotifier,
        *,
        catalog_max_attempts: int = 3,
        catalog_backoff_seconds: float = 1.0,
        reconcile_timeout_seconds: Optional[float] = 10.0,
        listener_restart_backoff_seconds: float = 2.0,
        listener_max_restarts: Optional[int] = 5,
    ) -> None:
        self._store = store
        self._reconcile_timeout_seconds = reconcile_timeout_seconds
        self._bootstrapping = True
        self.state = EntitlementState(cache)
        self.ledger = TransactionLedger()
        self.catalog = ProductCatalog(
            store,
            max_attempts=catalog_max_attempts,
            backoff_seconds=catalog_backoff_seconds,
        )
        self.executor = PurchaseExecutor(store, self.state, self.catalog, self.ledger)
        self.reconciler = EntitlementReconciler(store, self.state)
        self.listener = TransactionListener(
            store,
            self.state,
            self.ledger,
            notifier,
            restart_backoff_seconds=listener_restart_backoff_seconds,
            max_restarts=listener_max_restarts,
            on_revoked=self._handle_revocation,
        )

    @property
    def is_premium(self) -> bool:
        return self.state.is_premium

    @property
    def purchased_product_ids(self) -> frozenset:
        return self.state.purchased_product_ids

    @property
    def is_bootstrapping(self) -> bool:
        return self._bootstrapping

    @property
    def products(self) -> List[Product]:
        return self.catalog.products

    def snapshot(self) -> EntitlementSnapshot:
        return self.state.snapshot()

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        return self.state.subscribe(observer)

    async def bootstrap(self) -> bool:
        """Load products and settle the premium flag before the UI unlocks."""

        await self.catalog.load_products()
        await self.state.load_cached_hint()
        try:
            return await self.reconciler.reconcile_with_timeout(self._reconcile_timeout_seconds)
        finally:
            self._bootstrapping = False

    def start_listener(self) -> None:
        self.listener.start()
        logger.info("Transaction listener started")

    async def request_purchase(self, product_id: str) -> bool:
        return await self.executor.request_purchase(product_id)

    async def restore_purchases(self) -> bool:
        """Sync with the store, then recompute entitlements from scratch."""

        try:
            await self._store.sync()
        except Exception:
            logger.exception("Store sync failed during restore")
        return await self.reconciler.reconcile_with_timeout(self._reconcile_timeout_seconds)

    async def request_sign_out(self) -> EntitlementSnapshot:
        return await self.state.reset()

    async def shutdown(self) -> None:
        await self.listener.stop()

    async def _handle_revocation(self, transaction: Transaction) -> None:
        logger.info(
            "Re-checking entitlements after revocation of %s",
            transaction.transaction_id,
            extra={"product_id": transaction.product_id},
        )
        await self.reconciler.reconcile_with_timeout(
            self._reconcile_timeout_seconds,
            revoked_product_ids=[transaction.product_id],
        )
