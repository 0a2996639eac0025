"""Executes purchases and applies their verified results."""
from __future__ import annotations

import logging

from .catalog import ProductCatalog, grants_premium
from .exceptions import PurchaseFailed
from .ledger import TransactionLedger
from .models import (
    Product,
    PurchasePending,
    PurchaseSuccess,
    PurchaseUserCancelled,
    Unverified,
    Verified,
)
from .state import EntitlementState
from .store import StoreClient

logger = logging.getLogger(__name__)


class PurchaseExecutor:
    """Runs a purchase through the store and interprets the outcome."""

    def __init__(
        self,
        store: StoreClient,
        state: EntitlementState,
        catalog: ProductCatalog,
        ledger: TransactionLedger,
    ) -> None:
        self._store = store
        self._state = state
        self._catalog = catalog
        self._ledger = ledger

    async def request_purchase(self, product_id: str) -> bool:
        """Purchase the catalog product identified by ``product_id``."""

        product = self._catalog.get(product_id)
        if product is None and not self._catalog.products:
            await self._catalog.load_products()
            product = self._catalog.get(product_id)
        if product is None:
            raise PurchaseFailed(f"Product {product_id} is not available right now.")
        return await self.purchase(product)

    async def purchase(self, product: Product) -> bool:
        """Return ``True`` only when a verified transaction was applied.

        Cancellation and pending approval are normal outcomes and return
        ``False``; store failures raise :class:`PurchaseFailed`.
        """

        try:
            outcome = await self._store.purchase(product)
        except PurchaseFailed:
            raise
        except Exception as exc:
            logger.warning("Purchase of %s failed: %s", product.id, exc, extra={"product_id": product.id})
            raise PurchaseFailed(f"The purchase could not be completed: {exc}") from exc

        if isinstance(outcome, PurchaseSuccess):
            verification = outcome.verification
            if isinstance(verification, Verified):
                return await self._apply_verified(product, verification)
            if isinstance(verification, Unverified):
                logger.warning(
                    "Purchase of %s returned an unverified transaction: %s",
                    product.id,
                    verification.reason,
                    extra={"transaction_id": verification.transaction.transaction_id},
                )
            return False

        if isinstance(outcome, PurchaseUserCancelled):
            logger.info("Purchase of %s cancelled by user", product.id)
        elif isinstance(outcome, PurchasePending):
            logger.info("Purchase of %s pending external action", product.id)
        else:
            logger.warning("Unrecognized purchase outcome %r for %s", outcome, product.id)
        return False

    async def _apply_verified(self, product: Product, verification: Verified) -> bool:
        transaction = verification.transaction
        try:
            await self._ledger.finish_once(transaction, self._store.finish)
        except Exception as exc:
            logger.exception(
                "Failed to finish transaction %s",
                transaction.transaction_id,
                extra={"product_id": product.id},
            )
            raise PurchaseFailed("The purchase could not be confirmed with the store.") from exc
        if transaction.is_revoked:
            logger.warning("Purchase of %s returned a revoked transaction", product.id)
            return False
        await self._state.record_purchase(product.id, grants_premium=grants_premium(product.id))
        return True
