"""In-memory store used for local development and tests."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional, Sequence, Set
from uuid import uuid4

from ..app.entitlements.catalog import get_product_definition
from ..app.entitlements.exceptions import CatalogUnavailable
from ..app.entitlements.models import (
    Product,
    PurchaseOutcome,
    PurchaseSuccess,
    Transaction,
    VerificationResult,
    Verified,
)
from .config import StoreConfig

logger = logging.getLogger(__name__)

SANDBOX_PRICES: Dict[str, str] = {
    "com.maOptions.premium.monthly": "$9.99",
    "com.maOptions.premium.yearly": "$79.99",
    "com.maOptions.lifetime": "$199.99",
}


class LocalSandboxStore:
    """Minimal store implementation for local development and tests.

    Purchases always succeed with a verified transaction unless an outcome is
    queued with :meth:`queue_outcome`. Revocations are delivered through the
    update feed the same way the real store reports refunds.
    """

    name = "sandbox"

    def __init__(self) -> None:
        self.available = True
        self.finished: Set[str] = set()
        self._transactions: Dict[str, Transaction] = {}
        self._queued_outcomes: List[PurchaseOutcome] = []
        self._updates: "asyncio.Queue[VerificationResult]" = asyncio.Queue()

    async def fetch_products(self, product_ids: Sequence[str]) -> Sequence[Product]:
        if not self.available:
            raise CatalogUnavailable("Sandbox store is offline")
        products: List[Product] = []
        for product_id in product_ids:
            definition = get_product_definition(product_id)
            if definition is None:
                continue
            products.append(
                Product(
                    id=product_id,
                    display_name=definition.display_name,
                    display_price=SANDBOX_PRICES.get(product_id, "$0.00"),
                    billing_period=definition.billing_period,
                )
            )
        return products

    def queue_outcome(self, outcome: PurchaseOutcome) -> None:
        self._queued_outcomes.append(outcome)

    async def purchase(self, product: Product) -> PurchaseOutcome:
        if self._queued_outcomes:
            return self._queued_outcomes.pop(0)
        transaction = Transaction(
            transaction_id=f"txn_{uuid4().hex}",
            product_id=product.id,
        )
        self._transactions[transaction.transaction_id] = transaction
        logger.info("Sandbox purchase %s", product.id, extra={"transaction_id": transaction.transaction_id})
        return PurchaseSuccess(verification=Verified(transaction))

    async def finish(self, transaction: Transaction) -> None:
        self.finished.add(transaction.transaction_id)

    def push_update(self, result: VerificationResult) -> None:
        self._updates.put_nowait(result)

    def grant(self, product_id: str, *, transaction_id: Optional[str] = None) -> Transaction:
        """Record a purchase made elsewhere and announce it on the update feed."""

        transaction = Transaction(
            transaction_id=transaction_id or f"txn_{uuid4().hex}",
            product_id=product_id,
        )
        self._transactions[transaction.transaction_id] = transaction
        self.push_update(Verified(transaction))
        return transaction

    def revoke(self, transaction_id: str) -> Transaction:
        """Mark a transaction refunded and announce it on the update feed."""

        try:
            transaction = self._transactions[transaction_id]
        except KeyError as exc:
            raise LookupError(f"Unknown transaction {transaction_id}") from exc
        revoked = transaction.model_copy(update={"revocation_date": datetime.now(timezone.utc)})
        self._transactions[transaction_id] = revoked
        self.push_update(Verified(revoked))
        return revoked

    async def transaction_updates(self) -> AsyncIterator[VerificationResult]:
        while True:
            yield await self._updates.get()

    async def current_entitlements(self, product_id: str) -> AsyncIterator[VerificationResult]:
        for transaction in list(self._transactions.values()):
            if transaction.product_id == product_id and not transaction.is_revoked:
                yield Verified(transaction)

    async def sync(self) -> None:
        logger.info("Sandbox store sync requested", extra={"transaction_count": len(self._transactions)})


def create_store(config: StoreConfig) -> LocalSandboxStore:
    provider = (config.provider_name or "sandbox").strip().lower()
    if provider != "sandbox":
        raise ValueError(f"Unsupported store provider {provider!r}")
    return LocalSandboxStore()


__all__ = ["LocalSandboxStore", "SANDBOX_PRICES", "create_store"]
