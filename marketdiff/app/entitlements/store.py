"""Protocol describing the platform store collaborator."""
from __future__ import annotations

from typing import AsyncIterator, Protocol, Sequence

from .models import Product, PurchaseOutcome, Transaction, VerificationResult


class StoreClient(Protocol):
    """Commerce API the entitlement engine binds to.

    ``transaction_updates`` is an endless feed; once it ends a new call is
    required to resubscribe. ``current_entitlements`` is finite and may be
    called any number of times.
    """

    async def fetch_products(self, product_ids: Sequence[str]) -> Sequence[Product]:
        """Return metadata for ``product_ids``; raise ``CatalogUnavailable`` on failure."""

    async def purchase(self, product: Product) -> PurchaseOutcome:
        ...

    async def finish(self, transaction: Transaction) -> None:
        """Acknowledge a transaction so the update feed stops redelivering it."""

    def transaction_updates(self) -> AsyncIterator[VerificationResult]:
        ...

    def current_entitlements(self, product_id: str) -> AsyncIterator[VerificationResult]:
        ...

    async def sync(self) -> None:
        """Ask the store to refresh the local copy of the user's purchases."""
