"""Static product definitions and the store-backed product catalog."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .exceptions import CatalogUnavailable
from .models import BillingPeriod, Product, ProductID
from .store import StoreClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductDefinition:
    """Describes a purchasable product and what it unlocks."""

    product_id: ProductID
    display_name: str
    billing_period: BillingPeriod
    grants_premium: bool = True


PRODUCT_CATALOG: Dict[ProductID, ProductDefinition] = {
    ProductID.PREMIUM_MONTHLY: ProductDefinition(
        product_id=ProductID.PREMIUM_MONTHLY,
        display_name="Premium (Monthly)",
        billing_period=BillingPeriod.MONTHLY,
    ),
    ProductID.PREMIUM_YEARLY: ProductDefinition(
        product_id=ProductID.PREMIUM_YEARLY,
        display_name="Premium (Annual)",
        billing_period=BillingPeriod.ANNUAL,
    ),
    ProductID.LIFETIME_ACCESS: ProductDefinition(
        product_id=ProductID.LIFETIME_ACCESS,
        display_name="Lifetime Access",
        billing_period=BillingPeriod.LIFETIME,
    ),
}

ALL_PRODUCT_IDS: Tuple[str, ...] = tuple(product_id.value for product_id in ProductID)

PREMIUM_PRODUCT_IDS: Tuple[str, ...] = tuple(
    product_id.value
    for product_id in ProductID
    if PRODUCT_CATALOG[product_id].grants_premium
)


def get_product_definition(product_id: str) -> Optional[ProductDefinition]:
    """Return the definition for ``product_id`` or ``None`` when it is not ours."""

    try:
        return PRODUCT_CATALOG[ProductID(product_id)]
    except ValueError:
        return None


def grants_premium(product_id: str) -> bool:
    return product_id in PREMIUM_PRODUCT_IDS


class ProductCatalog:
    """Holds the products loaded from the store.

    A failed load never clears what was loaded before; the app keeps working
    for content the user is already entitled to.
    """

    def __init__(
        self,
        store: StoreClient,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
    ) -> None:
        self._store = store
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = max(0.0, backoff_seconds)
        self._products: Tuple[Product, ...] = ()

    @property
    def products(self) -> List[Product]:
        return list(self._products)

    def get(self, product_id: str) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    async def load_products(self) -> List[Product]:
        for attempt in range(1, self._max_attempts + 1):
            try:
                fetched = await self._store.fetch_products(list(ALL_PRODUCT_IDS))
            except Exception as exc:
                logger.warning(
                    "Failed to load products: %s",
                    exc,
                    extra={
                        "catalog_attempt": attempt,
                        "catalog_attempts": self._max_attempts,
                        "error_code": getattr(exc, "code", CatalogUnavailable.code),
                    },
                )
                if attempt >= self._max_attempts:
                    break
                if self._backoff_seconds > 0:
                    await asyncio.sleep(self._backoff_seconds * attempt)
                continue

            self._products = tuple(self._filter_known(fetched))
            logger.info(
                "Product catalog loaded",
                extra={"product_count": len(self._products)},
            )
            return self.products

        return self.products

    @staticmethod
    def _filter_known(products) -> List[Product]:
        known: List[Product] = []
        for product in products:
            if product.id not in ALL_PRODUCT_IDS:
                logger.warning("Ignoring unknown product %s from store", product.id)
                continue
            known.append(product)
        return known
