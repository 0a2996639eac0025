"""Recomputes the premium flag from the store's current entitlements."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from .catalog import PREMIUM_PRODUCT_IDS
from .exceptions import EntitlementQueryFailed
from .models import Verified
from .state import EntitlementState
from .store import StoreClient

logger = logging.getLogger(__name__)


class EntitlementReconciler:
    """Scans current entitlements per product until premium is proven.

    Identifiers are visited in declaration order and the first verified,
    non-revoked transaction ends the whole scan. The durable cache plays no
    part here; the store is the source of truth.
    """

    def __init__(
        self,
        store: StoreClient,
        state: EntitlementState,
        *,
        product_ids: Sequence[str] = PREMIUM_PRODUCT_IDS,
    ) -> None:
        self._store = store
        self._state = state
        self._product_ids = tuple(product_ids)

    async def reconcile(self, *, revoked_product_ids: Sequence[str] = ()) -> bool:
        token = await self._state.begin_reconciliation()
        granting_id = await self._scan()
        granted_ids = [granting_id] if granting_id is not None else []
        snapshot = await self._state.apply_reconciliation(
            granting_id is not None,
            granted_ids,
            token=token,
            revoked_product_ids=revoked_product_ids,
        )
        return snapshot.is_premium

    async def reconcile_with_timeout(
        self,
        timeout: Optional[float],
        *,
        revoked_product_ids: Sequence[str] = (),
    ) -> bool:
        """Reconcile, falling back to the current value when ``timeout`` elapses."""

        if not timeout or timeout <= 0:
            return await self.reconcile(revoked_product_ids=revoked_product_ids)
        try:
            return await asyncio.wait_for(self.reconcile(revoked_product_ids=revoked_product_ids), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Entitlement reconciliation timed out; using cached value",
                extra={"timeout_seconds": timeout, "is_premium": self._state.is_premium},
            )
            return self._state.is_premium

    async def _scan(self) -> Optional[str]:
        for product_id in self._product_ids:
            try:
                found = await self._has_active_entitlement(product_id)
            except Exception as exc:
                error = EntitlementQueryFailed(product_id, str(exc))
                logger.warning(
                    "Skipping entitlement query for %s: %s",
                    product_id,
                    exc,
                    extra={"product_id": product_id, "error_code": error.code},
                )
                continue
            if found:
                return product_id
        return None

    async def _has_active_entitlement(self, product_id: str) -> bool:
        stream = self._store.current_entitlements(product_id)
        try:
            async for result in stream:
                if isinstance(result, Verified) and not result.transaction.is_revoked:
                    return True
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        return False
