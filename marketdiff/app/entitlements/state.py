"""Shared entitlement state with serialized writes and change notifications."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Set

from .cache import EntitlementCache
from .models import EntitlementPhase, EntitlementSnapshot

logger = logging.getLogger(__name__)

Observer = Callable[[EntitlementSnapshot], None]


@dataclass(frozen=True)
class ReconciliationToken:
    """Captures the write history at the moment a reconciliation starts."""

    epoch: int
    generation: int


class EntitlementState:
    """Single owner of ``is_premium`` and the purchased product ids.

    Every mutation goes through one ``asyncio.Lock`` so the id set and the
    premium flag always change together. ``generation`` counts upgrades from
    purchases; ``epoch`` counts sign-outs.
    """

    def __init__(
        self,
        cache: EntitlementCache,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._cache = cache
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = asyncio.Lock()
        self._known = asyncio.Event()
        self._observers: List[Observer] = []
        self._is_premium = False
        self._purchased: Set[str] = set()
        self._phase = EntitlementPhase.UNKNOWN
        self._generation = 0
        self._epoch = 0
        self._updated_at = self._clock()

    @property
    def is_premium(self) -> bool:
        return self._is_premium

    @property
    def purchased_product_ids(self) -> frozenset:
        return frozenset(self._purchased)

    @property
    def phase(self) -> EntitlementPhase:
        return self._phase

    def snapshot(self) -> EntitlementSnapshot:
        return EntitlementSnapshot(
            is_premium=self._is_premium,
            purchased_product_ids=frozenset(self._purchased),
            phase=self._phase,
            updated_at=self._updated_at,
        )

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer`` and return a callable that removes it."""

        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def wait_until_known(self, timeout: Optional[float] = None) -> bool:
        try:
            await asyncio.wait_for(self._known.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def load_cached_hint(self) -> bool:
        """Seed ``is_premium`` from the durable cache before reconciliation."""

        async with self._lock:
            if self._phase is not EntitlementPhase.UNKNOWN:
                return self._is_premium
            hint = await asyncio.to_thread(self._cache.get_premium)
            if hint is None or hint == self._is_premium:
                return self._is_premium
            self._is_premium = hint
            snapshot = self._touch()
        logger.info("Premium flag seeded from cache", extra={"is_premium": snapshot.is_premium})
        self._notify(snapshot)
        return snapshot.is_premium

    async def record_purchase(self, product_id: str, *, grants_premium: bool) -> EntitlementSnapshot:
        """Apply a verified transaction as one atomic (id, flag) update."""

        async with self._lock:
            self._purchased.add(product_id)
            if grants_premium:
                self._is_premium = True
                self._generation += 1
                await self._persist_premium()
            snapshot = self._touch()
        logger.info(
            "Recorded purchase %s",
            product_id,
            extra={"product_id": product_id, "is_premium": snapshot.is_premium},
        )
        self._notify(snapshot)
        return snapshot

    async def begin_reconciliation(self) -> ReconciliationToken:
        async with self._lock:
            return ReconciliationToken(epoch=self._epoch, generation=self._generation)

    async def apply_reconciliation(
        self,
        is_premium: bool,
        product_ids: Iterable[str],
        *,
        token: ReconciliationToken,
        revoked_product_ids: Iterable[str] = (),
    ) -> EntitlementSnapshot:
        """Write the reconciled flag, moving the state to ``known``.

        ``revoked_product_ids`` leave the purchased set in the same update that
        writes the flag. A negative result does not undo an upgrade recorded
        while the scan was running, and a result computed before a sign-out is
        discarded.
        """

        async with self._lock:
            if token.epoch != self._epoch:
                logger.info("Discarding reconciliation result computed before sign-out")
            elif not is_premium and self._is_premium and token.generation != self._generation:
                logger.info("Keeping premium granted during reconciliation")
                self._purchased.update(product_ids)
            else:
                self._purchased.difference_update(revoked_product_ids)
                self._is_premium = is_premium
                self._purchased.update(product_ids)
            self._phase = EntitlementPhase.KNOWN
            self._known.set()
            snapshot = self._touch()
        logger.info(
            "Entitlements reconciled",
            extra={"is_premium": snapshot.is_premium, "product_count": len(snapshot.purchased_product_ids)},
        )
        self._notify(snapshot)
        return snapshot

    async def reset(self) -> EntitlementSnapshot:
        """Return to the initial empty state and drop the cached flag."""

        async with self._lock:
            self._is_premium = False
            self._purchased.clear()
            self._generation += 1
            self._epoch += 1
            try:
                await asyncio.to_thread(self._cache.clear)
            except Exception:
                logger.exception("Failed to clear entitlement cache")
            snapshot = self._touch()
        logger.info("Entitlement state reset")
        self._notify(snapshot)
        return snapshot

    async def _persist_premium(self) -> None:
        try:
            await asyncio.to_thread(self._cache.set_premium, True)
        except Exception:
            logger.exception("Failed to persist premium flag")

    def _touch(self) -> EntitlementSnapshot:
        self._updated_at = self._clock()
        return self.snapshot()

    def _notify(self, snapshot: EntitlementSnapshot) -> None:
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Entitlement observer failed")
