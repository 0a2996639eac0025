"""Tests for startup reconciliation of the premium flag."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional

import pytest

from marketdiff.app.entitlements import (
    EntitlementPhase,
    EntitlementReconciler,
    EntitlementState,
    InMemoryEntitlementCache,
    ProductID,
    Transaction,
    TransactionLedger,
    TransactionListener,
    Unverified,
    VerificationResult,
    Verified,
)

MONTHLY = ProductID.PREMIUM_MONTHLY.value
YEARLY = ProductID.PREMIUM_YEARLY.value
LIFETIME = ProductID.LIFETIME_ACCESS.value


def _verified(product_id: str, *, revoked: bool = False, transaction_id: str = "t-1") -> Verified:
    return Verified(
        Transaction(
            transaction_id=transaction_id,
            product_id=product_id,
            revocation_date=datetime.now(timezone.utc) if revoked else None,
        )
    )


def _unverified(product_id: str) -> Unverified:
    return Unverified(Transaction(transaction_id="t-bad", product_id=product_id), reason="bad signature")


class FakeEntitlementStore:
    def __init__(
        self,
        entitlements: Dict[str, List[VerificationResult]],
        *,
        failing: Optional[set] = None,
        delay: float = 0.0,
    ) -> None:
        self._entitlements = entitlements
        self._failing = failing or set()
        self._delay = delay
        self.queried: List[str] = []
        self.yielded: Dict[str, int] = {}

    async def current_entitlements(self, product_id: str) -> AsyncIterator[VerificationResult]:
        self.queried.append(product_id)
        if product_id in self._failing:
            raise ConnectionError("store unavailable")
        for result in self._entitlements.get(product_id, []):
            if self._delay:
                await asyncio.sleep(self._delay)
            self.yielded[product_id] = self.yielded.get(product_id, 0) + 1
            yield result


@pytest.fixture
def state() -> EntitlementState:
    return EntitlementState(InMemoryEntitlementCache())


@pytest.mark.asyncio
async def test_first_verified_entitlement_short_circuits(state):
    store = FakeEntitlementStore(
        {
            MONTHLY: [_verified(MONTHLY), _verified(MONTHLY, transaction_id="t-2")],
            YEARLY: [_unverified(YEARLY)],
        }
    )
    reconciler = EntitlementReconciler(store, state)

    assert await reconciler.reconcile() is True

    assert store.queried == [MONTHLY]
    assert store.yielded == {MONTHLY: 1}
    assert state.phase == EntitlementPhase.KNOWN
    assert state.purchased_product_ids == {MONTHLY}


@pytest.mark.asyncio
async def test_identifiers_are_scanned_in_declaration_order(state):
    store = FakeEntitlementStore({LIFETIME: [_verified(LIFETIME)]})
    reconciler = EntitlementReconciler(store, state)

    assert await reconciler.reconcile() is True
    assert store.queried == [MONTHLY, YEARLY, LIFETIME]


@pytest.mark.asyncio
async def test_revoked_transaction_does_not_grant_premium(state):
    store = FakeEntitlementStore({YEARLY: [_verified(YEARLY, revoked=True)]})
    reconciler = EntitlementReconciler(store, state)

    assert await reconciler.reconcile() is False
    assert state.is_premium is False


@pytest.mark.asyncio
async def test_empty_or_unverified_streams_mean_no_premium(state):
    store = FakeEntitlementStore({MONTHLY: [], YEARLY: [_unverified(YEARLY)]})
    reconciler = EntitlementReconciler(store, state)

    assert await reconciler.reconcile() is False
    assert state.phase == EntitlementPhase.KNOWN
    assert store.queried == [MONTHLY, YEARLY, LIFETIME]


@pytest.mark.asyncio
async def test_failing_identifier_is_skipped(state):
    store = FakeEntitlementStore({YEARLY: [_verified(YEARLY)]}, failing={MONTHLY})
    reconciler = EntitlementReconciler(store, state)

    assert await reconciler.reconcile() is True
    assert store.queried == [MONTHLY, YEARLY]


@pytest.mark.asyncio
async def test_reconciliation_overrides_stale_cache_hint():
    cache = InMemoryEntitlementCache(initial=True)
    state = EntitlementState(cache)
    await state.load_cached_hint()
    reconciler = EntitlementReconciler(FakeEntitlementStore({}), state)

    assert await reconciler.reconcile() is False
    assert state.is_premium is False
    assert cache.get_premium() is True


@pytest.mark.asyncio
async def test_timeout_keeps_cached_value():
    cache = InMemoryEntitlementCache(initial=True)
    state = EntitlementState(cache)
    await state.load_cached_hint()
    store = FakeEntitlementStore({MONTHLY: [_unverified(MONTHLY)] * 10}, delay=0.05)
    reconciler = EntitlementReconciler(store, state)

    assert await reconciler.reconcile_with_timeout(0.01) is True
    assert state.phase == EntitlementPhase.UNKNOWN


class RecordingNotifier:
    def __init__(self) -> None:
        self.reasons: List[str] = []

    def notify_unverified(self, transaction, error) -> None:
        self.reasons.append(error.message)


@pytest.mark.asyncio
async def test_unverified_update_during_reconciliation_keeps_premium(state):
    store = FakeEntitlementStore({MONTHLY: [_verified(MONTHLY)]}, delay=0.01)
    reconciler = EntitlementReconciler(store, state)
    notifier = RecordingNotifier()
    listener = TransactionListener(store, state, TransactionLedger(), notifier)

    results = await asyncio.gather(
        reconciler.reconcile(),
        listener.handle(_unverified(YEARLY)),
    )

    assert results[0] is True
    assert state.is_premium is True
    assert notifier.reasons == ["bad signature"]


@pytest.mark.asyncio
async def test_revoked_product_leaves_set_when_other_product_still_grants(state):
    await state.record_purchase(MONTHLY, grants_premium=True)
    store = FakeEntitlementStore(
        {MONTHLY: [_verified(MONTHLY, revoked=True)], YEARLY: [_verified(YEARLY, transaction_id="t-2")]}
    )
    reconciler = EntitlementReconciler(store, state)

    assert await reconciler.reconcile(revoked_product_ids=[MONTHLY]) is True
    assert state.purchased_product_ids == {YEARLY}
