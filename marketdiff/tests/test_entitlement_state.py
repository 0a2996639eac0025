from __future__ import annotations

import asyncio
import threading
from typing import List

import pytest

from marketdiff.app.entitlements import (
    EntitlementPhase,
    EntitlementSnapshot,
    EntitlementState,
    InMemoryEntitlementCache,
    ProductID,
)


@pytest.fixture
def cache() -> InMemoryEntitlementCache:
    return InMemoryEntitlementCache()


@pytest.fixture
def state(cache) -> EntitlementState:
    return EntitlementState(cache)


def test_initial_state_is_unknown_and_empty(state):
    snapshot = state.snapshot()

    assert snapshot.is_premium is False
    assert snapshot.purchased_product_ids == frozenset()
    assert snapshot.phase == EntitlementPhase.UNKNOWN


@pytest.mark.asyncio
async def test_record_purchase_updates_flag_ids_and_cache(state, cache):
    snapshot = await state.record_purchase(ProductID.PREMIUM_MONTHLY.value, grants_premium=True)

    assert snapshot.is_premium is True
    assert snapshot.purchased_product_ids == {ProductID.PREMIUM_MONTHLY.value}
    assert cache.get_premium() is True


@pytest.mark.asyncio
async def test_non_premium_product_leaves_flag_untouched(state, cache):
    snapshot = await state.record_purchase("com.example.tip", grants_premium=False)

    assert snapshot.is_premium is False
    assert "com.example.tip" in snapshot.purchased_product_ids
    assert cache.get_premium() is None


@pytest.mark.asyncio
async def test_cached_hint_only_applies_before_reconciliation():
    cache = InMemoryEntitlementCache(initial=True)
    state = EntitlementState(cache)

    assert await state.load_cached_hint() is True
    assert state.is_premium is True

    token = await state.begin_reconciliation()
    await state.apply_reconciliation(False, [], token=token)
    assert state.is_premium is False
    assert state.phase == EntitlementPhase.KNOWN

    assert await state.load_cached_hint() is False
    assert state.is_premium is False


@pytest.mark.asyncio
async def test_reconciliation_does_not_write_cache():
    cache = InMemoryEntitlementCache(initial=False)
    state = EntitlementState(cache)

    token = await state.begin_reconciliation()
    await state.apply_reconciliation(True, [ProductID.LIFETIME_ACCESS.value], token=token)

    assert state.is_premium is True
    assert state.purchased_product_ids == {ProductID.LIFETIME_ACCESS.value}
    assert cache.get_premium() is False


@pytest.mark.asyncio
async def test_negative_reconciliation_keeps_concurrent_purchase(state):
    token = await state.begin_reconciliation()
    await state.record_purchase(ProductID.PREMIUM_YEARLY.value, grants_premium=True)

    await state.apply_reconciliation(False, [], token=token)

    assert state.is_premium is True
    assert state.phase == EntitlementPhase.KNOWN


@pytest.mark.asyncio
async def test_reconciliation_started_before_sign_out_is_discarded(state):
    token = await state.begin_reconciliation()
    await state.reset()

    await state.apply_reconciliation(True, [ProductID.PREMIUM_MONTHLY.value], token=token)

    assert state.is_premium is False
    assert state.purchased_product_ids == frozenset()


@pytest.mark.asyncio
async def test_sign_out_resets_everything(state, cache):
    await state.record_purchase(ProductID.PREMIUM_MONTHLY.value, grants_premium=True)
    await state.record_purchase(ProductID.LIFETIME_ACCESS.value, grants_premium=True)

    snapshot = await state.reset()

    assert snapshot.is_premium is False
    assert snapshot.purchased_product_ids == frozenset()
    assert cache.get_premium() is None


@pytest.mark.asyncio
async def test_observers_receive_snapshots_and_can_unsubscribe(state):
    seen: List[EntitlementSnapshot] = []
    unsubscribe = state.subscribe(seen.append)

    await state.record_purchase(ProductID.PREMIUM_MONTHLY.value, grants_premium=True)
    unsubscribe()
    await state.reset()

    assert len(seen) == 1
    assert seen[0].is_premium is True


@pytest.mark.asyncio
async def test_failing_observer_does_not_block_others(state):
    seen: List[bool] = []

    def broken(_snapshot: EntitlementSnapshot) -> None:
        raise RuntimeError("boom")

    state.subscribe(broken)
    state.subscribe(lambda snapshot: seen.append(snapshot.is_premium))

    await state.record_purchase(ProductID.PREMIUM_MONTHLY.value, grants_premium=True)

    assert seen == [True]


@pytest.mark.asyncio
async def test_concurrent_writers_apply_pairs_atomically(state):
    seen: List[EntitlementSnapshot] = []
    state.subscribe(seen.append)

    await asyncio.gather(
        *(
            state.record_purchase(product_id.value, grants_premium=True)
            for product_id in ProductID
        )
    )

    assert state.purchased_product_ids == {product_id.value for product_id in ProductID}
    for snapshot in seen:
        assert snapshot.is_premium is True
        assert snapshot.purchased_product_ids


@pytest.mark.asyncio
async def test_wait_until_known(state):
    assert await state.wait_until_known(timeout=0.01) is False

    token = await state.begin_reconciliation()
    await state.apply_reconciliation(False, [], token=token)

    assert await state.wait_until_known(timeout=0.01) is True


@pytest.mark.asyncio
async def test_reconciliation_drops_revoked_ids_with_the_flag(state):
    await state.record_purchase(ProductID.PREMIUM_MONTHLY.value, grants_premium=True)
    seen: List[EntitlementSnapshot] = []
    state.subscribe(seen.append)

    token = await state.begin_reconciliation()
    await state.apply_reconciliation(
        False,
        [],
        token=token,
        revoked_product_ids=[ProductID.PREMIUM_MONTHLY.value],
    )

    assert len(seen) == 1
    assert seen[0].is_premium is False
    assert seen[0].purchased_product_ids == frozenset()


@pytest.mark.asyncio
async def test_cache_io_runs_off_the_event_loop_thread():
    loop_thread = threading.get_ident()
    threads: List[int] = []

    class ThreadRecordingCache(InMemoryEntitlementCache):
        def get_premium(self):
            threads.append(threading.get_ident())
            return super().get_premium()

        def set_premium(self, value: bool) -> None:
            threads.append(threading.get_ident())
            super().set_premium(value)

        def clear(self) -> None:
            threads.append(threading.get_ident())
            super().clear()

    state = EntitlementState(ThreadRecordingCache(initial=True))
    await state.load_cached_hint()
    await state.record_purchase(ProductID.PREMIUM_MONTHLY.value, grants_premium=True)
    await state.reset()

    assert len(threads) == 3
    assert loop_thread not in threads
