"""Tracks which transactions have already been finished."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Set

from .models import Transaction

logger = logging.getLogger(__name__)


class TransactionLedger:
    """At-most-once finishing of transactions shared by every writer.

    The store feed may redeliver a transaction, and a purchase can surface on
    both the purchase result and the update feed. A transaction id is claimed
    before ``finish`` is awaited and released again if ``finish`` fails so a
    later redelivery can retry it.
    """

    def __init__(self) -> None:
        self._finished: Set[str] = set()
        self._lock = asyncio.Lock()

    async def finish_once(
        self,
        transaction: Transaction,
        finish: Callable[[Transaction], Awaitable[None]],
    ) -> bool:
        """Finish ``transaction`` unless already done; return whether it ran."""

        async with self._lock:
            if transaction.transaction_id in self._finished:
                logger.debug("Skipping already finished transaction %s", transaction.transaction_id)
                return False
            self._finished.add(transaction.transaction_id)

        try:
            await finish(transaction)
        except BaseException:
            self._finished.discard(transaction.transaction_id)
            raise
        logger.debug("Finished transaction %s", transaction.transaction_id)
        return True
