"""Fixed-window concurrent processing of transaction hashes with per-item retries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from tqdm import tqdm

from tradeledger.chain.retry import RetryPolicy
from tradeledger.errors import failure_kind
from tradeledger.models.schema import EnrichedTrade
from tradeledger.storage.ledger import Ledger
from tradeledger.tokens.enrich import TradeEnricher

logger = logging.getLogger(__name__)


class BatchProcessor:
    """Fetch, enrich and persist a batch of transactions.

    The batch is cut into windows of at most ``concurrency`` hashes. A window
    runs fully concurrently and the next one starts only when every item in it
    has finished, so no more than ``concurrency`` fetches are ever in flight.
    Each window's rows are appended to the ledger in a single write, followed
    by a short fixed pause.
    """

    def __init__(
        self,
        client,
        ledger: Ledger,
        enricher: TradeEnricher,
        concurrency: int = 50,
        policy: RetryPolicy | None = None,
        window_pause: float = 0.05,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.client = client
        self.ledger = ledger
        self.enricher = enricher
        self.concurrency = concurrency
        self.policy = policy or RetryPolicy()
        self.window_pause = window_pause
        self._sleep = sleep

        self.saved = 0
        self.dropped = 0

    async def _process_one(self, tx_hash: str) -> list[EnrichedTrade] | None:
        """Rows for one hash, or None when the item is dropped."""
        attempt = 0
        while True:
            attempt += 1
            try:
                detail, items = await self.client.fetch_transaction_with_transfers(tx_hash)
                return self.enricher.enrich(detail, items)
            except Exception as e:
                decision = self.policy.decide(attempt, failure_kind(e))
                if not decision.retry:
                    logger.debug(f"Dropped {tx_hash} after {attempt} attempt(s): {e}")
                    return None
                logger.debug(f"Retrying {tx_hash} in {decision.delay:.1f}s: {e}")
                await self._sleep(decision.delay)

    async def process(self, hashes: list[str], progress: bool = True) -> int:
        """Process ``hashes`` window by window. Returns rows appended to the ledger."""
        written = 0
        with tqdm(total=len(hashes), desc="Processing transactions", disable=not progress) as bar:
            for start in range(0, len(hashes), self.concurrency):
                window = hashes[start:start + self.concurrency]
                results = await asyncio.gather(*(self._process_one(h) for h in window))

                rows: list[EnrichedTrade] = []
                for result in results:
                    if result is None:
                        self.dropped += 1
                    else:
                        rows.extend(result)

                written += self.ledger.append(rows)
                bar.update(len(window))
                await self._sleep(self.window_pause)

        self.saved += written
        if self.dropped:
            logger.warning(f"{self.dropped} transaction(s) dropped so far after failures")
        return written
