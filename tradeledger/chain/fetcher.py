"""Paginated delta fetcher over the token transfer list. Yields only unseen tx hashes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from tradeledger.chain.retry import RetryPolicy
from tradeledger.errors import UpstreamError
from tradeledger.models.schema import TransferPage
from tradeledger.storage.ledger import DedupIndex

logger = logging.getLogger(__name__)


class DeltaFetcher:
    """Walk the transfer list page by page, collecting hashes not in the index.

    The upstream page order is not assumed. A page with zero new hashes does
    not mean the ledger is in sync; only a missing continuation token or an
    empty page ends the walk. If the upstream lists oldest-first, a fully
    synced ledger means every run re-scans all history before finding anything
    new.
    """

    def __init__(
        self,
        client,
        index: DedupIndex,
        token_address: str,
        page_size: int = 1000,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.index = index
        self.token_address = token_address
        self.page_size = page_size
        self.policy = policy or RetryPolicy(max_attempts=15, rate_limit_jitter=0.0, exponential=True)
        self._sleep = sleep

        self.cursor: dict[str, Any] | None = None
        self.exhausted = False
        self.scanned = 0
        self.skipped = 0

    async def _fetch_page(self) -> TransferPage | None:
        """One page with retries; None once the page policy gives up."""
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.client.fetch_transfer_page(
                    self.token_address, page_size=self.page_size, cursor=self.cursor
                )
            except UpstreamError as e:
                decision = self.policy.decide(attempt, e.kind)
                if not decision.retry:
                    logger.error(f"Giving up on transfer list after {attempt} attempt(s): {e}")
                    return None
                logger.warning(f"{e}. Retrying in {decision.delay:.1f}s...")
                await self._sleep(decision.delay)

    async def next_batch(self, target_new_count: int) -> list[str]:
        """Collect at least ``target_new_count`` unseen hashes, or whatever is left.

        An empty result with ``exhausted`` set means history is used up.
        """
        batch: list[str] = []
        if self.exhausted:
            return batch

        while len(batch) < target_new_count:
            page = await self._fetch_page()
            if page is None:
                self.exhausted = True
                break

            if not page.items:
                logger.info("No more items found from API.")
                self.exhausted = True
                break

            new_hashes = 0
            for item in page.items:
                h = item.transaction_hash
                if h and self.index.add(h):
                    batch.append(h)
                    new_hashes += 1

            self.scanned += len(page.items)
            self.skipped += len(page.items) - new_hashes
            if new_hashes == 0:
                logger.info(f"[Scanning] Skipped {len(page.items)} known... (Total Scanned: {self.scanned})")
            else:
                logger.info(f"Found {new_hashes} new transactions in this page.")

            if not page.next_page_params:
                logger.info("No next page params. End of history.")
                self.exhausted = True
                break
            self.cursor = page.next_page_params

        return batch
