"""End-to-end ingestion run: discover new hashes, enrich them, append to the ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from tradeledger.chain.explorer import ExplorerClient
from tradeledger.chain.fetcher import DeltaFetcher
from tradeledger.chain.processor import BatchProcessor
from tradeledger.chain.retry import RetryPolicy
from tradeledger.config import Settings, get_settings
from tradeledger.storage.ledger import Ledger
from tradeledger.tokens.enrich import TradeEnricher

logger = logging.getLogger(__name__)


@dataclass
class PipelineStats:
    existing: int = 0
    scanned: int = 0
    already_seen: int = 0
    discovered: int = 0
    written: int = 0
    dropped: int = 0
    exhausted: bool = False


async def run_pipeline(
    settings: Settings | None = None,
    client=None,
    mode: str = "transaction",
    ledger_path: Path | None = None,
    target_count: int | None = None,
    batch_size: int | None = None,
    concurrency: int | None = None,
    progress: bool = True,
) -> PipelineStats:
    """Pull transfers until ``target_count`` hashes are recorded or history runs out.

    The dedup index is rebuilt from the ledger on every run, so an interrupted
    run resumes without duplicating rows. Item-level failures are dropped;
    only ledger write failures abort.
    """
    settings = settings or get_settings()
    target_count = target_count if target_count is not None else settings.target_count
    batch_size = batch_size or settings.batch_size
    concurrency = concurrency or settings.concurrency

    ledger = Ledger(ledger_path or settings.ledger_path)
    ledger.ensure_header()
    index = ledger.load_index()

    stats = PipelineStats(existing=len(index))
    records_saved = len(index)

    owns_client = client is None
    if owns_client:
        client = ExplorerClient(settings)

    fetcher = DeltaFetcher(
        client,
        index,
        token_address=settings.token_address,
        page_size=settings.page_size,
        policy=RetryPolicy.for_pages(settings),
    )
    processor = BatchProcessor(
        client,
        ledger,
        TradeEnricher(
            settings.token_address,
            mode=mode,
            default_rate=settings.default_usd_rate,
            fallback_rate=settings.fallback_usd_rate,
        ),
        concurrency=concurrency,
        policy=RetryPolicy.for_items(settings),
        window_pause=settings.window_pause,
    )

    logger.info(f"Starting pipeline for target {target_count} records ({mode} mode)...")
    try:
        while records_saved < target_count:
            logger.info(f"Collecting {batch_size} transactions...")
            batch = await fetcher.next_batch(batch_size)
            stats.discovered += len(batch)

            if batch:
                logger.info(f"Collected {len(batch)} unique new transactions. Processing...")
                written = await processor.process(batch, progress=progress)
                records_saved += written
                logger.info(f"Progress: {records_saved} / {target_count} records saved.")

            if fetcher.exhausted:
                logger.info("Upstream history exhausted.")
                break
    finally:
        if owns_client:
            await client.aclose()

    stats.scanned = fetcher.scanned
    stats.already_seen = fetcher.skipped
    stats.written = processor.saved
    stats.dropped = processor.dropped
    stats.exhausted = fetcher.exhausted
    if records_saved >= target_count:
        logger.info(f"Target {target_count} reached.")
    return stats
