"""Click CLI: pull, vwap, extract-trades, recent."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click

from tradeledger.config import get_settings
from tradeledger.errors import LedgerError


@click.group()
@click.version_option(version="1.0.0")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool):
    """tradeledger - cNGN trade ledger and daily VWAP from the Asset Chain explorer."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--target", default=None, type=int, help="Stop once the ledger holds this many records")
@click.option("--batch-size", default=None, type=int, help="New hashes collected per processing batch")
@click.option("--concurrency", default=None, type=int, help="Max concurrent detail fetches")
@click.option("--mode", default="transaction", type=click.Choice(["transaction", "transfer"]),
              help="One row per transaction, or one per token transfer")
@click.option("--ledger", "ledger_path", default=None, type=click.Path(path_type=Path))
def pull(target: int | None, batch_size: int | None, concurrency: int | None, mode: str, ledger_path: Path | None):
    """Fetch new token transfers and append enriched trades to the ledger."""
    from tradeledger.pipeline import run_pipeline

    settings = get_settings()
    ledger_path = ledger_path or settings.ledger_path
    click.echo(f"Pulling {settings.token_address} transfers into {ledger_path}...")

    try:
        stats = asyncio.run(run_pipeline(
            settings,
            mode=mode,
            ledger_path=ledger_path,
            target_count=target,
            batch_size=batch_size,
            concurrency=concurrency,
        ))
    except LedgerError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Existing hashes: {stats.existing}")
    click.echo(f"Scanned {stats.scanned} transfers: {stats.discovered} new, {stats.already_seen} already seen")
    click.echo(f"Wrote {stats.written} records, dropped {stats.dropped} transactions.")
    if stats.exhausted:
        click.echo("Reached the end of upstream history.")


@cli.command()
@click.option("--ledger", "ledger_path", default=None, type=click.Path(path_type=Path))
@click.option("--output", "output_path", default=None, type=click.Path(path_type=Path))
def vwap(ledger_path: Path | None, output_path: Path | None):
    """Build the daily VWAP history from the ledger."""
    from tradeledger.features.vwap import build_vwap_history, write_vwap_csv
    from tradeledger.storage.ledger import Ledger

    settings = get_settings()
    ledger_path = ledger_path or settings.ledger_path
    output_path = output_path or settings.vwap_path

    if not ledger_path.exists():
        raise click.ClickException(f"Data file not found at {ledger_path}")

    click.echo(f"Reading from: {ledger_path}")
    try:
        records = build_vwap_history(
            Ledger(ledger_path).read(),
            router_address=settings.router_address,
            router_name=settings.router_name,
            dust=settings.dust_threshold,
            date_ceiling=settings.vwap_date_ceiling,
        )
        if not records:
            click.echo("No relevant USDT/USDC trades found in dataset.")
            return
        write_vwap_csv(records, output_path)
    except LedgerError as e:
        raise click.ClickException(str(e)) from e

    carried = sum(1 for r in records if r.carried_forward)
    click.echo(f"{len(records)} days ({records[0].date} to {records[-1].date}), {carried} carried forward.")
    click.echo(f"VWAP history written to: {output_path}")


@cli.command("extract-trades")
@click.option("--ledger", "ledger_path", default=None, type=click.Path(path_type=Path))
@click.option("--output", "output_path", default=None, type=click.Path(path_type=Path))
def extract_trades(ledger_path: Path | None, output_path: Path | None):
    """Copy ledger rows that went through the swap router into the trades file."""
    from tradeledger.storage.ledger import extract_router_trades

    settings = get_settings()
    ledger_path = ledger_path or settings.ledger_path
    output_path = output_path or settings.trades_path

    if not ledger_path.exists():
        raise click.ClickException(f"Data file not found at {ledger_path}")

    click.echo(f"Criteria: Address={settings.router_address}, Name={settings.router_name}")
    try:
        count = extract_router_trades(ledger_path, output_path, settings.router_address, settings.router_name)
    except LedgerError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Extracted {count} trades to: {output_path}")


@cli.command()
@click.option("--limit", default=10, help="Number of transactions to list")
def recent(limit: int):
    """List the latest transactions of the token contract."""
    from tradeledger.chain.explorer import ExplorerClient
    from tradeledger.errors import UpstreamError

    settings = get_settings()

    async def _fetch():
        async with ExplorerClient(settings) as client:
            return await client.fetch_last_transactions(settings.token_address, limit=limit)

    try:
        txs = asyncio.run(_fetch())
    except UpstreamError as e:
        raise click.ClickException(str(e)) from e

    for tx in txs:
        status = "Failed" if tx.is_error == "1" else "Success"
        click.echo(f"{tx.hash}  block={tx.block_number}  from={tx.from_}  {tx.function_name or '-'}  {status}")
    click.echo(f"{len(txs)} transactions.")


if __name__ == "__main__":
    cli()
