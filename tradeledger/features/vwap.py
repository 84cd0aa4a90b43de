"""Daily VWAP series from the trade ledger, gap-filled by carrying the last price forward."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path

import pandas as pd

from tradeledger.errors import LedgerWriteError
from tradeledger.models.schema import DailyStat, VwapRecord
from tradeledger.storage.ledger import require_columns
from tradeledger.tokens.constants import STABLECOIN_SYMBOLS

logger = logging.getLogger(__name__)

VWAP_COLUMNS = ["date", "vwap_price_usd", "volume_cngn", "volume_usd"]

REQUIRED_COLUMNS = [
    "timestamp",
    "interacted_contract_address",
    "interacted_contract_name",
    "token_in_symbol",
    "token_out_symbol",
    "cngn_amount",
    "usd_value",
    "pool_name",
]

DEFAULT_DUST = Decimal("0.000001")
DEFAULT_DATE_CEILING = date(2030, 1, 1)


def is_qualifying_trade(row: dict, router_address: str, router_name: str) -> bool:
    """Routed through the swap router AND priced against a stablecoin.

    A USDT/USDC symbol on either side of the trade counts, with a stablecoin
    ticker in the pool name as a backup signal.
    """
    address = (row.get("interacted_contract_address") or "").lower()
    name = row.get("interacted_contract_name") or ""
    if address != router_address.lower() and name != router_name:
        return False

    if row.get("token_in_symbol") in STABLECOIN_SYMBOLS or row.get("token_out_symbol") in STABLECOIN_SYMBOLS:
        return True
    pool_name = row.get("pool_name") or ""
    return any(symbol in pool_name for symbol in STABLECOIN_SYMBOLS)


def _to_decimal(value) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def _to_date(timestamp: str) -> date | None:
    """'YYYY-MM-DD HH:MM' (or any ISO prefix) -> date."""
    try:
        return date.fromisoformat((timestamp or "")[:10])
    except ValueError:
        return None


def aggregate_daily(
    trades: pd.DataFrame,
    router_address: str,
    router_name: str,
    dust: Decimal = DEFAULT_DUST,
) -> dict[date, DailyStat]:
    """Sum token and USD volume of qualifying trades per UTC calendar date."""
    require_columns(trades, REQUIRED_COLUMNS)
    daily: dict[date, DailyStat] = {}

    for row in trades.to_dict("records"):
        if not is_qualifying_trade(row, router_address, router_name):
            continue

        day = _to_date(row["timestamp"])
        token_amount = _to_decimal(row["cngn_amount"])
        usd_value = _to_decimal(row["usd_value"])
        if day is None or token_amount is None or usd_value is None:
            continue
        if token_amount <= dust or usd_value <= dust:
            continue

        stat = daily.setdefault(day, DailyStat(date=day))
        stat.total_token += token_amount
        stat.total_usd += usd_value

    return daily


def build_vwap_series(
    daily: dict[date, DailyStat],
    date_ceiling: date = DEFAULT_DATE_CEILING,
) -> list[VwapRecord]:
    """One record per day from the first to the last traded date, inclusive.

    Days without volume repeat the last computed VWAP (0 before the first one)
    with zero volumes. The walk never reaches ``date_ceiling``.
    """
    if not daily:
        return []

    current = min(daily)
    end = max(daily)
    last_vwap = Decimal(0)
    records: list[VwapRecord] = []

    while current <= end and current < date_ceiling:
        stat = daily.get(current)
        if stat is not None and stat.total_token > 0:
            last_vwap = stat.total_usd / stat.total_token
            records.append(VwapRecord(
                date=current,
                vwap_price=last_vwap,
                volume_cngn=stat.total_token,
                volume_usd=stat.total_usd,
            ))
        else:
            records.append(VwapRecord(date=current, vwap_price=last_vwap))
        current += timedelta(days=1)

    return records


def build_vwap_history(
    trades: pd.DataFrame,
    router_address: str,
    router_name: str,
    dust: Decimal = DEFAULT_DUST,
    date_ceiling: date = DEFAULT_DATE_CEILING,
) -> list[VwapRecord]:
    daily = aggregate_daily(trades, router_address, router_name, dust=dust)
    if not daily:
        logger.warning("No relevant USDT/USDC trades found in dataset.")
        return []
    logger.info(f"Aggregated {len(daily)} trading days. Range: {min(daily)} to {max(daily)}")
    return build_vwap_series(daily, date_ceiling=date_ceiling)


def vwap_to_dataframe(records: list[VwapRecord]) -> pd.DataFrame:
    rows = [
        {
            "date": r.date.isoformat(),
            "vwap_price_usd": f"{r.vwap_price:.8f}",
            "volume_cngn": f"{r.volume_cngn:.6f}",
            "volume_usd": f"{r.volume_usd:.6f}",
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=VWAP_COLUMNS)


def write_vwap_csv(records: list[VwapRecord], output_path: Path) -> Path:
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        vwap_to_dataframe(records).to_csv(output_path, index=False, lineterminator="\n")
    except OSError as e:
        raise LedgerWriteError(f"Cannot write VWAP history {output_path}: {e}") from e
    logger.info(f"VWAP history written to: {output_path}")
    return output_path
