"""Append-only CSV ledger of enriched trades, plus the dedup index rebuilt from it."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

import pandas as pd

from tradeledger.errors import LedgerFormatError, LedgerWriteError
from tradeledger.models.schema import EnrichedTrade

logger = logging.getLogger(__name__)

LEDGER_COLUMNS: list[str] = list(EnrichedTrade.model_fields)


class DedupIndex:
    """Transaction hashes already persisted, grown monotonically by one run."""

    def __init__(self, hashes: Iterable[str] = ()):
        self._hashes: set[str] = set(hashes)

    def __contains__(self, tx_hash: str) -> bool:
        return tx_hash in self._hashes

    def __len__(self) -> int:
        return len(self._hashes)

    def add(self, tx_hash: str) -> bool:
        """Record a hash. Returns False if it was already known."""
        if tx_hash in self._hashes:
            return False
        self._hashes.add(tx_hash)
        return True


def scan_hashes(path: Path) -> Iterator[str]:
    """First column of every data line, quotes stripped.

    Fast path: no CSV parsing. Only valid while the hash column never needs
    quoting; lines not starting with a 0x hash are ignored.
    """
    with path.open("r", encoding="utf-8", newline="") as fh:
        next(fh, None)  # header
        for line in fh:
            first = line.rstrip("\r\n").split(",", 1)[0].strip('"')
            if first.startswith("0x"):
                yield first


class Ledger:
    """CSV file with a header row; rows are only ever appended."""

    def __init__(self, path: Path, columns: list[str] | None = None):
        self.path = Path(path)
        self.columns = columns or LEDGER_COLUMNS

    def ensure_header(self) -> None:
        """Create the file with its header row if it is missing or empty.

        An existing file keeps its own header: later appends write exactly its
        columns, so a ledger written before a column was added stays readable.
        Columns this version does not produce raise LedgerFormatError.
        """
        header = read_header(self.path)
        if header is not None:
            self._adopt_header(header)
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            pd.DataFrame(columns=self.columns).to_csv(self.path, index=False, lineterminator="\n")
        except OSError as e:
            raise LedgerWriteError(f"Cannot create ledger {self.path}: {e}") from e

    def _adopt_header(self, header: list[str]) -> None:
        unknown = [c for c in header if c not in LEDGER_COLUMNS]
        if unknown or header[0] != LEDGER_COLUMNS[0]:
            raise LedgerFormatError(
                f"Ledger {self.path} has an incompatible header (first column {header[0]!r}, unknown {unknown})"
            )
        if header != self.columns:
            missing = [c for c in self.columns if c not in header]
            logger.warning(f"Ledger {self.path} has no {missing} column(s); new rows follow its header.")
            self.columns = header

    def load_index(self) -> DedupIndex:
        if not self.path.exists():
            return DedupIndex()
        logger.info(f"Reading existing records from {self.path}...")
        index = DedupIndex(scan_hashes(self.path))
        logger.info(f"Loaded {len(index)} unique existing hashes.")
        return index

    def append(self, trades: list[EnrichedTrade]) -> int:
        """Append rows in one write. Returns rows written."""
        if not trades:
            return 0
        df = pd.DataFrame([t.to_row() for t in trades], columns=self.columns)
        try:
            df.to_csv(self.path, mode="a", header=False, index=False, lineterminator="\n")
        except OSError as e:
            raise LedgerWriteError(f"Cannot append to ledger {self.path}: {e}") from e
        return len(df)

    def read(self) -> pd.DataFrame:
        """Whole ledger as strings; empty cells stay empty strings."""
        if not self.path.exists():
            raise FileNotFoundError(f"Ledger file not found: {self.path}")
        return read_csv_strings(self.path)


def read_header(path: Path) -> list[str] | None:
    """Column names of an existing CSV, or None when the file is missing or empty."""
    if not path.exists() or path.stat().st_size == 0:
        return None
    try:
        return list(pd.read_csv(path, nrows=0).columns)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise LedgerFormatError(f"Cannot read header of {path}: {e}") from e


def read_csv_strings(path: Path) -> pd.DataFrame:
    try:
        return pd.read_csv(path, dtype=str, keep_default_na=False, na_filter=False)
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise LedgerFormatError(f"Malformed CSV {path}: {e}") from e


def require_columns(df: pd.DataFrame, columns: Iterable[str], path: Path | None = None) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        where = f" in {path}" if path else ""
        raise LedgerFormatError(f"Missing columns{where}: {missing}")


def extract_router_trades(
    ledger_path: Path,
    output_path: Path,
    router_address: str,
    router_name: str,
) -> int:
    """Copy ledger rows that interacted with the swap router into ``output_path``.

    Header and quoting follow the ledger. Returns the number of rows written.
    """
    df = read_csv_strings(ledger_path)
    require_columns(df, ["interacted_contract_address", "interacted_contract_name"], ledger_path)

    mask = (
        (df["interacted_contract_address"].str.lower() == router_address.lower())
        & (df["interacted_contract_name"] == router_name)
    )
    trades = df[mask]

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        trades.to_csv(output_path, index=False, lineterminator="\n")
    except OSError as e:
        raise LedgerWriteError(f"Cannot write trades file {output_path}: {e}") from e
    logger.info(f"Extracted {len(trades)} trades to {output_path}")
    return len(trades)
