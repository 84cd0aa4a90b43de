"""Reconstruct trade semantics from the token transfers inside one transaction."""

from __future__ import annotations

from dataclasses import dataclass

from tradeledger.labels.known import is_dex_router
from tradeledger.models.schema import TransferEvent
from tradeledger.tokens.constants import POOL_LABEL_MARKERS


@dataclass(frozen=True)
class TradeClassification:
    """One token-of-interest transfer interpreted as a trade leg."""

    transfer: TransferEvent
    trader: str
    pool_address: str
    pool_name: str
    direction: str  # "buy" | "sell"
    token_in: TransferEvent | None
    token_out: TransferEvent | None


def is_pool_label(label: str | None) -> bool:
    if not label:
        return False
    return any(marker in label for marker in POOL_LABEL_MARKERS)


def _resolve_sides(transfer: TransferEvent) -> tuple[str, str, str]:
    """Return (trader, pool_address, pool_name) for a token-of-interest transfer."""
    if is_pool_label(transfer.to_label):
        return transfer.from_address, transfer.to_address, transfer.to_label or ""
    if is_pool_label(transfer.from_label):
        return transfer.to_address, transfer.from_address, transfer.from_label or ""
    # No pool label on either side: a router paying out is never the trader
    if is_dex_router(transfer.from_address) and not is_dex_router(transfer.to_address):
        return transfer.to_address, transfer.from_address, ""
    return transfer.from_address, transfer.to_address, ""


def counter_tokens(
    transfers: list[TransferEvent], trader: str
) -> tuple[TransferEvent | None, TransferEvent | None]:
    """Find what the trader disposed of (first) and acquired (last) across all hops."""
    token_in: TransferEvent | None = None
    token_out: TransferEvent | None = None
    for t in transfers:
        if t.from_address == trader:
            if token_in is None:
                token_in = t
        elif t.to_address == trader:
            token_out = t
    return token_in, token_out


def classify_transfers(transfers: list[TransferEvent], token_address: str) -> list[TradeClassification]:
    """Classify every transfer of ``token_address`` in a transaction.

    A DEX swap typically produces 2+ transfers in the same tx:
    1. Token A: trader -> pool (or router)
    2. Token B: pool -> trader

    The pool is whichever side carries a pool-like explorer label. Multi-hop
    routes are resolved by scanning every transfer for the trader, so the
    token of interest may be an intermediate hop. Returns an empty list when
    the token never moves in this transaction.
    """
    token_address = token_address.lower()
    classifications: list[TradeClassification] = []

    for transfer in transfers:
        if transfer.token_address != token_address:
            continue

        trader, pool_address, pool_name = _resolve_sides(transfer)
        token_in, token_out = counter_tokens(transfers, trader)
        direction = "buy" if transfer.to_address == trader else "sell"

        classifications.append(TradeClassification(
            transfer=transfer,
            trader=trader,
            pool_address=pool_address,
            pool_name=pool_name,
            direction=direction,
            token_in=token_in,
            token_out=token_out,
        ))

    return classifications
