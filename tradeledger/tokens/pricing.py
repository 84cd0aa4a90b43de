"""USD valuation of token-of-interest amounts. Heuristic, never fails.

Tiers, first match wins:
1. stablecoin    - a USDT/USDC leg in the same tx is taken 1:1 as the USD value
2. exchange_rate - amount * explicit fallback rate, else the explorer's token rate
3. default_rate  - amount * hardcoded rate
"""

from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple

from tradeledger.errors import AmountError
from tradeledger.models.schema import TransferEvent
from tradeledger.tokens.amounts import decode_amount
from tradeledger.tokens.constants import CNGN_USD_FALLBACK, STABLECOIN_SYMBOLS


class UsdValuation(NamedTuple):
    value: Decimal
    source: str


def stablecoin_value(transfers: list[TransferEvent]) -> Decimal | None:
    """Decoded amount of the first non-zero USDT/USDC transfer, if any."""
    for t in transfers:
        if t.token_symbol not in STABLECOIN_SYMBOLS:
            continue
        try:
            amount = decode_amount(t.raw_amount, t.token_decimals)
        except AmountError:
            continue
        if amount > 0:
            return amount
    return None


def attached_rate(transfers: list[TransferEvent], token_address: str) -> Decimal | None:
    """USD rate the explorer attached to the token-of-interest metadata."""
    token_address = token_address.lower()
    for t in transfers:
        if t.token_address == token_address and t.exchange_rate is not None and t.exchange_rate > 0:
            return t.exchange_rate
    return None


def value_in_usd(
    transfers: list[TransferEvent],
    token_amount: Decimal,
    token_address: str,
    fallback_rate: Decimal | None = None,
    default_rate: Decimal = CNGN_USD_FALLBACK,
) -> UsdValuation:
    stable = stablecoin_value(transfers)
    if stable is not None:
        return UsdValuation(stable, "stablecoin")

    rate = fallback_rate if fallback_rate is not None else attached_rate(transfers, token_address)
    if rate is not None:
        return UsdValuation(token_amount * rate, "exchange_rate")

    return UsdValuation(token_amount * default_rate, "default_rate")
