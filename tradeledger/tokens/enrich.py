"""Turn one explorer transaction into ledger rows.

Two shapes are supported:

- ``transaction`` mode: exactly one row per transaction. The trader is the
  transaction sender and ``cngn_amount`` sums every token-of-interest leg.
- ``transfer`` mode: one row per token-of-interest transfer, each classified
  and valued on its own.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from tradeledger.labels.known import contract_name
from tradeledger.models.schema import EnrichedTrade, TokenTransferItem, TransactionDetail, TransferEvent
from tradeledger.tokens.amounts import decode_amount
from tradeledger.tokens.classifier import TradeClassification, classify_transfers, counter_tokens
from tradeledger.tokens.constants import CNGN_USD_FALLBACK
from tradeledger.tokens.pricing import value_in_usd

logger = logging.getLogger(__name__)

MODES = ("transaction", "transfer")


def format_block_time(iso_timestamp: str | None) -> str:
    """Explorer ISO timestamp -> 'YYYY-MM-DD HH:MM' in UTC."""
    if not iso_timestamp:
        return ""
    try:
        parsed = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    except ValueError:
        return iso_timestamp.replace("T", " ")[:16]
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%d %H:%M")


def _amount(transfer: TransferEvent | None) -> Decimal | None:
    if transfer is None:
        return None
    return decode_amount(transfer.raw_amount, transfer.token_decimals)


class TradeEnricher:
    """Apply classifier, decoder and valuator to a fetched transaction."""

    def __init__(
        self,
        token_address: str,
        mode: str = "transaction",
        default_rate: Decimal = CNGN_USD_FALLBACK,
        fallback_rate: Decimal | None = None,
    ):
        if mode not in MODES:
            raise ValueError(f"Unknown mode '{mode}'. Supported: {list(MODES)}")
        self.token_address = token_address.lower()
        self.mode = mode
        self.default_rate = default_rate
        self.fallback_rate = fallback_rate

    def enrich(self, detail: TransactionDetail, items: list[TokenTransferItem]) -> list[EnrichedTrade]:
        """Rows for this transaction; empty when the token of interest never moves.

        Raises AmountError when a leg that feeds the row cannot be decoded.
        """
        transfers = [item.to_event() for item in items]
        classifications = classify_transfers(transfers, self.token_address)
        if not classifications:
            logger.debug(f"{detail.hash}: no transfer of {self.token_address}, skipped")
            return []

        base = self._base_fields(detail)
        if self.mode == "transfer":
            return [self._transfer_row(base, transfers, c) for c in classifications]
        return [self._transaction_row(base, detail, transfers, classifications)]

    def _base_fields(self, detail: TransactionDetail) -> dict:
        interacted_address = ""
        interacted_name = ""
        if detail.to is not None:
            interacted_address = detail.to.hash.lower()
            interacted_name = contract_name(interacted_address, detail.to.name, detail.to.is_contract)

        return {
            "transaction_hash": detail.hash,
            "block_number": detail.block_number,
            "timestamp": format_block_time(detail.timestamp),
            "status": detail.status or "",
            "interacted_contract_address": interacted_address,
            "interacted_contract_name": interacted_name,
            "transaction_method": detail.method or "",
            "transaction_fee_native": (detail.fee.value if detail.fee and detail.fee.value else "0"),
            "gas_used": detail.gas_used or "",
            "gas_price": detail.gas_price or "",
        }

    def _counter_fields(self, token_in: TransferEvent | None, token_out: TransferEvent | None) -> dict:
        return {
            "token_in_address": token_in.token_address if token_in else "",
            "token_in_symbol": token_in.token_symbol if token_in else "",
            "token_in_amount": _amount(token_in),
            "token_out_address": token_out.token_address if token_out else "",
            "token_out_symbol": token_out.token_symbol if token_out else "",
            "token_out_amount": _amount(token_out),
        }

    def _transaction_row(
        self,
        base: dict,
        detail: TransactionDetail,
        transfers: list[TransferEvent],
        classifications: list[TradeClassification],
    ) -> EnrichedTrade:
        trader = detail.from_.hash.lower() if detail.from_ is not None else classifications[0].trader
        token_in, token_out = counter_tokens(transfers, trader)

        cngn_amount = sum((_amount(c.transfer) for c in classifications), Decimal(0))

        labelled = [c for c in classifications if c.pool_name]
        pool = labelled[0] if labelled else classifications[0]

        usd = value_in_usd(
            transfers, cngn_amount, self.token_address,
            fallback_rate=self.fallback_rate, default_rate=self.default_rate,
        )

        return EnrichedTrade(
            **base,
            **self._counter_fields(token_in, token_out),
            trader_address=trader,
            cngn_amount=cngn_amount,
            usd_value=usd.value,
            usd_source=usd.source,
            pool_address=pool.pool_address,
            pool_name=pool.pool_name,
        )

    def _transfer_row(
        self,
        base: dict,
        transfers: list[TransferEvent],
        c: TradeClassification,
    ) -> EnrichedTrade:
        amount = _amount(c.transfer)
        usd = value_in_usd(
            transfers, amount, self.token_address,
            fallback_rate=self.fallback_rate, default_rate=self.default_rate,
        )
        return EnrichedTrade(
            **base,
            **self._counter_fields(c.token_in, c.token_out),
            trader_address=c.trader,
            cngn_amount=amount,
            usd_value=usd.value,
            usd_source=usd.source,
            pool_address=c.pool_address,
            pool_name=c.pool_name,
        )
