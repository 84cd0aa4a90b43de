"""Pydantic v2 models: explorer response shapes at the boundary, internal trade records inside."""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from tradeledger.tokens.amounts import parse_decimals
from tradeledger.tokens.constants import DEFAULT_DECIMALS


class _Upstream(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# --- Blockscout v2 response shapes ---

class AddressRef(_Upstream):
    hash: str
    name: str | None = None
    is_contract: bool | None = None


class TokenInfo(_Upstream):
    address: str = Field(validation_alias=AliasChoices("address", "address_hash"))
    symbol: str | None = None
    decimals: str | None = None
    exchange_rate: str | None = None

    @field_validator("decimals", "exchange_rate", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value


class TransferTotal(_Upstream):
    value: str | None = None
    decimals: str | None = None
    token_id: str | None = None

    @field_validator("value", "decimals", "token_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class TokenTransferItem(_Upstream):
    from_: AddressRef = Field(alias="from")
    to: AddressRef
    token: TokenInfo
    total: TransferTotal | None = None

    def to_event(self) -> TransferEvent:
        """Flatten into the internal immutable transfer record."""
        total = self.total or TransferTotal()
        if total.value is not None:
            raw_amount = total.value
            decimals = parse_decimals(total.decimals or self.token.decimals, DEFAULT_DECIMALS)
        elif total.token_id is not None:
            # Non-fungible position tokens move exactly one unit
            raw_amount, decimals = "1", 0
        else:
            raw_amount = ""
            decimals = parse_decimals(self.token.decimals, DEFAULT_DECIMALS)

        rate = None
        if self.token.exchange_rate:
            try:
                rate = Decimal(self.token.exchange_rate)
            except ArithmeticError:
                rate = None

        return TransferEvent(
            from_address=self.from_.hash.lower(),
            from_label=self.from_.name,
            to_address=self.to.hash.lower(),
            to_label=self.to.name,
            token_address=self.token.address.lower(),
            token_symbol=self.token.symbol or "",
            token_decimals=decimals,
            raw_amount=raw_amount,
            exchange_rate=rate,
        )


class TransactionFee(_Upstream):
    value: str | None = None


class TransactionDetail(_Upstream):
    hash: str
    timestamp: str | None = None
    block_number: int | None = Field(default=None, validation_alias=AliasChoices("block_number", "block"))
    status: str | None = None
    method: str | None = None
    from_: AddressRef | None = Field(default=None, alias="from")
    to: AddressRef | None = None
    gas_used: str | None = None
    gas_price: str | None = None
    fee: TransactionFee | None = None
    token_transfers: list[TokenTransferItem] | None = None

    @field_validator("token_transfers", mode="before")
    @classmethod
    def _unwrap_items(cls, value: Any) -> Any:
        # Inline transfers come either as a list or as a paginated {"items": [...]}
        if isinstance(value, dict):
            return value.get("items") or []
        return value

    @field_validator("gas_used", "gas_price", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class TransferListItem(_Upstream):
    transaction_hash: str | None = Field(
        default=None, validation_alias=AliasChoices("transaction_hash", "tx_hash")
    )


class TransferPage(_Upstream):
    items: list[TransferListItem] = Field(default_factory=list)
    next_page_params: dict[str, Any] | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return value or []


class TokenTransferPage(_Upstream):
    items: list[TokenTransferItem] = Field(default_factory=list)
    next_page_params: dict[str, Any] | None = None


# --- Etherscan-compatible v1 txlist ---

class AccountTransaction(_Upstream):
    block_number: str = Field(alias="blockNumber")
    time_stamp: str = Field(alias="timeStamp")
    hash: str
    from_: str = Field(alias="from")
    to: str = ""
    value: str = "0"
    gas_used: str = Field(default="", alias="gasUsed")
    gas_price: str = Field(default="", alias="gasPrice")
    is_error: str = Field(default="0", alias="isError")
    function_name: str = Field(default="", alias="functionName")


# --- internal records ---

class TransferEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_address: str
    from_label: str | None = None
    to_address: str
    to_label: str | None = None
    token_address: str
    token_symbol: str = ""
    token_decimals: int = DEFAULT_DECIMALS
    raw_amount: str = Field(description="Raw uint256 as string to avoid overflow")
    exchange_rate: Decimal | None = Field(default=None, description="USD per token, from explorer metadata")


class EnrichedTrade(BaseModel):
    transaction_hash: str
    block_number: int | None = None
    timestamp: str = Field(default="", description="UTC, YYYY-MM-DD HH:MM")
    status: str = ""
    trader_address: str = ""
    interacted_contract_address: str = ""
    interacted_contract_name: str = ""
    transaction_method: str = ""
    token_in_address: str = ""
    token_in_symbol: str = ""
    token_in_amount: Decimal | None = None
    token_out_address: str = ""
    token_out_symbol: str = ""
    token_out_amount: Decimal | None = None
    cngn_amount: Decimal = Decimal(0)
    usd_value: Decimal | None = None
    pool_address: str = ""
    pool_name: str = ""
    transaction_fee_native: str = "0"
    gas_used: str = ""
    gas_price: str = ""
    usd_source: str = ""

    def to_row(self) -> dict[str, str]:
        """Ledger row: every value a string, decimals in plain notation."""
        row: dict[str, str] = {}
        for name, value in self:
            if value is None:
                row[name] = ""
            elif isinstance(value, Decimal):
                row[name] = format(value, "f")
            else:
                row[name] = str(value)
        return row


class DailyStat(BaseModel):
    date: datetime.date
    total_usd: Decimal = Decimal(0)
    total_token: Decimal = Decimal(0)


class VwapRecord(BaseModel):
    date: datetime.date
    vwap_price: Decimal
    volume_cngn: Decimal = Decimal(0)
    volume_usd: Decimal = Decimal(0)

    @property
    def carried_forward(self) -> bool:
        """True when the price was repeated from an earlier day, not observed."""
        return self.volume_cngn == 0 and self.volume_usd == 0
