"""Centralized configuration via pydantic-settings. Overrides from .env."""

from datetime import date
from decimal import Decimal
from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from web3 import Web3

from tradeledger.tokens.constants import (
    CNGN_ADDRESS,
    CNGN_USD_FALLBACK,
    SWAP_ROUTER_ADDRESS,
    SWAP_ROUTER_NAME,
)


PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Block explorer (Blockscout v2 + Etherscan-compatible v1)
    explorer_base_url: str = "https://scan.assetchain.org"
    request_timeout: float = 30.0
    request_spacing: float = 0.2
    inline_transfers: bool = True

    # Token of interest and the swap router that defines a trade
    token_address: str = CNGN_ADDRESS
    router_address: str = SWAP_ROUTER_ADDRESS
    router_name: str = SWAP_ROUTER_NAME

    # Pipeline sizing
    page_size: int = 1000
    batch_size: int = 1000
    target_count: int = 250_000
    concurrency: int = Field(default=50, ge=1)

    # Retry policy
    max_attempts: int = Field(default=3, ge=1)
    rate_limit_delay: float = 2.0
    rate_limit_jitter: float = 1.0
    server_error_delay: float = 3.0
    page_max_attempts: int = Field(default=15, ge=1)
    page_retry_delay: float = 2.0
    window_pause: float = 0.05

    # Valuation
    default_usd_rate: Decimal = CNGN_USD_FALLBACK
    fallback_usd_rate: Decimal | None = None

    # VWAP
    dust_threshold: Decimal = Decimal("0.000001")
    vwap_date_ceiling: date = date(2030, 1, 1)

    # Data paths
    data_dir: Path = Field(default_factory=lambda: PROJECT_ROOT / "data")
    # Unset file paths resolve under data_dir
    ledger_path: Path | None = None
    vwap_path: Path | None = None
    trades_path: Path | None = None

    @field_validator("token_address", "router_address")
    @classmethod
    def _normalize_address(cls, value: str) -> str:
        if not Web3.is_address(value.lower()):
            raise ValueError(f"Not an EVM address: {value!r}")
        return value.lower()

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        if self.ledger_path is None:
            self.ledger_path = self.data_dir / "assetchain_cngn_transactions_full.csv"
        if self.vwap_path is None:
            self.vwap_path = self.data_dir / "cngn_vwap_history.csv"
        if self.trades_path is None:
            self.trades_path = self.data_dir / "assetchain_cngn_trades.csv"
        return self

    @property
    def api_v2_url(self) -> str:
        return f"{self.explorer_base_url.rstrip('/')}/api/v2"

    @property
    def api_v1_url(self) -> str:
        return f"{self.explorer_base_url.rstrip('/')}/api"


@lru_cache
def get_settings() -> Settings:
    return Settings()
