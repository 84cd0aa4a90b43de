"""Shared builders for explorer payloads and a scripted in-memory explorer client."""

from __future__ import annotations

import asyncio

import pytest

from tradeledger.config import Settings
from tradeledger.models.schema import TokenTransferItem, TransactionDetail, TransferPage

CNGN = "0x7923c0f6fa3d1ba6eafcaedaad93e737fd22fc4f"
USDT = "0x26e490d30e73c36800788dc6d6315946c4bbea24"
WETH = "0x1111111111111111111111111111111111111111"
POOL = "0xe2a45a102b00fad6447d0ad859b43baf8bf6def1"
ROUTER = "0xec2b2209d710d4283b5d1e29441df0dbb9cee5c3"
TRADER = "0xabcabcabcabcabcabcabcabcabcabcabcabcabca"


def transfer(
    token=CNGN,
    symbol="cNGN",
    decimals="6",
    value="1500000",
    frm=TRADER,
    frm_name=None,
    to=POOL,
    to_name="UniswapV3Pool (cNGN/USDT)",
    exchange_rate=None,
) -> dict:
    return {
        "from": {"hash": frm, "name": frm_name},
        "to": {"hash": to, "name": to_name},
        "token": {
            "address": token,
            "symbol": symbol,
            "decimals": decimals,
            "exchange_rate": exchange_rate,
        },
        "total": {"value": value, "decimals": decimals},
        "type": "token_transfer",
    }


def detail(
    tx_hash="0x" + "aa" * 32,
    transfers=None,
    sender=TRADER,
    to=ROUTER,
    to_name="SwapRouter",
    timestamp="2025-08-05T10:04:12.000000Z",
) -> dict:
    return {
        "hash": tx_hash,
        "timestamp": timestamp,
        "block_number": 123456,
        "status": "ok",
        "method": "exactInputSingle",
        "from": {"hash": sender, "is_contract": False},
        "to": {"hash": to, "name": to_name, "is_contract": True},
        "gas_used": "150000",
        "gas_price": "1000000000",
        "fee": {"value": "150000000000000"},
        "token_transfers": transfers if transfers is not None else [],
    }


def events(*payloads: dict):
    return [TokenTransferItem.model_validate(p).to_event() for p in payloads]


def tx_hash(n: int) -> str:
    return "0x" + f"{n:064x}"


class FakeExplorer:
    """Serves transfer-list pages and transaction details from memory.

    ``failures`` maps a tx hash to a list of exceptions raised on successive
    detail fetches before the real detail is returned.
    """

    def __init__(self, pages=None, details=None, failures=None, delay=0.0):
        self.pages = pages or []
        self.details = details or {}
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.delay = delay
        self.page_calls: list = []
        self.detail_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_transfer_page(self, token_address, page_size=50, cursor=None):
        self.page_calls.append(cursor)
        index = cursor["page"] if cursor else 0
        if index >= len(self.pages):
            return TransferPage(items=[], next_page_params=None)
        hashes = self.pages[index]
        next_params = {"page": index + 1} if index + 1 < len(self.pages) else None
        return TransferPage.model_validate({
            "items": [{"transaction_hash": h} for h in hashes],
            "next_page_params": next_params,
        })

    async def fetch_transaction_with_transfers(self, tx_hash):
        self.detail_calls.append(tx_hash)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            pending = self.failures.get(tx_hash)
            if pending:
                raise pending.pop(0)
            payload = self.details.get(tx_hash) or detail(tx_hash=tx_hash, transfers=[])
            parsed = TransactionDetail.model_validate(payload)
            return parsed, parsed.token_transfers or []
        finally:
            self.in_flight -= 1

    async def aclose(self):
        pass


async def no_sleep(_seconds):
    return None


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        ledger_path=tmp_path / "ledger.csv",
        vwap_path=tmp_path / "vwap.csv",
        trades_path=tmp_path / "trades.csv",
        request_spacing=0.0,
        rate_limit_delay=0.0,
        rate_limit_jitter=0.0,
        server_error_delay=0.0,
        page_retry_delay=0.0,
        window_pause=0.0,
    )
