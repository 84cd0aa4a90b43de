from decimal import Decimal

from conftest import CNGN, POOL, TRADER, USDT, events, transfer

from tradeledger.tokens.constants import CNGN_USD_FALLBACK
from tradeledger.tokens.pricing import value_in_usd


def test_stablecoin_leg_is_taken_verbatim():
    transfers = events(
        transfer(token=CNGN, value="1522000000", decimals="6"),
        transfer(token=USDT, symbol="USDT", value="1000000", decimals="6", frm=POOL, to=TRADER),
    )
    usd = value_in_usd(transfers, Decimal("1522"), CNGN, fallback_rate=Decimal("5"))
    assert usd.value == Decimal("1")
    assert usd.source == "stablecoin"


def test_usdc_counts_as_stablecoin():
    transfers = events(transfer(token="0x3333333333333333333333333333333333333333", symbol="USDC", value="2500000"))
    assert value_in_usd(transfers, Decimal("10"), CNGN).value == Decimal("2.5")


def test_zero_stablecoin_leg_falls_through():
    transfers = events(
        transfer(token=CNGN, value="1000000"),
        transfer(token=USDT, symbol="USDT", value="0"),
    )
    usd = value_in_usd(transfers, Decimal("1"), CNGN)
    assert usd.source == "default_rate"


def test_explicit_fallback_rate():
    transfers = events(transfer(token=CNGN, value="2000000"))
    usd = value_in_usd(transfers, Decimal("2"), CNGN, fallback_rate=Decimal("0.0007"))
    assert usd.value == Decimal("0.0014")
    assert usd.source == "exchange_rate"


def test_rate_attached_to_token_metadata():
    transfers = events(transfer(token=CNGN, value="2000000", exchange_rate="0.00065"))
    usd = value_in_usd(transfers, Decimal("2"), CNGN)
    assert usd.value == Decimal("0.0013")
    assert usd.source == "exchange_rate"


def test_default_rate_always_succeeds():
    usd = value_in_usd([], Decimal("1522"), CNGN)
    assert usd.value == Decimal("1522") * CNGN_USD_FALLBACK
    assert usd.source == "default_rate"


def test_malformed_stablecoin_leg_is_ignored():
    transfers = events(transfer(token=USDT, symbol="USDT", value="n/a"))
    usd = value_in_usd(transfers, Decimal("1"), CNGN, default_rate=Decimal("0.001"))
    assert usd.value == Decimal("0.001")
