from decimal import Decimal

import pytest

from conftest import CNGN, POOL, TRADER, USDT, FakeExplorer, detail, transfer, tx_hash

from tradeledger.errors import LedgerWriteError
from tradeledger.pipeline import run_pipeline
from tradeledger.storage.ledger import LEDGER_COLUMNS, Ledger


def swap(n: int, timestamp="2025-08-05T10:04:12.000000Z") -> dict:
    return detail(tx_hash=tx_hash(n), timestamp=timestamp, transfers=[
        transfer(token=USDT, symbol="USDT", value="1000000", frm=TRADER, to=POOL),
        transfer(token=CNGN, value="1522000000", frm=POOL, frm_name="UniswapV3Pool (cNGN/USDT)",
                 to=TRADER, to_name=None),
    ])


def explorer(pages, **kwargs):
    hashes = [h for page in pages for h in page]
    return FakeExplorer(pages=pages, details={h: swap(int(h, 16)) for h in hashes}, **kwargs)


@pytest.mark.asyncio
async def test_pulls_all_history_into_ledger(settings):
    client = explorer([[tx_hash(1), tx_hash(2)], [tx_hash(3)]])

    stats = await run_pipeline(settings, client=client, batch_size=10, progress=False)

    assert stats.written == 3
    assert stats.discovered == 3
    assert stats.exhausted
    df = Ledger(settings.ledger_path).read()
    assert df["transaction_hash"].tolist() == [tx_hash(1), tx_hash(2), tx_hash(3)]
    first = df.iloc[0]
    assert first["timestamp"] == "2025-08-05 10:04"
    assert first["trader_address"] == TRADER
    assert first["interacted_contract_name"] == "SwapRouter"
    assert first["token_in_symbol"] == "USDT"
    assert first["token_out_symbol"] == "cNGN"
    assert Decimal(first["cngn_amount"]) == Decimal("1522")
    assert Decimal(first["usd_value"]) == Decimal("1")
    assert first["usd_source"] == "stablecoin"
    assert first["pool_address"] == POOL


@pytest.mark.asyncio
async def test_rerun_is_idempotent(settings):
    pages = [[tx_hash(1), tx_hash(2)], [tx_hash(3)]]
    await run_pipeline(settings, client=explorer(pages), batch_size=10, progress=False)

    second = explorer(pages + [[tx_hash(4)]])
    stats = await run_pipeline(settings, client=second, batch_size=10, progress=False)

    assert stats.existing == 3
    assert stats.already_seen == 3
    assert stats.written == 1
    assert second.detail_calls == [tx_hash(4)]
    hashes = Ledger(settings.ledger_path).read()["transaction_hash"].tolist()
    assert sorted(hashes) == [tx_hash(n) for n in (1, 2, 3, 4)]
    assert len(hashes) == len(set(hashes))


@pytest.mark.asyncio
async def test_fully_synced_run_is_a_normal_termination(settings):
    pages = [[tx_hash(1)]]
    await run_pipeline(settings, client=explorer(pages), progress=False)
    stats = await run_pipeline(settings, client=explorer(pages), progress=False)
    assert stats.written == 0
    assert stats.exhausted


@pytest.mark.asyncio
async def test_stops_at_target_count(settings):
    pages = [[tx_hash(1), tx_hash(2)], [tx_hash(3), tx_hash(4)], [tx_hash(5)]]
    client = explorer(pages)
    stats = await run_pipeline(settings, client=client, target_count=2, batch_size=2, progress=False)
    assert stats.written == 2
    assert not stats.exhausted
    assert len(client.page_calls) == 1


@pytest.mark.asyncio
async def test_transfer_mode_emits_one_row_per_leg(settings):
    h = tx_hash(7)
    two_legs = detail(tx_hash=h, transfers=[
        transfer(token=CNGN, value="1000000", frm=TRADER, to=POOL),
        transfer(token=CNGN, value="2000000", frm=TRADER, to=POOL),
    ])
    client = FakeExplorer(pages=[[h]], details={h: two_legs})

    await run_pipeline(settings, client=client, mode="transfer", progress=False)
    df = Ledger(settings.ledger_path).read()
    assert df["transaction_hash"].tolist() == [h, h]
    assert [Decimal(v) for v in df["cngn_amount"]] == [Decimal(1), Decimal(2)]
    assert set(df["usd_source"]) == {"default_rate"}


@pytest.mark.asyncio
async def test_transaction_mode_sums_legs(settings):
    h = tx_hash(8)
    two_legs = detail(tx_hash=h, transfers=[
        transfer(token=CNGN, value="1000000", frm=TRADER, to=POOL),
        transfer(token=CNGN, value="2000000", frm=TRADER, to=POOL),
    ])
    client = FakeExplorer(pages=[[h]], details={h: two_legs})

    await run_pipeline(settings, client=client, progress=False)
    df = Ledger(settings.ledger_path).read()
    assert len(df) == 1
    assert Decimal(df["cngn_amount"].iloc[0]) == Decimal(3)
    assert Decimal(df["usd_value"].iloc[0]) == Decimal(3) * settings.default_usd_rate


@pytest.mark.asyncio
async def test_unwritable_ledger_is_fatal(settings, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    with pytest.raises(LedgerWriteError):
        await run_pipeline(settings, client=explorer([[tx_hash(1)]]), ledger_path=blocker / "l.csv", progress=False)


@pytest.mark.asyncio
async def test_resumes_ledger_written_before_usd_source_existed(settings):
    legacy = [c for c in LEDGER_COLUMNS if c != "usd_source"]
    settings.ledger_path.write_text(
        ",".join(legacy) + "\n" + ",".join([tx_hash(1)] + [""] * (len(legacy) - 1)) + "\n"
    )
    client = explorer([[tx_hash(1), tx_hash(2)]])

    stats = await run_pipeline(settings, client=client, progress=False)

    assert stats.existing == 1
    assert stats.written == 1
    assert client.detail_calls == [tx_hash(2)]
    df = Ledger(settings.ledger_path).read()
    assert list(df.columns) == legacy
    assert df["transaction_hash"].tolist() == [tx_hash(1), tx_hash(2)]
    assert Decimal(df["cngn_amount"].iloc[1]) == Decimal("1522")
