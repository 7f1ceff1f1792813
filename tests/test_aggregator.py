import asyncio

import pytest

from stubs import StubResponse, StubSession, make_aggregator, stub_settings
from tokenpulse.aggregator import FetchJob, dedupe_tokens, filter_by_status, tag_tokens
from tokenpulse.models import ProtocolToken, TokenStatus
from tokenpulse.normalize import WSOL_MINT

PUMP_V3 = "https://frontend-api-v3.pump.fun"
PUMP_ADV = "https://advanced-api-v2.pump.fun"


def _amm_pool(mint, open_time=None):
    return {"id": f"pool-{mint}", "mintA": WSOL_MINT, "mintB": mint, "openTime": open_time}


def _dlmm_pair(mint, created_at=None):
    return {
        "address": f"pair-{mint}",
        "mint_x": mint,
        "mint_y": WSOL_MINT,
        "name": f"{mint}-SOL",
        "created_at": created_at,
    }


def test_raydium_and_meteora_migrated_merge():
    session = StubSession(
        {
            "api.raydium.io/v2/ammV3/ammPools": {
                "data": [_amm_pool("R1", 1_700_000_300), _amm_pool("R2", 1_700_000_100)]
            },
            "dlmm-api.meteora.ag/pair/all": [
                [_dlmm_pair("M1", 1_700_000_400), _dlmm_pair("M2", 1_700_000_200)]
            ],
        }
    )
    aggregator = make_aggregator(session)

    tokens = asyncio.run(aggregator.fetch_tokens_by_protocols(["raydium", "meteora"], "migrated"))

    assert [(t.protocol, t.id) for t in tokens] == [
        ("meteora", "M1"),
        ("raydium", "R1"),
        ("meteora", "M2"),
        ("raydium", "R2"),
    ]
    assert all(t.is_migrated and t.bonding_progress == 1.0 for t in tokens)


def test_migrated_filter_drops_unmigrated_rows_and_orders_by_migration_time():
    raydium = [
        ProtocolToken(id="R1", protocol="raydium", is_migrated=True, migration_timestamp=5_000),
        ProtocolToken(id="R2", protocol="raydium", is_migrated=True, created_timestamp=2_000),
        ProtocolToken(id="R3", protocol="raydium", bonding_progress=0.4, created_timestamp=9_000),
    ]
    meteora = [
        ProtocolToken(id="M1", protocol="meteora", is_migrated=True, migration_timestamp=3_000),
        ProtocolToken(id="M2", protocol="meteora", is_migrated=True, created_timestamp=1_000),
    ]

    tokens = filter_by_status(raydium + meteora, TokenStatus.MIGRATED, settings=stub_settings())

    assert [t.id for t in tokens] == ["R1", "M1", "R2", "M2"]


def test_moonit_sources_share_protocol_and_graduated_listing_is_forced():
    session = StubSession(
        {
            "datapi.jup.ag/v1/assets/toptraded/24h": {
                "assets": [
                    {"id": "StillBonding", "launchpad": "moonit", "bondingCurve": 55},
                    {"id": "JupGraduated", "launchpad": "moonit", "graduatedPool": "P", "graduatedAt": 2_000},
                ]
            },
            "api.mintlp.io/v1/fun": {
                "data": [{"mintAddress": "ApiGraduated", "progressPercent": 4000, "createdAt": 1_000}]
            },
        }
    )
    aggregator = make_aggregator(session)

    tokens = asyncio.run(aggregator.fetch_tokens_by_protocols(["moonit"], TokenStatus.MIGRATED))

    assert [t.id for t in tokens] == ["JupGraduated", "ApiGraduated"]
    assert {t.protocol for t in tokens} == {"moonit"}
    forced = tokens[1]
    assert forced.is_migrated and forced.bonding_progress == 1.0
    assert any("state=GRADUATED" in url for url in session.urls())


def test_final_stretch_window():
    coins = [
        {"coinMint": "NinetyFive", "bondingCurveProgress": 95, "creationTime": 3},
        {"coinMint": "Full", "bondingCurveProgress": 100, "creationTime": 4},
        {"coinMint": "EightyFive", "bondingCurveProgress": 85, "creationTime": 5},
        {"coinMint": "Done", "bondingCurveProgress": 97, "complete": True, "creationTime": 6},
        {"coinMint": "ByCap", "marketCap": 0.93 * 69 * 137, "creationTime": 7},
    ]
    session = StubSession({f"{PUMP_ADV}/coins/list?sortBy=marketCap": {"coins": coins}})
    aggregator = make_aggregator(session)

    tokens = asyncio.run(aggregator.fetch_tokens_by_protocols(["pump"], "finalStretch"))

    assert [t.id for t in tokens] == ["ByCap", "NinetyFive"]
    assert tokens[0].bonding_progress == pytest.approx(0.93)


def test_new_excludes_migrated_and_near_complete_sorted_newest_first():
    coins = [
        {"mint": "Old", "created_timestamp": 1_000, "bondingCurveProgress": 10},
        {"mint": "Fresh", "created_timestamp": 3_000, "bondingCurveProgress": 20},
        {"mint": "Almost", "created_timestamp": 4_000, "bondingCurveProgress": 92},
        {"mint": "Migrated", "created_timestamp": 5_000, "complete": True},
        {"mint": "NoInfo", "created_timestamp": 2_000},
    ]
    session = StubSession({f"{PUMP_V3}/coins/latest": [coins]})
    aggregator = make_aggregator(session)

    tokens = asyncio.run(aggregator.fetch_tokens_by_protocols(["pump"], "new"))

    assert [t.id for t in tokens] == ["Fresh", "NoInfo", "Old"]


def test_barely_started_curves_stay_in_new():
    coins = [
        {"mint": "Tiny", "created_timestamp": 2_000, "bondingCurveProgress": 0.95},
        {"mint": "Fresh", "created_timestamp": 1_000, "real_sol_reserves": 500_000},
    ]
    session = StubSession({f"{PUMP_V3}/coins/latest": [coins]})
    aggregator = make_aggregator(session)

    async def scenario():
        fresh = await aggregator.fetch_tokens_by_protocols(["pump"], "new")
        stretch = filter_by_status(fresh, TokenStatus.FINAL_STRETCH, settings=aggregator.settings)
        return fresh, stretch

    fresh, stretch = asyncio.run(scenario())

    assert [t.id for t in fresh] == ["Tiny", "Fresh"]
    assert stretch == []


def test_failing_source_does_not_sink_the_others(monkeypatch):
    session = StubSession(
        {
            "launch-mint-v1.raydium.io": StubResponse(status=500),
            "api.orca.so": {"whirlpools": [{"tokenA": {"mint": "Orc"}, "tokenB": {"mint": WSOL_MINT}}]},
        }
    )
    aggregator = make_aggregator(session)

    tokens = asyncio.run(aggregator.fetch_tokens_by_protocols(["raydium", "orca"]))
    assert [t.id for t in tokens] == ["Orc"]

    async def boom(limit=100):
        raise RuntimeError("decoder bug")

    monkeypatch.setattr(aggregator.orca, "fetch_whirlpool_tokens", boom)
    session.add("launch-mint-v1.raydium.io", {"success": True, "data": {"rows": [{"mint": "Ray"}]}})
    aggregator.clear_caches()

    tokens = asyncio.run(aggregator.fetch_tokens_by_protocols(["raydium", "orca"]))
    assert [t.id for t in tokens] == ["Ray"]


def test_unknown_protocols_are_skipped():
    session = StubSession()
    aggregator = make_aggregator(session)

    assert asyncio.run(aggregator.fetch_tokens_by_protocols(["sunpump", ""])) == []
    assert session.calls == []


def test_invalid_status_is_rejected():
    aggregator = make_aggregator(StubSession())
    with pytest.raises(ValueError):
        asyncio.run(aggregator.fetch_tokens_by_protocols(["pump"], "graduating"))


def test_launchpad_protocols_route_to_jupiter():
    session = StubSession({"datapi.jup.ag": {"recent": {"assets": [{"id": "Bonk1", "launchpad": "letsbonk.fun"}]}}})
    aggregator = make_aggregator(session)

    tokens = asyncio.run(aggregator.fetch_tokens_by_protocols(["bonk"], "new"))

    assert [(t.protocol, t.id) for t in tokens] == [("bonk", "Bonk1")]
    assert session.calls[0]["json"]["recent"]["launchpads"] == ["letsbonk.fun"]


def test_plan_jobs_routing_table():
    aggregator = make_aggregator(StubSession())

    def sources(protocols, status):
        return [(job.source, job.graduated_only) for job in aggregator.plan_jobs(protocols, status)]

    assert sources(["moonit"], TokenStatus.NEW) == [("moonit-jupiter", False), ("moonit-api", False)]
    assert sources(["moonit"], TokenStatus.MIGRATED) == [
        ("moonit-jupiter", False),
        ("moonit-api-graduated", True),
    ]
    assert sources(["pump"], TokenStatus.MIGRATED) == [("pump-graduated", True)]
    assert sources(["Meteora", "meteora"], None) == [("meteora", False)]
    assert sources(["moonshot"], TokenStatus.MIGRATED) == [("moonshot", False), ("moonshot-graduated", True)]


def test_dedupe_prefers_migrated_record():
    pending = ProtocolToken(id="X", protocol="moonit", bonding_progress=0.5)
    graduated = ProtocolToken(id="X", protocol="moonit", is_migrated=True)
    elsewhere = ProtocolToken(id="X", protocol="pump")

    merged = dedupe_tokens([pending, graduated, elsewhere])

    assert len(merged) == 2
    assert merged[0].is_migrated


def test_tag_tokens_normalises_alias_and_forces_graduation():
    job = FetchJob("moonit-api-graduated", loader=None, graduated_only=True)
    (token,) = tag_tokens(job, [ProtocolToken(id="X", protocol="moonit", bonding_progress=0.2)])

    assert job.protocol == "moonit"
    assert token.protocol == "moonit"
    assert token.is_migrated and token.bonding_progress == 1.0


def test_migrated_sorted_by_migration_then_creation_time():
    tokens = [
        ProtocolToken(id="A", protocol="p", is_migrated=True, migration_timestamp=100, created_timestamp=999),
        ProtocolToken(id="B", protocol="p", is_migrated=True, created_timestamp=300),
        ProtocolToken(id="C", protocol="p", is_migrated=True),
        ProtocolToken(id="D", protocol="p", created_timestamp=10_000),
    ]

    result = filter_by_status(tokens, TokenStatus.MIGRATED, settings=stub_settings())

    assert [t.id for t in result] == ["B", "A", "C"]


def test_no_status_returns_everything_newest_first():
    tokens = [
        ProtocolToken(id="A", protocol="p", created_timestamp=1),
        ProtocolToken(id="B", protocol="p", is_migrated=True, created_timestamp=3),
        ProtocolToken(id="C", protocol="p"),
    ]

    assert [t.id for t in filter_by_status(tokens, None, settings=stub_settings())] == ["B", "A", "C"]


def test_token_details_combines_sources_and_skips_pump_off_solana():
    session = StubSession(
        {
            f"{PUMP_V3}/coins/MintX": {"mint": "MintX", "symbol": "MX"},
            "latest/dex/search": {
                "pairs": [
                    {
                        "chainId": "solana",
                        "baseToken": {"address": "MintX", "symbol": "MX"},
                        "quoteToken": {"address": WSOL_MINT},
                        "liquidity": {"usd": 10},
                    }
                ]
            },
        }
    )
    aggregator = make_aggregator(session)

    details = asyncio.run(aggregator.fetch_token_details("solana", "MintX"))

    assert details.found
    assert details.pumpfun.symbol == "MX"
    assert details.dexscreener.symbol == "MX"
    assert details.geckoterminal is None

    session.calls.clear()
    asyncio.run(aggregator.fetch_token_details("base", "0xabc"))
    assert not any("pump.fun" in url for url in session.urls())

    with pytest.raises(ValueError):
        asyncio.run(aggregator.fetch_token_details("tron", "MintX"))
    with pytest.raises(ValueError):
        asyncio.run(aggregator.fetch_token_details("solana", " "))


def test_pumpfun_boards():
    session = StubSession(
        {
            f"{PUMP_ADV}/coins/graduated": {"coins": [{"coinMint": "G1"}, {"coinMint": "G2"}]},
        }
    )
    aggregator = make_aggregator(session)

    tokens = asyncio.run(aggregator.fetch_pumpfun_tokens("graduated", 1))

    assert [t.id for t in tokens] == ["G1"]
    assert tokens[0].is_migrated
    with pytest.raises(ValueError):
        asyncio.run(aggregator.fetch_pumpfun_tokens("trending"))


def test_refresh_sol_price_feeds_progress_estimates():
    session = StubSession({"api.coingecko.com": {"solana": {"usd": 274.0}}})
    aggregator = make_aggregator(session)

    assert asyncio.run(aggregator.refresh_sol_price()) == 274.0
    assert aggregator.sol_price_usd == 274.0

    token = ProtocolToken(id="Cap", protocol="pump", market_cap=0.95 * 69 * 137)
    result = filter_by_status(
        [token], TokenStatus.NEW, settings=aggregator.settings, sol_price_usd=aggregator.sol_price_usd
    )
    assert result[0].bonding_progress == pytest.approx(0.475)


def test_refresh_sol_price_keeps_previous_value_on_failure():
    aggregator = make_aggregator(StubSession())
    assert asyncio.run(aggregator.refresh_sol_price()) == aggregator.settings.sol_price_usd


def test_wallet_and_stats_delegate():
    session = StubSession({"v3/launchpads/stats": {"launchpads": []}})
    aggregator = make_aggregator(session, stub_settings())

    assert asyncio.run(aggregator.fetch_launchpad_stats()) == {"launchpads": []}
    assert asyncio.run(aggregator.fetch_wallet_assets("Owner")) is None
