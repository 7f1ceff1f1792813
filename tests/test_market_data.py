import asyncio
import logging

import pytest

from stubs import StubResponse, StubSession, make_adapter, stub_settings
from tokenpulse.normalize import WSOL_MINT
from tokenpulse.providers.coingecko import PriceAdapter, decode_sol_price
from tokenpulse.providers.dexscreener import DexScreenerAdapter, decode_pair, select_pair
from tokenpulse.providers.geckoterminal import GeckoTerminalAdapter, decode_gecko_payload
from tokenpulse.providers.helius import HeliusAdapter, decode_search_assets


def _pair(chain, base, liquidity, **extra):
    pair = {
        "chainId": chain,
        "baseToken": {"address": base, "name": "Mint Dex", "symbol": "MDX"},
        "quoteToken": {"address": WSOL_MINT, "symbol": "SOL"},
        "liquidity": {"usd": liquidity},
        "pairAddress": f"pool-{liquidity}",
    }
    pair.update(extra)
    return pair


# dexscreener ---------------------------------------------------------------
def test_select_pair_prefers_most_liquid_on_chain():
    pairs = [
        _pair("solana", "MintDex", "21000"),
        _pair("solana", "MintDex", "54000"),
        _pair("base", "MintDex", "990000"),
        _pair("solana", "Other", "1000000"),
    ]

    best = select_pair(pairs, "solana", "mintdex")

    assert best["pairAddress"] == "pool-54000"
    assert select_pair(pairs, "bsc", "MintDex") is None


def test_decode_pair_fields():
    info = decode_pair(
        _pair(
            "solana",
            "MintDex",
            "21000",
            priceUsd="1.23",
            priceChange={"m5": 0.5, "h24": -3},
            volume={"h24": 10_000},
            txns={"h24": {"buys": 12, "sells": 7}},
            info={"imageUrl": "https://img", "socials": [{"type": "twitter"}], "websites": "bad"},
        ),
        "MintDex",
    )

    assert info.source == "dexscreener"
    assert info.symbol == "MDX"
    assert info.price_usd == pytest.approx(1.23)
    assert info.liquidity == pytest.approx(21000)
    assert info.price_change_24h == -3
    assert (info.buys_24h, info.sells_24h) == (12, 7)
    assert info.socials == [{"type": "twitter"}]
    assert info.websites == []


def test_dexscreener_falls_back_to_tokens_endpoint():
    session = StubSession(
        {
            "latest/dex/search": {"pairs": [_pair("base", "MintDex", "5")]},
            "latest/dex/tokens/MintDex": {"pairs": [_pair("solana", "MintDex", "7")]},
        }
    )
    adapter = make_adapter(DexScreenerAdapter, session)

    info = asyncio.run(adapter.fetch_token_info("sol", "MintDex"))

    assert info.pair_address == "pool-7"
    assert len(session.calls) == 2
    with pytest.raises(ValueError):
        asyncio.run(adapter.fetch_token_info("tron", "MintDex"))


def test_dexscreener_search_pairs():
    session = StubSession({"latest/dex/search?q=frog": {"pairs": [_pair("solana", "F", "1")]}})
    adapter = make_adapter(DexScreenerAdapter, session)

    assert len(asyncio.run(adapter.search_pairs("frog"))) == 1
    assert asyncio.run(adapter.search_pairs("")) == []


# geckoterminal -------------------------------------------------------------
def test_gecko_token_payload():
    info = decode_gecko_payload(
        {
            "data": {
                "attributes": {
                    "name": "Gecko",
                    "symbol": "GKO",
                    "price_usd": "0.5",
                    "volume_usd": {"h24": "1000"},
                    "market_cap_usd": None,
                    "fdv_usd": "20000",
                }
            }
        },
        "GeckoMint",
    )

    assert info.source == "geckoterminal"
    assert info.symbol == "GKO"
    assert info.price_usd == 0.5
    assert info.volume_24h == 1000
    assert info.fdv == 20000
    assert info.buys_24h is None


def test_gecko_pools_payload_picks_matching_side():
    payload = {
        "data": [
            {
                "attributes": {
                    "address": "PoolG",
                    "base_token": {"address": "GeckoMint", "name": "Gecko", "symbol": "GKO"},
                    "quote_token": {"address": WSOL_MINT, "symbol": "SOL"},
                    "reserve_in_usd": "7000",
                    "transactions": {"h24": {"buys": 3}},
                }
            }
        ]
    }

    info = decode_gecko_payload(payload, "geckomint")

    assert info.pair_address == "PoolG"
    assert info.symbol == "GKO"
    assert info.liquidity == 7000
    assert (info.buys_24h, info.sells_24h) == (3, 0)
    assert decode_gecko_payload({"data": []}, "x") is None


def test_gecko_adapter_maps_network_and_falls_back_to_pools():
    session = StubSession(
        {
            "/networks/eth/tokens/0xabc/pools": {
                "data": [{"attributes": {"base_token": {"address": "0xabc", "symbol": "ABC"}}}]
            }
        }
    )
    adapter = make_adapter(GeckoTerminalAdapter, session)

    info = asyncio.run(adapter.fetch_token_info("ethereum", "0xabc"))

    assert info.symbol == "ABC"
    assert session.urls() == [
        "https://api.geckoterminal.com/api/v2/networks/eth/tokens/0xabc",
        "https://api.geckoterminal.com/api/v2/networks/eth/tokens/0xabc/pools",
    ]
    assert adapter.cache.ttl == stub_settings().detail_cache_ttl


# price ---------------------------------------------------------------------
def test_decode_sol_price_shapes():
    assert decode_sol_price({"solana": {"usd": 151.2}}) == 151.2
    assert decode_sol_price({"data": {WSOL_MINT: {"price": "149.9"}}}) == pytest.approx(149.9)
    assert decode_sol_price({"data": {}}) is None


def test_price_falls_back_to_jupiter_after_rate_limit():
    session = StubSession(
        {
            "api.coingecko.com": StubResponse(status=429),
            "lite-api.jup.ag/price": {"data": {WSOL_MINT: {"price": 150.5}}},
        }
    )
    adapter = make_adapter(PriceAdapter, session)

    assert asyncio.run(adapter.fetch_sol_price()) == 150.5
    assert len(session.calls) == 3


# helius --------------------------------------------------------------------
def _asset(mint, balance, decimals=6, **extra):
    item = {
        "id": mint,
        "token_info": {"balance": balance, "decimals": decimals, "symbol": mint[:3].upper()},
        "content": {"metadata": {"name": f"{mint} token"}, "files": [{"cdn_uri": f"https://cdn/{mint}"}]},
    }
    item["token_info"].update(extra)
    return item


def test_search_assets_aggregates_per_mint():
    payload = {
        "result": {
            "nativeBalance": {"lamports": 2_500_000_000},
            "items": [
                _asset("bonk", 1_500_000, price_info={"price_per_token": 0.5}),
                _asset("bonk", 500_000),
                _asset("dust", 0),
                {"id": "nft-without-token-info"},
            ],
        }
    }

    wallet = decode_search_assets(payload, "Owner1")

    assert wallet.sol_balance == pytest.approx(2.5)
    assert len(wallet.tokens) == 1
    bonk = wallet.tokens[0]
    assert bonk.amount == pytest.approx(2.0)
    assert bonk.price_usd == 0.5
    assert bonk.value_usd == pytest.approx(1.0)
    assert bonk.logo == "https://cdn/bonk"


def test_search_assets_rpc_error_raises():
    with pytest.raises(ValueError):
        decode_search_assets({"error": {"message": "bad owner"}}, "Owner1")


def test_wallet_assets_require_rpc_url(caplog):
    session = StubSession()
    adapter = make_adapter(HeliusAdapter, session)

    with caplog.at_level(logging.WARNING):
        assert asyncio.run(adapter.fetch_wallet_assets("Owner1")) is None
        assert asyncio.run(adapter.fetch_wallet_assets("Owner1")) is None

    assert session.calls == []
    assert sum("HELIUS_RPC_URL" in r.getMessage() for r in caplog.records) == 1


def test_wallet_assets_posts_search_assets():
    session = StubSession({"rpc.test": {"result": {"items": [_asset("wif", 3_000_000)]}}})
    adapter = make_adapter(HeliusAdapter, session, stub_settings(helius_rpc_url="https://rpc.test/?api-key=k"))

    wallet = asyncio.run(adapter.fetch_wallet_assets("Owner1"))

    assert wallet.tokens[0].amount == pytest.approx(3.0)
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["json"]["method"] == "searchAssets"
    assert call["json"]["params"]["ownerAddress"] == "Owner1"


def test_wallet_assets_rpc_error_returns_none():
    session = StubSession({"rpc.test": {"error": {"message": "invalid"}}})
    adapter = make_adapter(HeliusAdapter, session, stub_settings(helius_rpc_url="https://rpc.test"))

    assert asyncio.run(adapter.fetch_wallet_assets("Owner1")) is None
