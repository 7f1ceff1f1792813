"""DexScreener pair search adapter."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional
from urllib.parse import quote

from ..endpoints import Endpoint
from ..models import TokenMarketInfo, normalize_chain
from ..normalize import coerce_float, coerce_int, coerce_str, extract_entries, nested
from .base import ProviderAdapter, cache_key


def _token_from_pair(pair: Mapping[str, Any], role: str) -> str:
    token = pair.get(f"{role}Token") or pair.get(f"{role}_token")
    if isinstance(token, Mapping):
        value = token.get("address") or token.get("id") or token.get("mint")
        if isinstance(value, str):
            return value
    if isinstance(token, str):
        return token
    return ""


def _pair_liquidity(pair: Mapping[str, Any]) -> float:
    liquidity = pair.get("liquidity")
    if isinstance(liquidity, Mapping):
        return coerce_float(liquidity.get("usd")) or 0.0
    return coerce_float(liquidity) or 0.0


def select_pair(
    pairs: Iterable[MutableMapping[str, Any]],
    chain: str,
    address: str,
) -> Optional[MutableMapping[str, Any]]:
    """Return the most liquid pair on ``chain`` that trades ``address``."""

    wanted = address.lower()
    matching = [
        pair
        for pair in pairs
        if coerce_str(pair.get("chainId")) == chain
        and wanted in {_token_from_pair(pair, "base").lower(), _token_from_pair(pair, "quote").lower()}
    ]
    if not matching:
        return None
    return max(matching, key=_pair_liquidity)


def _token_ref(pair: Mapping[str, Any], role: str) -> Optional[Dict[str, Any]]:
    token = pair.get(f"{role}Token")
    if not isinstance(token, Mapping):
        return None
    return {
        "address": coerce_str(token.get("address")),
        "name": coerce_str(token.get("name")),
        "symbol": coerce_str(token.get("symbol")),
    }


def decode_pair(pair: Mapping[str, Any], address: str) -> TokenMarketInfo:
    base = _token_ref(pair, "base") or {}
    quote_ref = _token_ref(pair, "quote") or {}
    target = base if (base.get("address") or "").lower() == address.lower() else quote_ref
    socials = nested(pair, "info", "socials")
    websites = nested(pair, "info", "websites")
    return TokenMarketInfo(
        source="dexscreener",
        address=address,
        name=target.get("name"),
        symbol=target.get("symbol"),
        logo=coerce_str(nested(pair, "info", "imageUrl")),
        price_usd=coerce_float(pair.get("priceUsd")),
        price_native=coerce_float(pair.get("priceNative")),
        price_change_5m=coerce_float(nested(pair, "priceChange", "m5")),
        price_change_1h=coerce_float(nested(pair, "priceChange", "h1")),
        price_change_24h=coerce_float(nested(pair, "priceChange", "h24")),
        volume_1h=coerce_float(nested(pair, "volume", "h1")),
        volume_24h=coerce_float(nested(pair, "volume", "h24")),
        liquidity=_pair_liquidity(pair) or None,
        market_cap=coerce_float(pair.get("marketCap")),
        fdv=coerce_float(pair.get("fdv")),
        pair_address=coerce_str(pair.get("pairAddress")),
        dex_id=coerce_str(pair.get("dexId")),
        dex_url=coerce_str(pair.get("url")),
        base_token=base or None,
        quote_token=quote_ref or None,
        buys_24h=coerce_int(nested(pair, "txns", "h24", "buys")),
        sells_24h=coerce_int(nested(pair, "txns", "h24", "sells")),
        socials=[s for s in socials if isinstance(s, dict)] if isinstance(socials, list) else [],
        websites=[w for w in websites if isinstance(w, dict)] if isinstance(websites, list) else [],
    )


class DexScreenerAdapter(ProviderAdapter):
    name = "dexscreener"
    ttl_setting = "detail_cache_ttl"

    @property
    def _base(self) -> str:
        return f"{self.settings.dexscreener_base_url.rstrip('/')}/latest/dex"

    async def fetch_token_info(self, chain: str, address: str) -> Optional[TokenMarketInfo]:
        """Most liquid pair for ``address`` on ``chain``, or ``None``."""

        chain = normalize_chain(chain)
        address = str(address or "").strip()
        if not address:
            return None

        def _decode(payload: Any) -> Optional[TokenMarketInfo]:
            pair = select_pair(extract_entries(payload, ("pairs",)), chain, address)
            return decode_pair(pair, address) if pair is not None else None

        endpoints = [
            Endpoint(f"{self._base}/search?q={quote(address)}", name="dexscreener:search"),
            Endpoint(f"{self._base}/tokens/{quote(address)}", name="dexscreener:tokens"),
        ]
        return await self._one(cache_key("dexscreener", chain, address), endpoints, _decode)

    async def search_pairs(self, query: str) -> List[MutableMapping[str, Any]]:
        """Raw pair records matching a name, symbol or address."""

        query = str(query or "").strip()
        if not query:
            return []
        endpoint = Endpoint(f"{self._base}/search?q={quote(query)}", name="dexscreener:search")
        return await self._tokens(
            cache_key("dexscreener-search", query),
            [endpoint],
            lambda payload: extract_entries(payload, ("pairs",)),
        )


__all__ = ["DexScreenerAdapter", "decode_pair", "select_pair"]
