"""GeckoTerminal token detail adapter."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..endpoints import Endpoint
from ..models import TokenMarketInfo, normalize_chain
from ..normalize import coerce_float, coerce_int, coerce_str, nested
from .base import ProviderAdapter, cache_key

_NETWORKS = {"solana": "solana", "bsc": "bsc", "ethereum": "eth", "base": "base"}


def _token_ref(value: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(value, Mapping):
        return None
    return {
        "address": coerce_str(value.get("address")),
        "name": coerce_str(value.get("name")),
        "symbol": coerce_str(value.get("symbol")),
    }


def _market_fields(attrs: Mapping[str, Any]) -> Dict[str, Any]:
    buys = coerce_int(nested(attrs, "transactions", "h24", "buys"))
    sells = coerce_int(nested(attrs, "transactions", "h24", "sells"))
    has_txns = isinstance(nested(attrs, "transactions", "h24"), Mapping)
    return {
        "price_usd": coerce_float(attrs.get("price_usd")),
        "price_native": coerce_float(attrs.get("price_native_currency")),
        "price_change_1h": coerce_float(nested(attrs, "price_change_percentage", "h1")),
        "price_change_24h": coerce_float(nested(attrs, "price_change_percentage", "h24")),
        "volume_1h": coerce_float(nested(attrs, "volume_usd", "h1")),
        "volume_24h": coerce_float(nested(attrs, "volume_usd", "h24")),
        "liquidity": coerce_float(attrs.get("reserve_in_usd")),
        "market_cap": coerce_float(attrs.get("market_cap_usd")),
        "fdv": coerce_float(attrs.get("fdv_usd")),
        "dex_id": coerce_str(attrs.get("dex_id")),
        "base_token": _token_ref(attrs.get("base_token")),
        "quote_token": _token_ref(attrs.get("quote_token")),
        "buys_24h": (buys or 0) if has_txns else None,
        "sells_24h": (sells or 0) if has_txns else None,
    }


def decode_gecko_payload(payload: Any, address: str) -> Optional[TokenMarketInfo]:
    """Decode a ``/tokens/{address}`` or ``/tokens/{address}/pools`` response."""

    if not isinstance(payload, Mapping):
        raise ValueError("geckoterminal payload is not an object")
    data = payload.get("data")
    if not data:
        return None

    if isinstance(data, list):
        pool = data[0] if isinstance(data[0], Mapping) else {}
        attrs = pool.get("attributes")
        if not isinstance(attrs, Mapping):
            return None
        base = attrs.get("base_token")
        quote = attrs.get("quote_token")
        base_addr = coerce_str(nested(attrs, "base_token", "address")) or ""
        target = base if base_addr.lower() == address.lower() else quote
        if not isinstance(target, Mapping):
            return None
        return TokenMarketInfo(
            source="geckoterminal",
            address=address,
            name=coerce_str(target.get("name")),
            symbol=coerce_str(target.get("symbol")),
            logo=coerce_str(target.get("logo")) or coerce_str(attrs.get("image_url")),
            pair_address=coerce_str(attrs.get("address")),
            **_market_fields(attrs),
        )

    attrs = data.get("attributes") if isinstance(data, Mapping) else None
    if not isinstance(attrs, Mapping):
        return None
    return TokenMarketInfo(
        source="geckoterminal",
        address=address,
        name=coerce_str(attrs.get("name")),
        symbol=coerce_str(attrs.get("symbol")),
        logo=coerce_str(attrs.get("image_url")),
        pair_address=coerce_str(attrs.get("pair_address")),
        **_market_fields(attrs),
    )


class GeckoTerminalAdapter(ProviderAdapter):
    name = "geckoterminal"
    ttl_setting = "detail_cache_ttl"

    async def fetch_token_info(self, network: str, address: str) -> Optional[TokenMarketInfo]:
        chain = normalize_chain(network)
        address = str(address or "").strip()
        if not address:
            return None
        base = self.settings.geckoterminal_base_url.rstrip("/")
        token_url = f"{base}/networks/{_NETWORKS[chain]}/tokens/{address}"
        endpoints = [
            Endpoint(token_url, name="geckoterminal:token"),
            Endpoint(f"{token_url}/pools", name="geckoterminal:pools"),
        ]
        return await self._one(
            cache_key("geckoterminal", chain, address),
            endpoints,
            lambda payload: decode_gecko_payload(payload, address),
        )


__all__ = ["GeckoTerminalAdapter", "decode_gecko_payload"]
