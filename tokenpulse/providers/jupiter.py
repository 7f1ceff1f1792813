"""Jupiter Data API (``datapi.jup.ag``) launchpad asset adapter."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..endpoints import Endpoint
from ..lru import TTLCache
from ..models import ProtocolToken
from ..normalize import coerce_float, coerce_str, extract_entries, nested, parse_timestamp_ms
from ..outcome import unwrap
from .base import ProviderAdapter, cache_key, decode_list, with_query

LAUNCHPADS: Dict[str, str] = {
    "moonshot": "moonshot",
    "moonit": "moonit",
    "jupiter-studio": "jup-studio",
    "launchlab": "raydium-launchlab",
    "bonk": "letsbonk.fun",
}

TIMEFRAMES = ("5m", "1h", "6h", "24h")


def _volume_24h(asset: Mapping[str, Any]) -> Optional[float]:
    buy = coerce_float(nested(asset, "stats24h", "buyVolume"))
    sell = coerce_float(nested(asset, "stats24h", "sellVolume"))
    if buy is None and sell is None:
        return None
    return (buy or 0.0) + (sell or 0.0)


def decode_jupiter_asset(asset: Mapping[str, Any]) -> Optional[ProtocolToken]:
    mint = coerce_str(asset.get("id"))
    if not mint:
        return None
    # a graduated pool only exists once the curve completed
    is_migrated = asset.get("graduatedPool") is not None
    curve = coerce_float(asset.get("bondingCurve"))
    price = coerce_float(asset.get("usdPrice"))
    volume = _volume_24h(asset)
    return ProtocolToken(
        id=mint,
        protocol=coerce_str(asset.get("launchpad")) or "unknown",
        name=coerce_str(asset.get("name")) or "Unknown",
        symbol=coerce_str(asset.get("symbol")) or "UNKNOWN",
        image=coerce_str(asset.get("icon")),
        price=price,
        price_usd=price,
        market_cap=coerce_float(asset.get("mcap")),
        volume=volume,
        volume_24h=volume,
        liquidity=coerce_float(asset.get("liquidity")),
        is_migrated=is_migrated,
        bonding_progress=curve / 100.0 if curve is not None else None,
        created_timestamp=parse_timestamp_ms(asset.get("createdAt")),
        migration_timestamp=parse_timestamp_ms(asset.get("graduatedAt")),
        raydium_pool=coerce_str(asset.get("graduatedPool")),
    )


def _decode_gems(payload: Any) -> List[ProtocolToken]:
    assets = nested(payload, "recent", "assets")
    if assets is None:
        assets = extract_entries(payload, ("assets", "data"))
    if not isinstance(assets, list):
        raise ValueError("gems payload has no asset list")
    return decode_list(decode_jupiter_asset)(assets)


_decode_assets = decode_list(decode_jupiter_asset, ("assets", "data"))


class JupiterAdapter(ProviderAdapter):
    name = "jupiter"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._stats_cache = TTLCache(maxsize=4, ttl=self.settings.cache_ttl * 2)

    @property
    def _base(self) -> str:
        return self.settings.jupiter_base_url.rstrip("/")

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = dict(extra)
        if self.settings.jupiter_api_key:
            headers["x-api-key"] = self.settings.jupiter_api_key
        return headers

    async def fetch_gems(
        self,
        launchpads: Sequence[str],
        timeframe: str = "24h",
        limit: int = 30,
    ) -> List[ProtocolToken]:
        """Recently created assets for ``launchpads`` (POST ``/v1/assets/gems``)."""

        if timeframe not in TIMEFRAMES:
            raise ValueError(f"unsupported timeframe: {timeframe!r}")
        pads = list(launchpads)
        endpoint = Endpoint(
            f"{self._base}/v1/assets/gems",
            method="POST",
            json={"recent": {"timeframe": timeframe, "limit": limit, "launchpads": pads}},
            headers=self._headers(Origin="https://jup.ag"),
            name="jupiter:gems",
        )
        return await self._tokens(
            cache_key("jupiter-gems", ",".join(pads), timeframe, limit), [endpoint], _decode_gems
        )

    async def fetch_top_traded(self, launchpads: Sequence[str], limit: int = 100) -> List[ProtocolToken]:
        pads = list(launchpads)
        url = with_query(
            f"{self._base}/v1/assets/toptraded/24h",
            {"launchpads": ",".join(pads), "limit": limit},
        )
        endpoint = Endpoint(url, headers=self._headers(), name="jupiter:toptraded")
        return await self._tokens(
            cache_key("jupiter-toptraded", ",".join(pads), limit), [endpoint], _decode_assets
        )

    async def fetch_top_trending(self, limit: int = 10) -> List[ProtocolToken]:
        url = with_query(f"{self._base}/v1/assets/toptrending/24h", {"limit": limit})
        endpoint = Endpoint(
            url,
            headers=self._headers(),
            timeout=self.settings.slow_request_timeout,
            name="jupiter:toptrending",
        )
        return await self._tokens(cache_key("jupiter-toptrending", limit), [endpoint], _decode_assets)

    async def fetch_launchpad_stats(self) -> Optional[Dict[str, Any]]:
        """Launchpad-level aggregates, cached for twice the list TTL."""

        endpoint = Endpoint(
            f"{self._base}/v3/launchpads/stats", headers=self._headers(), name="jupiter:stats"
        )
        outcome = await self._load(
            "jupiter-launchpad-stats",
            [endpoint],
            lambda payload: payload if isinstance(payload, Mapping) else {"launchpads": payload},
            cache=self._stats_cache,
        )
        data = unwrap(outcome)
        return dict(data) if isinstance(data, Mapping) else None

    def clear_cache(self) -> None:
        super().clear_cache()
        self._stats_cache.clear()


__all__ = ["LAUNCHPADS", "JupiterAdapter", "decode_jupiter_asset"]
