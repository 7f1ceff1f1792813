"""Meteora DLMM pairs and dynamic bonding curve (DBC) pools."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from ..endpoints import Endpoint
from ..models import ProtocolToken
from ..normalize import (
    coerce_bool,
    coerce_float,
    coerce_str,
    extract_entries,
    first_present,
    mint_from,
    non_sol_side,
    parse_timestamp_ms,
)
from .base import ProviderAdapter, cache_key, decode_list

PROTOCOL = "meteora"
DBC_PROTOCOL = "jupiter-studio"

_DBC_TYPES = {"dbc", "dynamic"}


def _reserves(pool: Mapping[str, Any]) -> tuple[float, float]:
    x = coerce_float(first_present(pool, ("reserve_x_amount", "reserveX"))) or 0.0
    y = coerce_float(first_present(pool, ("reserve_y_amount", "reserveY"))) or 0.0
    return x, y


def _pool_liquidity(x: float, y: float) -> float:
    if x > 0 and y > 0:
        return (x * y) / 1e18
    return 0.0


def _ticker(name: Any) -> Optional[str]:
    text = coerce_str(name)
    if not text:
        return None
    return text.split("-")[0].strip() or None


def decode_dlmm_pair(pair: Mapping[str, Any]) -> Optional[ProtocolToken]:
    side = non_sol_side(mint_from(pair.get("mint_x")), mint_from(pair.get("mint_y")))
    if side is None:
        return None
    mint, _ = side
    x, y = _reserves(pair)
    liquidity = _pool_liquidity(x, y)
    ticker = _ticker(pair.get("name"))
    volume = coerce_float(first_present(pair, ("trade_volume_24h", "volume24h")))
    return ProtocolToken(
        id=mint,
        protocol=PROTOCOL,
        name=ticker or "Unknown",
        symbol=ticker or "UNKNOWN",
        price=x / y if y > 0 else None,
        # rough: both sides of the pool
        market_cap=liquidity * 2 if liquidity else None,
        volume=volume,
        volume_24h=volume,
        liquidity=liquidity or None,
        is_migrated=True,
        raydium_pool=coerce_str(pair.get("address")),
        created_timestamp=parse_timestamp_ms(first_present(pair, ("created_at", "createdAt"))),
    )


def is_dbc_pool(pool: Mapping[str, Any]) -> bool:
    for key in ("pool_type", "type", "poolType"):
        value = coerce_str(pool.get(key))
        if value and value.lower() in _DBC_TYPES:
            return True
    name = coerce_str(pool.get("name")) or ""
    return "dbc" in name.lower()


def decode_dbc_pool(pool: Mapping[str, Any], protocol: str = DBC_PROTOCOL) -> Optional[ProtocolToken]:
    if not is_dbc_pool(pool):
        return None
    side = non_sol_side(mint_from(pool.get("mint_x")), mint_from(pool.get("mint_y")))
    if side is None:
        return None
    mint, _ = side
    x, y = _reserves(pool)
    liquidity = _pool_liquidity(x, y)
    is_migrated = (
        coerce_bool(pool.get("migrated"))
        or coerce_bool(pool.get("isMigrated"))
        or coerce_str(pool.get("status")) == "migrated"
    )
    # DBC pools report progress as a 0..1 fraction
    progress = coerce_float(pool.get("progress"))
    volume = coerce_float(first_present(pool, ("trade_volume_24h", "volume24h")))
    return ProtocolToken(
        id=mint,
        protocol=protocol,
        name=_ticker(pool.get("name")) or coerce_str(pool.get("token_name")) or "Unknown",
        symbol=coerce_str(first_present(pool, ("symbol", "token_symbol"))) or "UNKNOWN",
        image=coerce_str(first_present(pool, ("image", "logoURI"))),
        price=x / y if y > 0 else None,
        market_cap=liquidity * 2 if liquidity else None,
        volume=volume,
        volume_24h=volume,
        liquidity=liquidity or None,
        is_migrated=is_migrated,
        bonding_progress=progress,
        created_timestamp=parse_timestamp_ms(pool.get("created_at")),
        migration_timestamp=parse_timestamp_ms(pool.get("migrated_at")) if is_migrated else None,
    )


class MeteoraAdapter(ProviderAdapter):
    name = "meteora"

    async def fetch_dlmm_tokens(self, limit: int = 100) -> List[ProtocolToken]:
        base = self.settings.meteora_dlmm_url.rstrip("/")

        def _decode(payload: Any) -> List[ProtocolToken]:
            pairs = extract_entries(payload, ("data", "pairs"))[:limit]
            return decode_list(decode_dlmm_pair)(pairs)

        return await self._tokens(
            cache_key("meteora-dlmm", limit),
            [Endpoint(f"{base}/pair/all", name="meteora:dlmm")],
            _decode,
        )

    async def fetch_dbc_tokens(
        self, limit: int = 100, *, protocol: str = DBC_PROTOCOL
    ) -> List[ProtocolToken]:
        base = self.settings.meteora_damm_url.rstrip("/")

        def _decode(payload: Any) -> List[ProtocolToken]:
            pools = [p for p in extract_entries(payload, ("pools", "data")) if is_dbc_pool(p)]
            return decode_list(lambda pool: decode_dbc_pool(pool, protocol))(pools[:limit])

        return await self._tokens(
            cache_key("meteora-dbc", protocol, limit),
            [Endpoint(f"{base}/pool/all", name="meteora:dbc")],
            _decode,
        )


__all__ = [
    "PROTOCOL",
    "DBC_PROTOCOL",
    "MeteoraAdapter",
    "decode_dlmm_pair",
    "decode_dbc_pool",
    "is_dbc_pool",
]
