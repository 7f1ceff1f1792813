"""Raydium LaunchLab (bonding curve) and AMM pool adapter."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from ..endpoints import Endpoint
from ..models import ProtocolToken
from ..normalize import (
    coerce_float,
    coerce_str,
    extract_entries,
    mint_from,
    non_sol_side,
    parse_timestamp_ms,
)
from .base import ProviderAdapter, cache_key, decode_list, with_query

PROTOCOL = "raydium"

LAUNCHPAD_SORTS = ("hotToken", "new")


def decode_launchpad_token(row: Mapping[str, Any]) -> Optional[ProtocolToken]:
    mint = mint_from(row.get("mint"))
    if not mint:
        return None
    market_cap = coerce_float(row.get("marketCap"))
    supply = coerce_float(row.get("supply"))
    if market_cap and supply:
        price = market_cap / supply
    else:
        price = coerce_float(row.get("initPrice"))

    finishing = coerce_float(row.get("finishingRate"))
    migrate_amm = coerce_str(row.get("migrateAmmId"))
    is_migrated = (finishing is not None and finishing >= 100) or bool(migrate_amm)
    progress = finishing / 100.0 if finishing is not None else None

    raised = coerce_float(row.get("totalFundRaisingB"))
    volume = coerce_float(row.get("volumeU")) or coerce_float(row.get("volumeB"))
    created = parse_timestamp_ms(row.get("createAt"))
    return ProtocolToken(
        id=mint,
        protocol=PROTOCOL,
        name=coerce_str(row.get("name")) or "Unknown",
        symbol=coerce_str(row.get("symbol")) or "UNKNOWN",
        image=coerce_str(row.get("imgUrl")),
        price=price,
        price_usd=price,
        market_cap=market_cap,
        volume=volume,
        volume_24h=volume,
        liquidity=raised / 1e9 if raised is not None else None,
        is_migrated=is_migrated,
        bonding_progress=progress,
        created_timestamp=created,
        migration_timestamp=created if migrate_amm else None,
        raydium_pool=coerce_str(row.get("poolId")) or migrate_amm,
    )


def _decode_launchpad(payload: Any) -> List[ProtocolToken]:
    if not isinstance(payload, Mapping):
        raise ValueError("launchpad payload is not an object")
    if payload.get("success") is False:
        return []
    return decode_list(decode_launchpad_token, ("rows", "data"))(payload.get("data") or {})


def decode_amm_pool(pool: Mapping[str, Any]) -> Optional[ProtocolToken]:
    side = non_sol_side(mint_from(pool.get("mintA")), mint_from(pool.get("mintB")))
    if side is None:
        return None
    mint, index = side
    other = pool.get("mintB" if index == 1 else "mintA")
    meta = other if isinstance(other, Mapping) else {}
    price = coerce_float(pool.get("price"))
    return ProtocolToken(
        id=mint,
        protocol=PROTOCOL,
        name=coerce_str(pool.get("name")) or coerce_str(meta.get("name")) or mint,
        symbol=coerce_str(pool.get("symbol")) or coerce_str(meta.get("symbol")) or "UNKNOWN",
        image=coerce_str(meta.get("logoURI")),
        price=price,
        price_usd=price,
        market_cap=coerce_float(pool.get("marketCap")) or coerce_float(pool.get("tvl")),
        volume=coerce_float(pool.get("volume24h")),
        volume_24h=coerce_float(pool.get("volume24h")),
        liquidity=coerce_float(pool.get("liquidity")) or coerce_float(pool.get("tvl")),
        # pools only exist after a token left its curve
        is_migrated=True,
        raydium_pool=coerce_str(pool.get("id")),
        created_timestamp=parse_timestamp_ms(pool.get("openTime")),
    )


class RaydiumAdapter(ProviderAdapter):
    name = "raydium"

    async def fetch_launchpad_tokens(
        self, sort: str = "hotToken", limit: int = 100
    ) -> List[ProtocolToken]:
        if sort not in LAUNCHPAD_SORTS:
            raise ValueError(f"unsupported launchpad sort: {sort!r}")
        base = self.settings.raydium_launchpad_url.rstrip("/")
        url = with_query(
            f"{base}/get/list",
            {
                "sort": sort,
                "size": limit,
                "mintType": "default",
                "includeNsfw": "false",
                "platformId": "PlatformWhiteList",
            },
        )
        return await self._tokens(
            cache_key("raydium-launchpad", sort, limit),
            [Endpoint(url, name="raydium:launchpad")],
            _decode_launchpad,
        )

    async def fetch_amm_tokens(self, limit: int = 100) -> List[ProtocolToken]:
        base = self.settings.raydium_api_url.rstrip("/")

        def _decode(payload: Any) -> List[ProtocolToken]:
            pools = extract_entries(payload, ("data",))[:limit]
            return decode_list(decode_amm_pool)(pools)

        return await self._tokens(
            cache_key("raydium-amm", limit),
            [Endpoint(f"{base}/v2/ammV3/ammPools", name="raydium:amm")],
            _decode,
        )


__all__ = ["PROTOCOL", "RaydiumAdapter", "decode_launchpad_token", "decode_amm_pool"]
