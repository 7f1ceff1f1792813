"""Moonit (api.mintlp.io) and Moonshot public list adapters."""

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
    nested,
    parse_timestamp_ms,
)
from .base import ProviderAdapter, cache_key, decode_list, with_query

MOONIT = "moonit"
MOONSHOT = "moonshot"

MOONIT_SORTS = ("MARKET_CAP", "TRENDING")
MOONIT_STATES = ("GRADUATED", "NOT_GRADUATED")

_MOONSHOT_MINT_KEYS = ("mint", "address", "pairAddress")


def decode_moonit_token(entry: Mapping[str, Any], *, graduated: bool = False) -> Optional[ProtocolToken]:
    """Decode one ``/v1/fun`` record.

    ``graduated`` marks records from the ``state=GRADUATED`` listing, which
    only ever contains migrated tokens.
    """

    mint = coerce_str(entry.get("mintAddress"))
    if not mint:
        return None
    # basis points
    raw_progress = coerce_float(entry.get("progressPercent"))
    progress = raw_progress / 10000.0 if raw_progress is not None else None
    is_migrated = (
        graduated
        or coerce_str(entry.get("state")) == "MIGRATED"
        or entry.get("migrated") is True
    )
    market_cap = coerce_float(entry.get("marketcap"))
    supply = coerce_float(nested(entry, "curve", "totalSupply"))
    price = market_cap / supply if market_cap and supply else None
    volume_24h = coerce_float(entry.get("volumeUSD24h"))
    collateral = coerce_float(nested(entry, "curve", "collateralCollected"))
    return ProtocolToken(
        id=mint,
        protocol=MOONIT,
        name=coerce_str(entry.get("name")) or "Unknown",
        symbol=coerce_str(entry.get("symbol")) or "UNKNOWN",
        image=coerce_str(first_present(entry, ("icon", "banner"))),
        price=price,
        price_usd=price,
        market_cap=market_cap,
        volume=volume_24h if volume_24h is not None else coerce_float(entry.get("volumeUSD")),
        volume_24h=volume_24h,
        liquidity=collateral / 1e9 if collateral is not None else None,
        is_migrated=is_migrated,
        bonding_progress=progress,
        created_timestamp=parse_timestamp_ms(entry.get("createdAt")),
    )


def decode_moonshot_token(entry: Mapping[str, Any], *, graduated: bool = False) -> Optional[ProtocolToken]:
    mint = coerce_str(first_present(entry, _MOONSHOT_MINT_KEYS))
    if not mint:
        return None
    raw_progress = coerce_float(nested(entry, "metadata", "progress"))
    is_migrated = graduated or raw_progress == 100 or coerce_bool(entry.get("migrated"))
    price = coerce_float(entry.get("price"))
    price_usd = coerce_float(entry.get("priceUsd"))
    volume = coerce_float(entry.get("volume24h"))
    return ProtocolToken(
        id=mint,
        protocol=MOONSHOT,
        name=coerce_str(entry.get("name")) or "Unknown",
        symbol=coerce_str(entry.get("symbol")) or "UNKNOWN",
        image=coerce_str(first_present(entry, ("image", "logoURI"))),
        price=price,
        price_usd=price_usd if price_usd is not None else price,
        market_cap=coerce_float(entry.get("marketCap")),
        volume=volume,
        volume_24h=volume,
        liquidity=coerce_float(entry.get("liquidity")),
        is_migrated=is_migrated,
        bonding_progress=raw_progress / 100.0 if raw_progress is not None else None,
        created_timestamp=parse_timestamp_ms(first_present(entry, ("createdAt", "createdTimestamp"))),
        migration_timestamp=parse_timestamp_ms(
            first_present(entry, ("migratedAt", "migrationTimestamp"))
        ),
    )


class MoonitAdapter(ProviderAdapter):
    name = "moonit"

    async def fetch_moonit_tokens(
        self,
        sort_by: str = "TRENDING",
        state: str = "NOT_GRADUATED",
        limit: int = 100,
    ) -> List[ProtocolToken]:
        if sort_by not in MOONIT_SORTS:
            raise ValueError(f"unsupported moonit sort: {sort_by!r}")
        if state not in MOONIT_STATES:
            raise ValueError(f"unsupported moonit state: {state!r}")
        base = self.settings.moonit_api_url.rstrip("/")
        url = with_query(
            f"{base}/v1/fun",
            {
                "sortBy": sort_by,
                "state": state,
                "vanityExtension": "moon",
                "blockchainSymbol": "SOL",
                "page": 1,
                "pageSize": limit,
            },
        )
        graduated = state == "GRADUATED"

        def _decode(payload: Any) -> List[ProtocolToken]:
            entries = extract_entries(payload, ("data",))[:limit]
            return decode_list(lambda e: decode_moonit_token(e, graduated=graduated))(entries)

        return await self._tokens(
            cache_key("moonit", sort_by, state, limit),
            [Endpoint(url, name="moonit:fun")],
            _decode,
        )

    async def _moonshot(self, view: str, limit: int) -> List[ProtocolToken]:
        base = self.settings.moonshot_api_url.rstrip("/")
        graduated = view == "graduated"

        def _decode(payload: Any) -> List[ProtocolToken]:
            entries = extract_entries(payload, ("tokens", "data"))[:limit]
            return decode_list(lambda e: decode_moonshot_token(e, graduated=graduated))(entries)

        return await self._tokens(
            cache_key("moonshot", view, limit),
            [Endpoint(with_query(f"{base}/token/v1/solana", {"view": view}), name=f"moonshot:{view}")],
            _decode,
        )

    async def fetch_moonshot_graduated(self, limit: int = 100) -> List[ProtocolToken]:
        return await self._moonshot("graduated", limit)

    async def fetch_moonshot_trending(self, limit: int = 100) -> List[ProtocolToken]:
        return await self._moonshot("trending", limit)


__all__ = [
    "MOONIT",
    "MOONSHOT",
    "MoonitAdapter",
    "decode_moonit_token",
    "decode_moonshot_token",
]
