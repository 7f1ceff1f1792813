"""Pump.fun list and token adapter.

Pump.fun exposes overlapping lists on several hosts and API generations
(``frontend-api``, ``frontend-api-v3``, ``advanced-api-v2``) whose payloads
name the same field differently.  Each list kind has a primary URL and a
fallback chain; every record goes through :func:`decode_pumpfun_token`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..endpoints import Endpoint
from ..models import ProtocolToken
from ..normalize import (
    coerce_bool,
    coerce_float,
    coerce_str,
    extract_entries,
    first_present,
    mint_from,
    parse_timestamp_ms,
    sol_amount,
)
from .base import ProviderAdapter, cache_key, decode_list, with_limit

logger = logging.getLogger(__name__)

PROTOCOL = "pump"

_PAYLOAD_KEYS: Tuple[str, ...] = ("coins", "tokens", "data")

# advanced-api-v2 uses ``coinMint``, frontend-api-v3 uses ``mint``
_MINT_KEYS: Tuple[str, ...] = ("mint", "coinMint", "token", "address", "id")

_FIELD_ALIASES: Mapping[str, Tuple[str, ...]] = {
    "image": ("image_uri", "imageUrl", "image", "logo"),
    "name": ("name", "tokenName"),
    "symbol": ("symbol", "ticker", "tokenSymbol"),
    "description": ("description", "desc"),
    "market_cap": ("usd_market_cap", "market_cap", "marketCap"),
    "volume": ("volume", "vol"),
    "price": ("price", "currentMarketPrice", "priceUsd"),
    "migration_timestamp": (
        "complete_timestamp",
        "migrationTimestamp",
        "completeTimestamp",
        "graduationDate",
    ),
    "raydium_pool": ("raydium_pool", "raydiumPool", "poolAddress"),
    "sol_reserves": ("sol_reserves", "real_sol_reserves", "solReserves"),
    "token_reserves": ("token_reserves", "real_token_reserves", "tokenReserves"),
    "price_change_24h": ("price_change_24h", "priceChange24h"),
    "created_timestamp": (
        "created_timestamp",
        "createdTimestamp",
        "creationTimestamp",
        "creationTime",
    ),
    "bonding_progress": ("bondingCurveProgress", "bonding_curve_progress"),
}

_MIGRATED_FLAGS: Tuple[str, ...] = ("complete", "isComplete", "migrated")

_SOCIAL_ALIASES: Mapping[str, Tuple[str, ...]] = {
    "website": ("website", "websiteUrl"),
    "twitter": ("twitter", "twitterUrl"),
    "telegram": ("telegram", "telegramUrl"),
}

LIST_KINDS: Tuple[str, ...] = (
    "graduatedByTime",
    "listByMarketCap",
    "listByCreation",
    "marketCapDesc",
    "createdDesc",
    "latest",
    "featured",
    "runners",
)


def _mint_of(entry: Mapping[str, Any]) -> Optional[str]:
    for key in _MINT_KEYS:
        mint = mint_from(entry.get(key))
        if mint:
            return mint
    return None


def _progress(value: Any) -> Optional[float]:
    # bondingCurveProgress is a percentage on every API generation
    numeric = coerce_float(value)
    if numeric is None:
        return None
    return numeric / 100.0


def decode_pumpfun_token(entry: Mapping[str, Any]) -> Optional[ProtocolToken]:
    """Map one pump.fun record (any API generation) to a :class:`ProtocolToken`."""

    if not isinstance(entry, Mapping):
        return None
    mint = _mint_of(entry)
    if not mint:
        return None

    fields = {field: first_present(entry, aliases) for field, aliases in _FIELD_ALIASES.items()}
    graduation = entry.get("graduationDate")
    is_migrated = any(entry.get(flag) is True for flag in _MIGRATED_FLAGS) or bool(graduation)

    socials: Dict[str, str] = {}
    for label, aliases in _SOCIAL_ALIASES.items():
        link = coerce_str(first_present(entry, aliases))
        if link:
            socials[label] = link

    price = coerce_float(fields["price"])
    return ProtocolToken(
        id=mint,
        protocol=PROTOCOL,
        name=coerce_str(fields["name"]) or "Unknown",
        symbol=coerce_str(fields["symbol"]) or "UNKNOWN",
        image=coerce_str(fields["image"]),
        description=coerce_str(fields["description"]),
        price=price,
        price_usd=price,
        market_cap=coerce_float(fields["market_cap"]),
        volume=coerce_float(fields["volume"]),
        is_migrated=is_migrated,
        bonding_progress=_progress(fields["bonding_progress"]),
        migration_timestamp=parse_timestamp_ms(fields["migration_timestamp"]),
        created_timestamp=parse_timestamp_ms(fields["created_timestamp"]),
        raydium_pool=coerce_str(fields["raydium_pool"]),
        sol_reserves=sol_amount(fields["sol_reserves"]),
        token_reserves=coerce_float(fields["token_reserves"]),
        price_change_24h=coerce_float(fields["price_change_24h"]),
        socials=socials,
    )


decode_pumpfun_list = decode_list(decode_pumpfun_token, _PAYLOAD_KEYS)


def _match_mint(payload: Any, mint: str) -> Optional[Mapping[str, Any]]:
    """Pick the record for ``mint`` out of a detail or search payload."""

    wanted = mint.lower()
    if isinstance(payload, Mapping) and _mint_of(payload):
        candidate = _mint_of(payload) or ""
        return payload if candidate.lower() == wanted else None
    for entry in extract_entries(payload, _PAYLOAD_KEYS):
        candidate = _mint_of(entry) or ""
        if candidate.lower() == wanted:
            return entry
    return None


class PumpFunAdapter(ProviderAdapter):
    name = "pumpfun"

    @property
    def _v3(self) -> str:
        return self.settings.pumpfun_base_url.rstrip("/")

    @property
    def _advanced(self) -> str:
        return self.settings.pumpfun_advanced_url.rstrip("/")

    _legacy = "https://frontend-api.pump.fun"

    def primary_url(self, kind: str) -> str:
        v3, adv = self._v3, self._advanced
        table = {
            "graduatedByTime": f"{adv}/coins/graduated?sortBy=creationTime",
            "listByMarketCap": f"{adv}/coins/list?sortBy=marketCap",
            "listByCreation": f"{adv}/coins/list?sortBy=creationTime",
            "marketCapDesc": (
                f"{v3}/coins?offset=0&limit=48&sort=market_cap&includeNsfw=false&order=DESC"
            ),
            "createdDesc": (
                f"{v3}/coins?offset=0&limit=48&sort=created_timestamp&includeNsfw=false&order=DESC"
            ),
            "latest": f"{v3}/coins/latest",
            "featured": f"{adv}/coins/featured?keywordSearchActive=false",
            "runners": "https://pump.fun/api/runners",
        }
        try:
            return table[kind]
        except KeyError:
            raise ValueError(f"unknown pump.fun list: {kind!r}") from None

    def candidate_urls(self, kind: str) -> List[str]:
        v3, adv, legacy = self._v3, self._advanced, self._legacy
        alternatives = {
            "latest": [
                f"{v3}/coins/latest",
                f"{v3}/coins?sort=created_timestamp&order=DESC&limit=100",
                f"{v3}/coins?offset=0&limit=100&sort=created_timestamp&includeNsfw=false&order=DESC",
                f"{legacy}/coins/latest",
            ],
            "featured": [
                f"{adv}/coins/featured?keywordSearchActive=false",
                f"{v3}/coins/featured",
                f"{legacy}/coins/featured",
            ],
            "graduatedByTime": [
                f"{adv}/coins/graduated?sortBy=creationTime",
                f"{v3}/coins?complete=true&sort=complete_timestamp&order=DESC",
                f"{adv}/coins/graduated",
            ],
            "listByMarketCap": [
                f"{adv}/coins/list?sortBy=marketCap",
                f"{v3}/coins?sort=market_cap&order=DESC&limit=100",
                f"{adv}/coins/list?sortBy=marketCap&limit=100",
            ],
        }
        urls = [self.primary_url(kind), *alternatives.get(kind, [])]
        return list(dict.fromkeys(urls))

    async def fetch_from_endpoint(self, kind: str, limit: int | None = None) -> List[ProtocolToken]:
        """Fetch one pump.fun list, walking its fallback chain."""

        urls = self.candidate_urls(kind)
        endpoints = [Endpoint(with_limit(url, limit), name=f"pumpfun:{kind}") for url in urls]
        return await self._tokens(
            cache_key("pumpfun", kind, limit),
            endpoints,
            decode_pumpfun_list,
            stop_on_server_error=kind == "featured",
        )

    async def fetch_latest(self, limit: int = 48) -> List[ProtocolToken]:
        return await self.fetch_from_endpoint("latest", limit)

    async def fetch_featured(self, limit: int | None = None) -> List[ProtocolToken]:
        return await self.fetch_from_endpoint("featured", limit)

    async def fetch_graduated(self, limit: int | None = None) -> List[ProtocolToken]:
        return await self.fetch_from_endpoint("graduatedByTime", limit)

    async def fetch_by_market_cap(self, limit: int | None = None) -> List[ProtocolToken]:
        return await self.fetch_from_endpoint("listByMarketCap", limit)

    async def fetch_by_creation(self, limit: int | None = None) -> List[ProtocolToken]:
        return await self.fetch_from_endpoint("listByCreation", limit)

    async def fetch_runners(self, limit: int | None = None) -> List[ProtocolToken]:
        return await self.fetch_from_endpoint("runners", limit)

    async def fetch_migrated_tokens(self, limit: int = 50) -> List[ProtocolToken]:
        return await self.fetch_graduated(limit)

    async def fetch_token_info(self, mint: str) -> Optional[ProtocolToken]:
        """Look up a single mint, falling back to the search endpoints."""

        mint = str(mint or "").strip()
        if not mint:
            return None
        v3 = self._v3
        candidates: Sequence[str] = (
            f"{v3}/coins/{mint}",
            f"{v3}/coins?mint={mint}",
            f"{v3}/coins?search={mint}",
        )

        def _decode(payload: Any) -> Optional[ProtocolToken]:
            entry = _match_mint(payload, mint)
            if entry is None:
                return None
            return decode_pumpfun_token(entry)

        endpoints = [Endpoint(url, name="pumpfun:coin") for url in candidates]
        return await self._one(cache_key("pumpfun", "coin", mint), endpoints, _decode)


__all__ = [
    "PROTOCOL",
    "LIST_KINDS",
    "PumpFunAdapter",
    "decode_pumpfun_token",
    "decode_pumpfun_list",
]
