"""Orca whirlpool listing adapter."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from ..endpoints import Endpoint
from ..models import ProtocolToken
from ..normalize import WSOL_MINT, coerce_float, coerce_str, extract_entries, mint_from, nested
from .base import ProviderAdapter, cache_key, decode_list

PROTOCOL = "orca"

_FALLBACK_HOST = "https://api.mainnet.orca.so"


def decode_whirlpool(pool: Mapping[str, Any]) -> Optional[ProtocolToken]:
    token_a = pool.get("tokenA")
    token_b = pool.get("tokenB")
    if not isinstance(token_a, Mapping) or not isinstance(token_b, Mapping):
        return None
    mint_a = mint_from(token_a)
    mint_b = mint_from(token_b)
    if WSOL_MINT not in (mint_a, mint_b) or mint_a == mint_b:
        return None
    token = token_b if mint_a == WSOL_MINT else token_a
    mint = mint_from(token)
    if not mint:
        return None
    volume = coerce_float(nested(pool, "volume", "day"))
    return ProtocolToken(
        id=mint,
        protocol=PROTOCOL,
        name=coerce_str(token.get("name")) or "Unknown",
        symbol=coerce_str(token.get("symbol")) or "UNKNOWN",
        image=coerce_str(token.get("logoURI")),
        price=coerce_float(pool.get("price")),
        liquidity=coerce_float(pool.get("tvl")),
        volume=volume,
        volume_24h=volume,
        is_migrated=True,
        raydium_pool=coerce_str(pool.get("address")),
    )


class OrcaAdapter(ProviderAdapter):
    name = "orca"

    async def fetch_whirlpool_tokens(self, limit: int = 100) -> List[ProtocolToken]:
        primary = self.settings.orca_api_url.rstrip("/")

        def _decode(payload: Any) -> List[ProtocolToken]:
            pools = extract_entries(payload, ("whirlpools", "data"))[:limit]
            return decode_list(decode_whirlpool)(pools)

        endpoints = [
            Endpoint(f"{primary}/v1/whirlpool/list", name="orca:whirlpools"),
            Endpoint(f"{_FALLBACK_HOST}/v1/whirlpool/list", name="orca:whirlpools-mainnet"),
        ]
        return await self._tokens(cache_key("orca", limit), endpoints, _decode)


__all__ = ["PROTOCOL", "OrcaAdapter", "decode_whirlpool"]
