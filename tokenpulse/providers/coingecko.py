"""SOL/USD spot price lookup (CoinGecko, then Jupiter price API)."""

from __future__ import annotations

from typing import Any, Optional

from ..endpoints import Endpoint
from ..normalize import WSOL_MINT, coerce_float, nested
from .base import ProviderAdapter, with_query


def decode_sol_price(payload: Any) -> Optional[float]:
    """Accept either a CoinGecko ``simple/price`` or a Jupiter price payload."""

    for path in (
        ("solana", "usd"),
        ("data", WSOL_MINT, "price"),
        ("data", "SOL", "price"),
    ):
        price = coerce_float(nested(payload, *path))
        if price is not None and price > 0:
            return price
    return None


class PriceAdapter(ProviderAdapter):
    name = "price"

    async def fetch_sol_price(self) -> Optional[float]:
        coingecko = self.settings.coingecko_api_url.rstrip("/")
        jupiter = self.settings.jupiter_price_url.rstrip("/")
        endpoints = [
            Endpoint(
                with_query(f"{coingecko}/simple/price", {"ids": "solana", "vs_currencies": "usd"}),
                name="coingecko:simple-price",
            ),
            Endpoint(with_query(jupiter, {"ids": WSOL_MINT}), name="jupiter:price"),
        ]
        return await self._one("sol-usd", endpoints, decode_sol_price)


__all__ = ["PriceAdapter", "decode_sol_price"]
