"""Wallet fungible balances via the Helius DAS ``searchAssets`` RPC."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from ..endpoints import Endpoint
from ..logging_utils import warn_once_per
from ..models import AssetBalance, WalletAssets
from ..normalize import LAMPORTS_PER_SOL, coerce_float, coerce_int, coerce_str, nested
from .base import ProviderAdapter, cache_key

logger = logging.getLogger(__name__)


def _logo(item: Mapping[str, Any]) -> Optional[str]:
    files = nested(item, "content", "files")
    if isinstance(files, list) and files and isinstance(files[0], Mapping):
        uri = coerce_str(files[0].get("cdn_uri")) or coerce_str(files[0].get("uri"))
        if uri:
            return uri
    return coerce_str(nested(item, "content", "links", "image"))


def decode_search_assets(payload: Any, owner: str) -> WalletAssets:
    if not isinstance(payload, Mapping):
        raise ValueError("RPC payload is not an object")
    error = payload.get("error")
    if error:
        message = error.get("message") if isinstance(error, Mapping) else str(error)
        raise ValueError(f"RPC error: {message or 'unknown'}")
    result = payload.get("result")
    if not isinstance(result, Mapping):
        raise ValueError("RPC response has no result")

    lamports = coerce_float(nested(result, "nativeBalance", "lamports"))
    balances: Dict[str, AssetBalance] = {}
    for item in result.get("items") or []:
        if not isinstance(item, Mapping):
            continue
        info = item.get("token_info")
        mint = coerce_str(item.get("id"))
        if not isinstance(info, Mapping) or not mint:
            continue
        raw = coerce_float(info.get("balance"))
        if not raw:
            continue
        decimals = coerce_int(info.get("decimals")) or 0
        amount = raw / (10 ** decimals)
        existing = balances.get(mint)
        price = coerce_float(nested(info, "price_info", "price_per_token"))
        balances[mint] = AssetBalance(
            mint=mint,
            amount=amount + (existing.amount if existing else 0.0),
            decimals=decimals,
            symbol=coerce_str(info.get("symbol")) or coerce_str(nested(item, "content", "metadata", "symbol")),
            name=coerce_str(nested(item, "content", "metadata", "name")),
            logo=_logo(item) or (existing.logo if existing else None),
            price_usd=price if price is not None else (existing.price_usd if existing else None),
        )
    return WalletAssets(
        owner=owner,
        sol_balance=lamports / LAMPORTS_PER_SOL if lamports is not None else 0.0,
        tokens=list(balances.values()),
    )


class HeliusAdapter(ProviderAdapter):
    name = "helius"

    async def fetch_wallet_assets(self, owner: str) -> Optional[WalletAssets]:
        rpc_url = self.settings.helius_rpc_url
        owner = str(owner or "").strip()
        if not owner:
            return None
        if not rpc_url:
            warn_once_per(10, "helius-rpc-missing", "HELIUS_RPC_URL is not configured", logger=logger)
            return None
        body = {
            "jsonrpc": "2.0",
            "id": "portfolio-fetch",
            "method": "searchAssets",
            "params": {
                "ownerAddress": owner,
                "tokenType": "fungible",
                "displayOptions": {
                    "showNativeBalance": True,
                    "showCollectionMetadata": False,
                    "showInscription": False,
                    "showUnverifiedCollections": False,
                },
            },
        }
        endpoint = Endpoint(rpc_url, method="POST", json=body, name="helius:searchAssets")
        return await self._one(
            cache_key("helius-assets", owner),
            [endpoint],
            lambda payload: decode_search_assets(payload, owner),
        )


__all__ = ["HeliusAdapter", "decode_search_assets"]
