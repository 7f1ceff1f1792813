"""Common records produced by the source adapters."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TokenStatus(str, Enum):
    NEW = "new"
    FINAL_STRETCH = "finalStretch"
    MIGRATED = "migrated"

    @classmethod
    def parse(cls, value: "str | TokenStatus | None") -> "TokenStatus | None":
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip()
        if not text or text.lower() in {"all", "any"}:
            return None
        lowered = text.replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        raise ValueError(f"unknown token status: {value!r}")


SUPPORTED_CHAINS = ("solana", "bsc", "ethereum", "base")
_CHAIN_ALIASES = {"sol": "solana", "eth": "ethereum", "bnb": "bsc"}


def normalize_chain(chain: str) -> str:
    key = str(chain or "").strip().lower()
    key = _CHAIN_ALIASES.get(key, key)
    if key not in SUPPORTED_CHAINS:
        raise ValueError(f"unsupported chain: {chain!r}")
    return key


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass(slots=True)
class ProtocolToken:
    """A token list entry normalised across vendors.

    ``is_migrated`` only ever comes from an explicit vendor signal and a
    migrated token always reports ``bonding_progress == 1.0``.
    """

    id: str
    protocol: str
    name: str = "Unknown"
    symbol: str = "UNKNOWN"
    chain: str = "solana"
    image: Optional[str] = None
    price: Optional[float] = None
    price_usd: Optional[float] = None
    market_cap: Optional[float] = None
    volume: Optional[float] = None
    volume_24h: Optional[float] = None
    liquidity: Optional[float] = None
    created_timestamp: Optional[int] = None
    migration_timestamp: Optional[int] = None
    is_migrated: bool = False
    bonding_progress: Optional[float] = None
    raydium_pool: Optional[str] = None
    sol_reserves: Optional[float] = None
    token_reserves: Optional[float] = None
    description: Optional[str] = None
    price_change_24h: Optional[float] = None
    socials: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.is_migrated = bool(self.is_migrated)
        if self.is_migrated:
            self.bonding_progress = 1.0
        elif self.bonding_progress is not None:
            self.bonding_progress = min(1.0, max(0.0, float(self.bonding_progress)))

    def replace(self, **changes: Any) -> "ProtocolToken":
        return dataclasses.replace(self, **changes)

    def mark_migrated(self) -> "ProtocolToken":
        return self.replace(is_migrated=True, bonding_progress=1.0)

    def as_dict(self) -> Dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in dataclasses.fields(self)}


@dataclass(slots=True)
class TokenMarketInfo:
    """Price/liquidity snapshot from a DEX data vendor."""

    source: str
    address: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    logo: Optional[str] = None
    price_usd: Optional[float] = None
    price_native: Optional[float] = None
    price_change_5m: Optional[float] = None
    price_change_1h: Optional[float] = None
    price_change_24h: Optional[float] = None
    volume_1h: Optional[float] = None
    volume_24h: Optional[float] = None
    liquidity: Optional[float] = None
    market_cap: Optional[float] = None
    fdv: Optional[float] = None
    pair_address: Optional[str] = None
    dex_id: Optional[str] = None
    dex_url: Optional[str] = None
    base_token: Optional[Dict[str, Any]] = None
    quote_token: Optional[Dict[str, Any]] = None
    buys_24h: Optional[int] = None
    sells_24h: Optional[int] = None
    socials: List[Dict[str, Any]] = field(default_factory=list)
    websites: List[Dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in dataclasses.fields(self)}


@dataclass(slots=True)
class TokenDetails:
    chain: str
    address: str
    pumpfun: Optional[ProtocolToken] = None
    dexscreener: Optional[TokenMarketInfo] = None
    geckoterminal: Optional[TokenMarketInfo] = None

    @property
    def found(self) -> bool:
        return any(src is not None for src in (self.pumpfun, self.dexscreener, self.geckoterminal))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "chain": self.chain,
            "address": self.address,
            "pumpfun": self.pumpfun.as_dict() if self.pumpfun else None,
            "dexscreener": self.dexscreener.as_dict() if self.dexscreener else None,
            "geckoterminal": self.geckoterminal.as_dict() if self.geckoterminal else None,
        }


@dataclass(slots=True)
class AssetBalance:
    mint: str
    amount: float
    decimals: int = 0
    symbol: Optional[str] = None
    name: Optional[str] = None
    logo: Optional[str] = None
    price_usd: Optional[float] = None

    @property
    def value_usd(self) -> Optional[float]:
        if self.price_usd is None:
            return None
        return self.amount * self.price_usd

    def as_dict(self) -> Dict[str, Any]:
        payload = {_camel(f.name): getattr(self, f.name) for f in dataclasses.fields(self)}
        payload["valueUsd"] = self.value_usd
        return payload


@dataclass(slots=True)
class WalletAssets:
    owner: str
    sol_balance: float = 0.0
    tokens: List[AssetBalance] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "solBalance": self.sol_balance,
            "tokens": [token.as_dict() for token in self.tokens],
        }


__all__ = [
    "TokenStatus",
    "SUPPORTED_CHAINS",
    "normalize_chain",
    "ProtocolToken",
    "TokenMarketInfo",
    "TokenDetails",
    "AssetBalance",
    "WalletAssets",
]
