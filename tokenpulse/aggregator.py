"""Fan-out across source adapters and merge into one token list.

:class:`ProtocolAggregator` turns a set of protocol names and an optional
status into concrete adapter calls, runs them concurrently, tags every
result with the protocol it represents and applies the status filter and
ordering the dashboard expects.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from .bonding import with_progress
from .config import Settings
from .models import ProtocolToken, TokenDetails, TokenStatus, WalletAssets, normalize_chain
from .providers import (
    DexScreenerAdapter,
    GeckoTerminalAdapter,
    HeliusAdapter,
    JupiterAdapter,
    MeteoraAdapter,
    MoonitAdapter,
    OrcaAdapter,
    PriceAdapter,
    PumpFunAdapter,
    RaydiumAdapter,
)
from .providers.jupiter import LAUNCHPADS

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[List[ProtocolToken]]]

# several fetches can stand for one protocol
PROTOCOL_ALIASES: Dict[str, str] = {
    "moonit-jupiter": "moonit",
    "moonit-api": "moonit",
    "moonit-api-graduated": "moonit",
    "moonshot-graduated": "moonshot",
    "pump-graduated": "pump",
    "meteora-amm": "meteora",
    "meteora-amm-v2": "meteora",
}

SUPPORTED_PROTOCOLS = (
    "raydium",
    "meteora",
    "meteora-amm",
    "meteora-amm-v2",
    "dynamic-bc",
    "orca",
    "pump",
    "moonshot",
    "moonit",
    "jupiter-studio",
    "launchlab",
    "bonk",
)

PUMPFUN_KINDS = ("latest", "featured", "graduated", "marketCap", "migrated")


@dataclass(frozen=True)
class FetchJob:
    """One adapter call scheduled for a merge.

    ``graduated_only`` marks listings that by construction contain only
    migrated tokens; everything they return is forced to migrated.
    """

    source: str
    loader: Loader
    graduated_only: bool = False

    @property
    def protocol(self) -> str:
        return PROTOCOL_ALIASES.get(self.source, self.source)


def _created(token: ProtocolToken) -> int:
    return token.created_timestamp or 0


def _migrated_at(token: ProtocolToken) -> int:
    return token.migration_timestamp or token.created_timestamp or 0


def tag_tokens(job: FetchJob, tokens: Iterable[ProtocolToken]) -> List[ProtocolToken]:
    tagged = []
    for token in tokens:
        token = token.replace(protocol=job.protocol)
        if job.graduated_only:
            token = token.mark_migrated()
        tagged.append(token)
    return tagged


def dedupe_tokens(tokens: Iterable[ProtocolToken]) -> List[ProtocolToken]:
    """Keep one record per ``(protocol, chain, id)``; a migrated record wins."""

    merged: Dict[tuple, ProtocolToken] = {}
    for token in tokens:
        key = (token.protocol, token.chain, token.id)
        current = merged.get(key)
        if current is None or (token.is_migrated and not current.is_migrated):
            merged[key] = token
    return list(merged.values())


def filter_by_status(
    tokens: Sequence[ProtocolToken],
    status: TokenStatus | None,
    *,
    settings: Settings,
    sol_price_usd: float | None = None,
) -> List[ProtocolToken]:
    """Apply the list filter for ``status`` and return tokens newest first."""

    threshold = settings.final_stretch_threshold
    price = sol_price_usd or settings.sol_price_usd
    target = settings.bonding_curve_target_sol

    if status is TokenStatus.MIGRATED:
        kept = [t for t in tokens if t.is_migrated]
        return sorted(kept, key=_migrated_at, reverse=True)

    if status in (TokenStatus.FINAL_STRETCH, TokenStatus.NEW):
        kept = []
        for token in tokens:
            if token.is_migrated:
                continue
            token = with_progress(token, target_sol=target, sol_price_usd=price)
            progress = token.bonding_progress or 0.0
            if status is TokenStatus.FINAL_STRETCH and threshold <= progress < 1.0:
                kept.append(token)
            elif status is TokenStatus.NEW and progress < threshold:
                kept.append(token)
        return sorted(kept, key=_created, reverse=True)

    return sorted(tokens, key=_created, reverse=True)


class ProtocolAggregator:
    """Owns one instance of every adapter and merges their results."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        pumpfun: PumpFunAdapter | None = None,
        raydium: RaydiumAdapter | None = None,
        meteora: MeteoraAdapter | None = None,
        orca: OrcaAdapter | None = None,
        moonit: MoonitAdapter | None = None,
        jupiter: JupiterAdapter | None = None,
        geckoterminal: GeckoTerminalAdapter | None = None,
        dexscreener: DexScreenerAdapter | None = None,
        price: PriceAdapter | None = None,
        helius: HeliusAdapter | None = None,
    ) -> None:
        self.settings = settings or Settings()
        s = self.settings
        self.pumpfun = pumpfun or PumpFunAdapter(s)
        self.raydium = raydium or RaydiumAdapter(s)
        self.meteora = meteora or MeteoraAdapter(s)
        self.orca = orca or OrcaAdapter(s)
        self.moonit = moonit or MoonitAdapter(s)
        self.jupiter = jupiter or JupiterAdapter(s)
        self.geckoterminal = geckoterminal or GeckoTerminalAdapter(s)
        self.dexscreener = dexscreener or DexScreenerAdapter(s)
        self.price = price or PriceAdapter(s)
        self.helius = helius or HeliusAdapter(s)
        self.sol_price_usd = s.sol_price_usd

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProtocolAggregator":
        return cls(settings)

    @property
    def adapters(self) -> List[Any]:
        return [
            self.pumpfun,
            self.raydium,
            self.meteora,
            self.orca,
            self.moonit,
            self.jupiter,
            self.geckoterminal,
            self.dexscreener,
            self.price,
            self.helius,
        ]

    # routing -------------------------------------------------------------
    def _launchpad_jobs(self, protocol: str, status: TokenStatus | None) -> List[FetchJob]:
        pad = LAUNCHPADS[protocol]
        if status is TokenStatus.NEW:
            return [FetchJob(protocol, lambda: self.jupiter.fetch_gems([pad], "24h", 30))]
        return [FetchJob(protocol, lambda: self.jupiter.fetch_top_traded([pad], 100))]

    def plan_jobs(self, protocols: Iterable[str], status: TokenStatus | None) -> List[FetchJob]:
        """Translate protocol names and a status into adapter calls."""

        jobs: List[FetchJob] = []
        seen: set[str] = set()
        for raw in protocols:
            protocol = str(raw or "").strip().lower()
            if not protocol or protocol in seen:
                continue
            seen.add(protocol)

            if protocol == "raydium":
                if status is TokenStatus.NEW:
                    jobs.append(FetchJob(protocol, lambda: self.raydium.fetch_launchpad_tokens("new", 100)))
                elif status is TokenStatus.MIGRATED:
                    jobs.append(FetchJob(protocol, lambda: self.raydium.fetch_amm_tokens(100)))
                else:
                    jobs.append(
                        FetchJob(protocol, lambda: self.raydium.fetch_launchpad_tokens("hotToken", 100))
                    )
            elif protocol in ("meteora", "meteora-amm", "meteora-amm-v2"):
                jobs.append(FetchJob(protocol, lambda: self.meteora.fetch_dlmm_tokens(100)))
            elif protocol == "dynamic-bc":
                jobs.append(FetchJob(protocol, lambda: self.meteora.fetch_dbc_tokens(100)))
            elif protocol == "orca":
                jobs.append(FetchJob(protocol, lambda: self.orca.fetch_whirlpool_tokens(100)))
            elif protocol == "pump":
                if status is TokenStatus.NEW:
                    jobs.append(FetchJob(protocol, lambda: self.pumpfun.fetch_latest(100)))
                elif status is TokenStatus.MIGRATED:
                    jobs.append(
                        FetchJob(
                            "pump-graduated",
                            lambda: self.pumpfun.fetch_graduated(100),
                            graduated_only=True,
                        )
                    )
                else:
                    jobs.append(FetchJob(protocol, lambda: self.pumpfun.fetch_by_market_cap(100)))
            elif protocol == "moonshot":
                jobs.extend(self._launchpad_jobs(protocol, status))
                if status is TokenStatus.MIGRATED:
                    jobs.append(
                        FetchJob(
                            "moonshot-graduated",
                            lambda: self.moonit.fetch_moonshot_graduated(100),
                            graduated_only=True,
                        )
                    )
            elif protocol == "moonit":
                if status is TokenStatus.NEW:
                    jobs.append(FetchJob("moonit-jupiter", lambda: self.jupiter.fetch_gems(["moonit"], "24h", 30)))
                    jobs.append(
                        FetchJob(
                            "moonit-api",
                            lambda: self.moonit.fetch_moonit_tokens("TRENDING", "NOT_GRADUATED", 30),
                        )
                    )
                elif status is TokenStatus.MIGRATED:
                    jobs.append(FetchJob("moonit-jupiter", lambda: self.jupiter.fetch_top_traded(["moonit"], 100)))
                    jobs.append(
                        FetchJob(
                            "moonit-api-graduated",
                            lambda: self.moonit.fetch_moonit_tokens("MARKET_CAP", "GRADUATED", 100),
                            graduated_only=True,
                        )
                    )
                else:
                    jobs.append(FetchJob("moonit-jupiter", lambda: self.jupiter.fetch_top_traded(["moonit"], 100)))
                    jobs.append(
                        FetchJob(
                            "moonit-api",
                            lambda: self.moonit.fetch_moonit_tokens("TRENDING", "NOT_GRADUATED", 100),
                        )
                    )
            elif protocol in ("jupiter-studio", "launchlab", "bonk"):
                jobs.extend(self._launchpad_jobs(protocol, status))
            else:
                logger.info("no source for protocol %r; skipping", protocol)
        return jobs

    # merging -------------------------------------------------------------
    async def run_jobs(self, jobs: Sequence[FetchJob]) -> List[ProtocolToken]:
        """Run ``jobs`` concurrently; a failing job only shrinks the result."""

        results = await asyncio.gather(*(job.loader() for job in jobs), return_exceptions=True)
        merged: List[ProtocolToken] = []
        for job, result in zip(jobs, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning("source %s failed: %s", job.source, result)
                continue
            if not result:
                logger.debug("source %s returned no tokens", job.source)
                continue
            merged.extend(tag_tokens(job, result))
        return merged

    async def fetch_tokens_by_protocols(
        self,
        protocols: Iterable[str],
        status: TokenStatus | str | None = None,
    ) -> List[ProtocolToken]:
        parsed = TokenStatus.parse(status)
        jobs = self.plan_jobs(protocols, parsed)
        if not jobs:
            return []
        tokens = dedupe_tokens(await self.run_jobs(jobs))
        result = filter_by_status(
            tokens, parsed, settings=self.settings, sol_price_usd=self.sol_price_usd
        )
        logger.info(
            "merged %d tokens from %d sources",
            len(result),
            len(jobs),
            extra={"status": parsed.value if parsed else None},
        )
        return result

    async def fetch_pumpfun_tokens(self, kind: str = "latest", limit: int = 50) -> List[ProtocolToken]:
        loaders: Dict[str, Callable[[], Awaitable[List[ProtocolToken]]]] = {
            "latest": lambda: self.pumpfun.fetch_latest(limit),
            "featured": lambda: self.pumpfun.fetch_featured(limit),
            "graduated": lambda: self.pumpfun.fetch_graduated(limit),
            "marketCap": lambda: self.pumpfun.fetch_by_market_cap(limit),
            "migrated": lambda: self.pumpfun.fetch_migrated_tokens(limit),
        }
        if kind not in loaders:
            raise ValueError(f"unknown pump.fun list: {kind!r}")
        graduated = kind in ("graduated", "migrated")
        job = FetchJob("pump-graduated" if graduated else "pump", loaders[kind], graduated_only=graduated)
        tokens = await self.run_jobs([job])
        return tokens[:limit] if limit else tokens

    # single-token lookups ------------------------------------------------
    async def fetch_token_details(self, chain: str, address: str) -> TokenDetails:
        """Combine pump.fun, DexScreener and GeckoTerminal views of one token.

        Raises ``ValueError`` for an unsupported chain or an empty address.
        """

        chain = normalize_chain(chain)
        address = str(address or "").strip()
        if not address:
            raise ValueError("address is required")

        async def _none() -> None:
            return None

        pump_task = self.pumpfun.fetch_token_info(address) if chain == "solana" else _none()
        pump, dex, gecko = await asyncio.gather(
            pump_task,
            self.dexscreener.fetch_token_info(chain, address),
            self.geckoterminal.fetch_token_info(chain, address),
            return_exceptions=True,
        )
        details = TokenDetails(chain=chain, address=address)
        for label, value in (("pumpfun", pump), ("dexscreener", dex), ("geckoterminal", gecko)):
            if isinstance(value, BaseException):
                logger.warning("%s lookup for %s failed: %s", label, address, value)
                continue
            setattr(details, label, value)
        return details

    async def fetch_launchpad_stats(self) -> Optional[Dict[str, Any]]:
        return await self.jupiter.fetch_launchpad_stats()

    async def fetch_wallet_assets(self, owner: str) -> Optional[WalletAssets]:
        return await self.helius.fetch_wallet_assets(owner)

    async def refresh_sol_price(self) -> float:
        """Refresh the SOL price used for market-cap based progress estimates."""

        price = await self.price.fetch_sol_price()
        if price:
            self.sol_price_usd = price
        else:
            logger.info("SOL price unavailable; keeping %.2f", self.sol_price_usd)
        return self.sol_price_usd

    def clear_caches(self) -> None:
        for adapter in self.adapters:
            adapter.clear_cache()


__all__ = [
    "FetchJob",
    "PROTOCOL_ALIASES",
    "SUPPORTED_PROTOCOLS",
    "PUMPFUN_KINDS",
    "ProtocolAggregator",
    "dedupe_tokens",
    "filter_by_status",
    "tag_tokens",
]
