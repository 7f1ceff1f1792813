"""Plumbing shared by every source adapter."""

from __future__ import annotations

import logging
from typing import Any, Callable, Hashable, Iterable, List, Mapping, Sequence
from urllib.parse import parse_qs, urlencode, urlparse

from ..config import Settings
from ..endpoints import Endpoint, EndpointSelector
from ..gate import RequestGate
from ..lru import TTLCache
from ..normalize import extract_entries
from ..outcome import Empty, Failure, FetchOutcome, Success

logger = logging.getLogger(__name__)


def cache_key(*parts: Any) -> str:
    return ":".join(str(part) for part in parts if part is not None and part != "")


def with_query(url: str, params: Mapping[str, Any] | None = None) -> str:
    """Append ``params`` to ``url`` keeping any existing query string."""

    if not params:
        return url
    clean = {k: v for k, v in params.items() if v is not None}
    if not clean:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{urlencode(clean)}"


def with_limit(url: str, limit: int | None) -> str:
    """Add ``limit`` unless the query string already carries one."""

    if not limit or "limit" in parse_qs(urlparse(url).query):
        return url
    return with_query(url, {"limit": int(limit)})


class ProviderAdapter:
    """Base class wiring a cache, a request gate and an endpoint selector.

    Each adapter instance owns its own cache and gate.  Public fetch methods
    built on :meth:`_tokens` never raise for network or payload failures;
    they log and return an empty list.  An unsupported argument value (list
    kind, sort, state, timeframe) is a caller error and raises ``ValueError``
    before any request goes out.
    """

    name = "provider"
    ttl_setting = "cache_ttl"

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        cache: TTLCache | None = None,
        gate: RequestGate | None = None,
        selector: EndpointSelector | None = None,
        ttl: float | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.cache = cache or TTLCache(
            maxsize=self.settings.cache_maxsize,
            ttl=ttl if ttl is not None else getattr(self.settings, self.ttl_setting),
        )
        self.gate = gate or RequestGate(self.settings.min_request_interval)
        self.selector = selector or EndpointSelector(
            timeout=self.settings.request_timeout,
            max_bytes=self.settings.max_response_bytes,
            rate_limit_backoff=self.settings.rate_limit_backoff,
            headers={"User-Agent": self.settings.user_agent},
        )

    @property
    def default_limit(self) -> int:
        return self.settings.default_limit

    async def _load(
        self,
        key: Hashable,
        endpoints: Sequence[Endpoint],
        decode: Callable[[Any], Any],
        *,
        stop_on_server_error: bool = False,
        cache: TTLCache | None = None,
    ) -> FetchOutcome:
        """Return a cached value or fetch ``endpoints`` under ``key``.

        Only :class:`Success` outcomes are cached.
        """

        store = cache if cache is not None else self.cache
        cached = store.get(key)
        if cached is not None:
            return Success(cached, "cache")
        if not endpoints:
            return Empty("no candidates")
        throttle_key = urlparse(endpoints[0].url).netloc or key

        async def _fetch() -> FetchOutcome:
            outcome = await self.selector.select(
                endpoints, decode, stop_on_server_error=stop_on_server_error
            )
            if isinstance(outcome, Success):
                store.set(key, outcome.data)
            return outcome

        return await self.gate.run(key, _fetch, throttle_key=throttle_key)

    async def _tokens(
        self,
        key: Hashable,
        endpoints: Sequence[Endpoint],
        decode: Callable[[Any], Any],
        *,
        limit: int | None = None,
        stop_on_server_error: bool = False,
    ) -> List[Any]:
        try:
            outcome = await self._load(
                key, endpoints, decode, stop_on_server_error=stop_on_server_error
            )
        except Exception as exc:  # pragma: no cover - unexpected decoder bugs
            logger.warning("%s fetch %s failed: %s", self.name, key, exc)
            return []
        if isinstance(outcome, Success):
            items = list(outcome.data)
            return items[:limit] if limit else items
        if isinstance(outcome, Failure):
            logger.info(
                "%s fetch %s gave up: %s (%s)",
                self.name,
                key,
                outcome.kind.value,
                outcome.detail,
                extra={"provider": self.name, "failure_kind": outcome.kind.value},
            )
        else:
            logger.debug("%s fetch %s returned nothing", self.name, key)
        return []

    async def _one(
        self,
        key: Hashable,
        endpoints: Sequence[Endpoint],
        decode: Callable[[Any], Any],
    ) -> Any:
        try:
            outcome = await self._load(key, endpoints, decode)
        except Exception as exc:  # pragma: no cover - unexpected decoder bugs
            logger.warning("%s lookup %s failed: %s", self.name, key, exc)
            return None
        if isinstance(outcome, Success):
            return outcome.data
        if isinstance(outcome, Failure):
            logger.info("%s lookup %s gave up: %s", self.name, key, outcome.kind.value)
        return None

    def clear_cache(self) -> None:
        self.cache.clear()


def decode_list(
    decode_entry: Callable[[Mapping[str, Any]], Any],
    keys: Iterable[str] | None = None,
) -> Callable[[Any], list]:
    """Build a payload decoder from a per-record decoder."""

    wrapper_keys = tuple(keys) if keys else None

    def _decode(payload: Any) -> list:
        if wrapper_keys:
            entries = extract_entries(payload, wrapper_keys)
        else:
            entries = extract_entries(payload)
        decoded = []
        seen: set[str] = set()
        for entry in entries:
            token = decode_entry(entry)
            if token is None:
                continue
            ident = getattr(token, "id", None)
            if ident is not None:
                if ident in seen:
                    continue
                seen.add(ident)
            decoded.append(token)
        return decoded

    return _decode


__all__ = ["ProviderAdapter", "decode_list", "with_query", "with_limit", "cache_key"]
