"""Ordered-candidate fetching with failure classification.

A logical query (say "latest pump.fun tokens") often has several candidate
URLs across hosts and API generations.  :class:`EndpointSelector` tries them
in order and turns every attempt into a :class:`~tokenpulse.outcome.FetchOutcome`
so the caller can branch on *why* a candidate failed instead of parsing log
lines.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Sequence

import aiohttp

from .http import get_session, loads
from .outcome import Empty, Failure, FailureKind, FetchOutcome, Success

logger = logging.getLogger(__name__)

Decoder = Callable[[Any], Any]
SessionFactory = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class Endpoint:
    url: str
    method: str = "GET"
    params: Optional[Mapping[str, Any]] = None
    json: Any = None
    headers: Optional[Mapping[str, str]] = None
    timeout: Optional[float] = None
    name: str = field(default="", compare=False)

    @property
    def label(self) -> str:
        return self.name or self.url

    def signature(self) -> tuple:
        params = tuple(sorted((self.params or {}).items()))
        return (self.method.upper(), self.url, params)


def _is_empty(data: Any) -> bool:
    if data is None:
        return True
    if isinstance(data, (list, tuple, dict, str, bytes)):
        return len(data) == 0
    return False


class EndpointSelector:
    """Issue single attempts and walk candidate lists."""

    def __init__(
        self,
        *,
        session_factory: SessionFactory | None = None,
        timeout: float = 15.0,
        max_bytes: int = 10 * 1024 * 1024,
        rate_limit_backoff: float = 2.0,
        headers: Mapping[str, str] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._session_factory = session_factory or get_session
        self.timeout = float(timeout)
        self.max_bytes = int(max_bytes)
        self.rate_limit_backoff = float(rate_limit_backoff)
        self.headers = dict(headers or {})
        self._sleep = sleep

    async def request(self, endpoint: Endpoint, decode: Decoder | None = None) -> FetchOutcome:
        """Perform one attempt against ``endpoint`` and classify the result."""

        source = endpoint.label
        headers = {"Accept": "application/json", **self.headers, **(endpoint.headers or {})}
        timeout = aiohttp.ClientTimeout(total=endpoint.timeout or self.timeout)
        try:
            session = await self._session_factory()
            async with session.request(
                endpoint.method,
                endpoint.url,
                params=dict(endpoint.params) if endpoint.params else None,
                json=endpoint.json,
                headers=headers,
                timeout=timeout,
            ) as resp:
                status = int(resp.status)
                if status == 429:
                    return Failure(FailureKind.RATE_LIMITED, "HTTP 429", status, source)
                if status >= 500:
                    return Failure(FailureKind.SERVER_ERROR, f"HTTP {status}", status, source)
                if status >= 400:
                    return Failure(FailureKind.CLIENT_ERROR, f"HTTP {status}", status, source)

                length = (resp.headers or {}).get("Content-Length")
                if length is not None and str(length).strip() == "0":
                    return Empty("empty body", source)
                if length is not None and str(length).strip().isdigit():
                    if int(length) > self.max_bytes:
                        return Failure(
                            FailureKind.MALFORMED,
                            f"response too large ({length} bytes)",
                            status,
                            source,
                        )
                body = await resp.read()
        except asyncio.TimeoutError:
            return Failure(FailureKind.TIMEOUT, "request timed out", None, source)
        except aiohttp.ClientConnectionError as exc:
            return Failure(FailureKind.BLOCKED, str(exc) or type(exc).__name__, None, source)
        except aiohttp.ClientError as exc:
            return Failure(FailureKind.MALFORMED, str(exc) or type(exc).__name__, None, source)

        if len(body) > self.max_bytes:
            return Failure(FailureKind.MALFORMED, "response too large", status, source)
        if not body or not body.strip():
            return Empty("empty body", source)
        try:
            payload = loads(body)
        except ValueError as exc:
            return Failure(FailureKind.MALFORMED, f"invalid JSON: {exc}", status, source)
        try:
            data = decode(payload) if decode is not None else payload
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            return Failure(FailureKind.MALFORMED, f"unexpected shape: {exc}", status, source)
        if _is_empty(data):
            return Empty("no usable entries", source)
        return Success(data, source)

    async def select(
        self,
        endpoints: Iterable[Endpoint],
        decode: Decoder | None = None,
        *,
        stop_on_server_error: bool = False,
    ) -> FetchOutcome:
        """Try ``endpoints`` in order until one yields usable data.

        * timeout, 4xx, empty and malformed responses move on to the next
          candidate;
        * HTTP 429 waits ``rate_limit_backoff`` and retries the same
          candidate once;
        * HTTP 5xx moves on, or returns :class:`Empty` straight away when
          ``stop_on_server_error`` is set;
        * a connection-level failure aborts the remaining candidates.
        """

        seen: set[tuple] = set()
        last: FetchOutcome = Empty("no candidates")
        for endpoint in endpoints:
            sig = endpoint.signature()
            if sig in seen:
                continue
            seen.add(sig)

            outcome = await self.request(endpoint, decode)
            if isinstance(outcome, Failure) and outcome.kind is FailureKind.RATE_LIMITED:
                logger.info(
                    "rate limited by %s; retrying in %.1fs",
                    endpoint.label,
                    self.rate_limit_backoff,
                )
                await self._sleep(self.rate_limit_backoff)
                outcome = await self.request(endpoint, decode)

            if isinstance(outcome, Success):
                return outcome
            last = outcome
            if isinstance(outcome, Empty):
                logger.debug("%s returned no data (%s)", endpoint.label, outcome.reason)
                continue

            logger.debug(
                "%s failed: %s %s",
                endpoint.label,
                outcome.kind.value,
                outcome.detail,
                extra={"failure_kind": outcome.kind.value, "status": outcome.status},
            )
            if outcome.kind is FailureKind.BLOCKED:
                logger.warning(
                    "%s is unreachable (%s); skipping remaining candidates",
                    endpoint.label,
                    outcome.detail,
                )
                return outcome
            if outcome.kind is FailureKind.SERVER_ERROR and stop_on_server_error:
                return Empty(f"server error from optional endpoint {endpoint.label}")
        return last


def endpoints_from_urls(
    urls: Sequence[str],
    *,
    params: Mapping[str, Any] | None = None,
    timeout: float | None = None,
    headers: Mapping[str, str] | None = None,
) -> list[Endpoint]:
    return [Endpoint(url, params=params, timeout=timeout, headers=headers) for url in urls]


__all__ = ["Endpoint", "EndpointSelector", "endpoints_from_urls"]
