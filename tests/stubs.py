"""Hand-written stand-ins for aiohttp sessions used across the test-suite."""

from __future__ import annotations

from typing import Any, Dict, List

import orjson

from tokenpulse.aggregator import ProtocolAggregator
from tokenpulse.config import Settings
from tokenpulse.endpoints import EndpointSelector
from tokenpulse.gate import RequestGate
from tokenpulse.providers import (
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


class StubResponse:
    def __init__(self, payload: Any = None, *, status: int = 200, body: bytes | None = None, headers=None):
        if body is None:
            body = b"" if payload is None else orjson.dumps(payload)
        self.status = status
        self.headers = dict(headers or {})
        self._body = body
        self.read_calls = 0

    async def read(self) -> bytes:
        self.read_calls += 1
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _Raising:
    def __init__(self, exc: BaseException):
        self._exc = exc

    async def __aenter__(self):
        raise self._exc

    async def __aexit__(self, exc_type, exc, tb):
        return False


class StubSession:
    """Route requests by URL fragment.

    Each route holds a queue of responses (or exceptions to raise).  The last
    queued item is sticky so repeated calls keep getting it.  Unrouted URLs
    answer 404.
    """

    def __init__(self, routes: Dict[str, Any] | None = None):
        self.routes: Dict[str, List[Any]] = {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False
        for fragment, responses in (routes or {}).items():
            self.add(fragment, *(responses if isinstance(responses, list) else [responses]))

    def add(self, fragment: str, *responses: Any) -> None:
        self.routes[fragment] = list(responses)

    def _match(self, url: str) -> str | None:
        matches = [fragment for fragment in self.routes if fragment in url]
        if not matches:
            return None
        return max(matches, key=len)

    def request(self, method, url, *, params=None, json=None, headers=None, timeout=None):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "params": params,
                "json": json,
                "headers": headers or {},
                "timeout": timeout,
            }
        )
        fragment = self._match(url)
        if fragment is None:
            return StubResponse(status=404)
        queue = self.routes[fragment]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            return _Raising(item)
        if isinstance(item, StubResponse):
            return item
        return StubResponse(item)

    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]

    async def close(self):
        self.closed = True


async def _no_sleep(delay: float) -> None:
    return None


def stub_settings(**overrides: Any) -> Settings:
    values = {"min_request_interval": 0.0, "rate_limit_backoff": 0.0}
    values.update(overrides)
    return Settings(**values)


def make_selector(session: StubSession, settings: Settings, *, sleep=_no_sleep) -> EndpointSelector:
    async def _factory():
        return session

    return EndpointSelector(
        session_factory=_factory,
        timeout=settings.request_timeout,
        max_bytes=settings.max_response_bytes,
        rate_limit_backoff=settings.rate_limit_backoff,
        headers={"User-Agent": settings.user_agent},
        sleep=sleep,
    )


def make_adapter(cls, session: StubSession, settings: Settings | None = None, **kwargs: Any):
    settings = settings or stub_settings()
    return cls(
        settings,
        selector=make_selector(session, settings),
        gate=RequestGate(0.0, sleep=_no_sleep),
        **kwargs,
    )


def make_aggregator(session: StubSession, settings: Settings | None = None) -> ProtocolAggregator:
    settings = settings or stub_settings()
    return ProtocolAggregator(
        settings,
        pumpfun=make_adapter(PumpFunAdapter, session, settings),
        raydium=make_adapter(RaydiumAdapter, session, settings),
        meteora=make_adapter(MeteoraAdapter, session, settings),
        orca=make_adapter(OrcaAdapter, session, settings),
        moonit=make_adapter(MoonitAdapter, session, settings),
        jupiter=make_adapter(JupiterAdapter, session, settings),
        geckoterminal=make_adapter(GeckoTerminalAdapter, session, settings),
        dexscreener=make_adapter(DexScreenerAdapter, session, settings),
        price=make_adapter(PriceAdapter, session, settings),
        helius=make_adapter(HeliusAdapter, session, settings),
    )
