"""Flask surface over :class:`~tokenpulse.aggregator.ProtocolAggregator`.

Views submit their coroutines to one long-lived event loop running on a
daemon thread, so adapter caches, in-flight collapsing and the HTTP session
are shared by every request the app serves.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, List, TypeVar

from flask import Flask, Response, jsonify, request

from .aggregator import PUMPFUN_KINDS, SUPPORTED_PROTOCOLS, ProtocolAggregator
from .config import Settings
from .http import close_session
from .models import TokenStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_async(factory: Callable[[], Awaitable[T]]) -> T:
    """Run ``factory()`` on a fresh loop and release the loop's session."""

    async def _runner() -> T:
        try:
            return await factory()
        finally:
            await close_session()

    return asyncio.run(_runner())


class LoopRunner:
    """Own one event loop on a daemon thread and run coroutines on it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever, name="tokenpulse-loop", daemon=True
                )
                thread.start()
                self._loop, self._thread = loop, thread
            return self._loop

    def run(self, factory: Callable[[], Awaitable[T]], timeout: float | None = None) -> T:
        loop = self._ensure_loop()
        future = asyncio.run_coroutine_threadsafe(factory(), loop)
        return future.result(timeout)

    def close(self) -> None:
        """Close the loop's HTTP session and stop the thread."""

        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if loop is None:
            return
        try:
            asyncio.run_coroutine_threadsafe(close_session(), loop).result(timeout=5)
        finally:
            loop.call_soon_threadsafe(loop.stop)
            if thread is not None:
                thread.join(timeout=5)
            if not loop.is_running():
                loop.close()


def _split(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _limit(default: int) -> int:
    try:
        value = int(request.args.get("limit", default))
    except (TypeError, ValueError):
        return default
    return max(1, min(value, 500))


def _bad_request(message: str) -> tuple[Response, int]:
    return jsonify({"ok": False, "error": message}), 400


def create_app(
    aggregator: ProtocolAggregator | None = None,
    settings: Settings | None = None,
) -> Flask:
    """Return a configured Flask application bound to *aggregator*."""

    if aggregator is None:
        aggregator = ProtocolAggregator.from_settings(settings or Settings.from_env())
    settings = aggregator.settings
    list_max_age = int(settings.cache_ttl)

    runner = LoopRunner()

    app = Flask(__name__)
    app.config["AGGREGATOR"] = aggregator
    app.config["LOOP_RUNNER"] = runner

    @app.after_request
    def _headers(response: Response) -> Response:
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Cache-Control", "no-store")
        return response

    def _list_response(payload: dict) -> Response:
        response = jsonify(payload)
        response.headers["Cache-Control"] = f"public, max-age={list_max_age}"
        return response

    @app.get("/healthz")
    def healthz() -> Any:
        return jsonify({"ok": True, "protocols": list(SUPPORTED_PROTOCOLS)})

    @app.get("/api/tokens")
    def api_tokens() -> Any:
        protocols = _split(request.args.get("protocols"))
        if not protocols:
            return _bad_request("protocols is required")
        try:
            status = TokenStatus.parse(request.args.get("status"))
        except ValueError as exc:
            return _bad_request(str(exc))
        try:
            tokens = runner.run(lambda: aggregator.fetch_tokens_by_protocols(protocols, status))
        except Exception:
            logger.exception("token list failed for %s", ",".join(protocols))
            return jsonify({"ok": False, "tokens": [], "count": 0}), 500
        if "limit" in request.args:
            tokens = tokens[: _limit(settings.default_limit)]
        return _list_response(
            {
                "ok": True,
                "status": status.value if status else None,
                "count": len(tokens),
                "tokens": [token.as_dict() for token in tokens],
            }
        )

    @app.get("/api/tokens/<chain>/<address>")
    def api_token_details(chain: str, address: str) -> Any:
        try:
            details = runner.run(lambda: aggregator.fetch_token_details(chain, address))
        except ValueError as exc:
            return _bad_request(str(exc))
        except Exception:
            logger.exception("token details failed for %s/%s", chain, address)
            return jsonify({"ok": False, "error": "lookup failed"}), 500
        if not details.found:
            return jsonify({"ok": False, "error": "token not found", **details.as_dict()}), 404
        return jsonify({"ok": True, **details.as_dict()})

    @app.get("/api/pumpfun/tokens")
    def api_pumpfun_tokens() -> Any:
        kind = request.args.get("kind", "latest")
        if kind not in PUMPFUN_KINDS:
            return _bad_request(f"kind must be one of {', '.join(PUMPFUN_KINDS)}")
        limit = _limit(50)
        try:
            tokens = runner.run(lambda: aggregator.fetch_pumpfun_tokens(kind, limit))
        except Exception:
            logger.exception("pump.fun %s list failed", kind)
            return jsonify({"ok": False, "tokens": [], "count": 0}), 500
        return _list_response(
            {"ok": True, "kind": kind, "count": len(tokens), "tokens": [t.as_dict() for t in tokens]}
        )

    @app.get("/api/launchpads/stats")
    def api_launchpad_stats() -> Any:
        stats = runner.run(aggregator.fetch_launchpad_stats)
        if stats is None:
            return jsonify({"ok": False, "error": "stats unavailable"}), 502
        return jsonify({"ok": True, "stats": stats})

    @app.get("/api/wallets/<owner>/assets")
    def api_wallet_assets(owner: str) -> Any:
        if not settings.helius_rpc_url:
            return jsonify({"ok": False, "error": "wallet lookups are not configured"}), 503
        assets = runner.run(lambda: aggregator.fetch_wallet_assets(owner))
        if assets is None:
            return jsonify({"ok": False, "error": "wallet lookup failed"}), 502
        return jsonify({"ok": True, **assets.as_dict()})

    return app


__all__ = ["LoopRunner", "create_app", "run_async"]
