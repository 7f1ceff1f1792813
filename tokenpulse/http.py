from __future__ import annotations

import asyncio
import logging
import os
import weakref

import aiohttp
import orjson

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "tokenpulse/0.1 (+https://local)"


def dumps(obj: object, *, pretty: bool = False) -> bytes:
    """Serialize *obj* to JSON bytes using ``orjson``."""
    option = orjson.OPT_INDENT_2 if pretty else 0
    return orjson.dumps(obj, default=str, option=option)


def loads(data: str | bytes) -> object:
    """Deserialize JSON *data* using ``orjson``."""
    if isinstance(data, str):
        data = data.encode()
    return orjson.loads(data)


# Maintain a session per event loop to avoid cross-loop usage errors; the
# CLI runs a fresh loop per command while the Flask app keeps one loop.
_SESSIONS: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, aiohttp.ClientSession]" = (
    weakref.WeakKeyDictionary()
)


async def get_session() -> aiohttp.ClientSession:
    """Return an aiohttp session bound to the current event loop."""
    loop = asyncio.get_running_loop()
    sess = _SESSIONS.get(loop)
    if sess is None or getattr(sess, "closed", False):
        # Default headers with a friendly User-Agent to avoid 403s on some APIs
        ua = os.getenv("HTTP_USER_AGENT", DEFAULT_USER_AGENT)
        try:
            timeout_total = float(os.getenv("HTTP_TIMEOUT_SEC", "15") or 15)
        except ValueError:
            timeout_total = 15.0
        trust_env = str(os.getenv("HTTP_TRUST_ENV", "")).lower() in {"1", "true", "yes"}
        if trust_env:
            logger.info("HTTP session will honor proxy settings from the environment")
        sess = aiohttp.ClientSession(
            headers={"User-Agent": ua, "Accept": "application/json"},
            timeout=aiohttp.ClientTimeout(total=timeout_total),
            trust_env=trust_env,
        )
        _SESSIONS[loop] = sess
    return sess


async def close_session() -> None:
    """Close the session bound to the running loop and forget the others."""
    loop = asyncio.get_running_loop()
    current = _SESSIONS.pop(loop, None)
    if current is not None and not getattr(current, "closed", False):
        await current.close()


__all__ = ["dumps", "loads", "get_session", "close_session"]
