"""Shared helpers for decoding loosely-typed vendor payloads."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, MutableMapping, Sequence

WSOL_MINT = "So11111111111111111111111111111111111111112"
LAMPORTS_PER_SOL = 1_000_000_000

_PAYLOAD_KEYS: tuple[str, ...] = ("data", "coins", "tokens", "items", "results", "rows")


def first_present(entry: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """Return the first non-``None`` value among ``keys`` in precedence order."""

    for key in keys:
        if key in entry:
            value = entry[key]
            if value is not None:
                return value
    return None


def nested(entry: Any, *path: str) -> Any:
    current = entry
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        try:
            numeric = float(value.strip())
        except (TypeError, ValueError):
            return None
    elif isinstance(value, Mapping):
        for key in ("usd", "value", "price", "amount"):
            if key in value:
                return coerce_float(value.get(key))
        return None
    else:
        return None
    if math.isnan(numeric) or math.isinf(numeric):
        return None
    return numeric


def coerce_int(value: Any) -> int | None:
    numeric = coerce_float(value)
    if numeric is None:
        return None
    return int(numeric)


def coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        text = value.strip()
        return text or None
    return None


def coerce_bool(value: Any) -> bool:
    """Interpret an explicit vendor flag; anything unrecognised is ``False``."""

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return False


def parse_timestamp_ms(value: Any) -> int | None:
    """Return epoch milliseconds for seconds, milliseconds or ISO-8601 input."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        ts = float(value)
        if math.isnan(ts) or ts <= 0:
            return None
        if ts < 1e12:
            ts *= 1000.0
        return int(ts)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            numeric = float(raw)
        except (TypeError, ValueError):
            numeric = None
        if numeric is not None:
            return parse_timestamp_ms(numeric)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    return None


def extract_entries(
    payload: Any,
    keys: Sequence[str] = _PAYLOAD_KEYS,
) -> List[MutableMapping[str, Any]]:
    """Return the list of record mappings from a bare or wrapped payload.

    Wrappers are unwrapped recursively so ``{"data": {"rows": [...]}}`` works.
    """

    if isinstance(payload, Mapping):
        for key in keys:
            inner = payload.get(key)
            if isinstance(inner, (list, tuple)):
                return [item for item in inner if isinstance(item, MutableMapping)]
            if isinstance(inner, Mapping):
                found = extract_entries(inner, keys)
                if found:
                    return found
        return []
    if isinstance(payload, (list, tuple)):
        return [item for item in payload if isinstance(item, MutableMapping)]
    return []


def mint_from(value: Any) -> str | None:
    """Return a mint address from a string or an ``{address|mint|id}`` object."""

    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, Mapping):
        for key in ("address", "mint", "id"):
            candidate = value.get(key)
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
    return None


def non_sol_side(mint_a: str | None, mint_b: str | None) -> tuple[str, int] | None:
    """For a pool against SOL return ``(other_mint, other_index)``.

    ``None`` when neither side is wrapped SOL or both are.
    """

    if mint_a == WSOL_MINT and mint_b and mint_b != WSOL_MINT:
        return mint_b, 1
    if mint_b == WSOL_MINT and mint_a and mint_a != WSOL_MINT:
        return mint_a, 0
    return None


def sol_amount(value: Any) -> float | None:
    """Convert a lamport amount to SOL."""

    numeric = coerce_float(value)
    if numeric is None:
        return None
    return numeric / LAMPORTS_PER_SOL


__all__ = [
    "WSOL_MINT",
    "LAMPORTS_PER_SOL",
    "first_present",
    "nested",
    "coerce_float",
    "coerce_int",
    "coerce_str",
    "coerce_bool",
    "parse_timestamp_ms",
    "extract_entries",
    "mint_from",
    "non_sol_side",
    "sol_amount",
]
