"""Runtime settings for the aggregation service.

Settings are validated with :mod:`pydantic` and may come from three places,
lowest precedence first: built-in defaults, a YAML or TOML file, and
environment variables.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator


def _env_float(name: str, default: float | None = None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except Exception:
        return default


def _env_int(name: str, default: int | None = None, *, minimum: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except Exception:
        return default
    if minimum is not None:
        value = max(minimum, value)
    return value


def _env_bool(name: str, default: bool | None = None) -> bool | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _env_str(name: str, default: str | None = None) -> str | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


class Settings(BaseModel):
    """Validated configuration for adapters, caches and the HTTP surface."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    # freshness windows (seconds)
    cache_ttl: float = 30.0
    detail_cache_ttl: float = 60.0
    cache_maxsize: int = 256

    # outbound requests
    request_timeout: float = 15.0
    slow_request_timeout: float = 30.0
    max_response_bytes: int = 10 * 1024 * 1024
    rate_limit_backoff: float = 2.0
    min_request_interval: float = 0.25
    user_agent: str = "tokenpulse/0.1 (+https://local)"

    # bonding curve estimation
    sol_price_usd: float = 137.0
    bonding_curve_target_sol: float = 69.0
    final_stretch_threshold: float = 0.9

    default_limit: int = 100

    jupiter_api_key: Optional[str] = None
    helius_rpc_url: Optional[str] = None

    pumpfun_base_url: str = "https://frontend-api-v3.pump.fun"
    pumpfun_advanced_url: str = "https://advanced-api-v2.pump.fun"
    geckoterminal_base_url: str = "https://api.geckoterminal.com/api/v2"
    dexscreener_base_url: str = "https://api.dexscreener.com"
    jupiter_base_url: str = "https://datapi.jup.ag"
    raydium_launchpad_url: str = "https://launch-mint-v1.raydium.io"
    raydium_api_url: str = "https://api.raydium.io"
    meteora_dlmm_url: str = "https://dlmm-api.meteora.ag"
    meteora_damm_url: str = "https://damm-api.meteora.ag"
    orca_api_url: str = "https://api.orca.so"
    moonit_api_url: str = "https://api.mintlp.io"
    moonshot_api_url: str = "https://api.moonshot.cc"
    coingecko_api_url: str = "https://api.coingecko.com/api/v3"
    jupiter_price_url: str = "https://lite-api.jup.ag/price/v2"

    log_level: str = "INFO"
    log_json: bool = False

    @field_validator(
        "cache_ttl",
        "detail_cache_ttl",
        "request_timeout",
        "slow_request_timeout",
        "sol_price_usd",
        "bonding_curve_target_sol",
    )
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("final_stretch_threshold")
    @classmethod
    def _threshold_in_range(cls, value: float) -> float:
        if not 0.0 < value < 1.0:
            raise ValueError("final_stretch_threshold must be between 0 and 1")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return str(value).strip().upper() or "INFO"

    @classmethod
    def from_env(cls, overrides: Mapping[str, Any] | None = None) -> "Settings":
        """Build settings from ``overrides`` with environment variables on top."""

        data: Dict[str, Any] = dict(overrides or {})
        env_values: Dict[str, Any] = {
            "cache_ttl": _env_float("TOKENPULSE_CACHE_TTL"),
            "detail_cache_ttl": _env_float("TOKENPULSE_DETAIL_CACHE_TTL"),
            "cache_maxsize": _env_int("TOKENPULSE_CACHE_MAXSIZE", minimum=1),
            "request_timeout": _env_float("TOKENPULSE_REQUEST_TIMEOUT"),
            "slow_request_timeout": _env_float("TOKENPULSE_SLOW_REQUEST_TIMEOUT"),
            "max_response_bytes": _env_int("TOKENPULSE_MAX_RESPONSE_BYTES", minimum=1),
            "rate_limit_backoff": _env_float("TOKENPULSE_RATE_LIMIT_BACKOFF"),
            "min_request_interval": _env_float("TOKENPULSE_MIN_REQUEST_INTERVAL"),
            "user_agent": _env_str("HTTP_USER_AGENT"),
            "sol_price_usd": _env_float("TOKENPULSE_SOL_PRICE_USD"),
            "bonding_curve_target_sol": _env_float("TOKENPULSE_CURVE_TARGET_SOL"),
            "final_stretch_threshold": _env_float("TOKENPULSE_FINAL_STRETCH_THRESHOLD"),
            "default_limit": _env_int("TOKENPULSE_DEFAULT_LIMIT", minimum=1),
            "jupiter_api_key": _env_str("JUPITER_API_KEY"),
            "helius_rpc_url": _env_str("HELIUS_RPC_URL"),
            "pumpfun_base_url": _env_str("PUMPFUN_BASE_URL"),
            "geckoterminal_base_url": _env_str("GECKOTERMINAL_BASE_URL"),
            "dexscreener_base_url": _env_str("DEXSCREENER_BASE_URL"),
            "jupiter_base_url": _env_str("JUPITER_DATA_URL"),
            "log_level": _env_str("LOG_LEVEL"),
            "log_json": _env_bool("TOKENPULSE_JSON_LOGS"),
        }
        for key, value in env_values.items():
            if value is not None:
                data[key] = value
        try:
            return cls(**data)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc


def _read_file(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    if suffix == ".toml":
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    elif suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    else:
        raise ValueError(f"unsupported config format: {path.suffix or path.name}")
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    section = data.get("tokenpulse")
    if isinstance(section, dict):
        return section
    return data


def load_settings(path: str | os.PathLike[str] | None = None) -> Settings:
    """Load settings from ``path`` (YAML or TOML) and the environment.

    ``TOKENPULSE_CONFIG`` is consulted when ``path`` is not given.  Raises
    ``ValueError`` when the file cannot be parsed or fails validation.
    """

    source = path or os.getenv("TOKENPULSE_CONFIG")
    file_data: Dict[str, Any] = {}
    if source:
        cfg_path = Path(source)
        if not cfg_path.exists():
            raise ValueError(f"config file not found: {cfg_path}")
        try:
            file_data = _read_file(cfg_path)
        except (tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
            raise ValueError(f"invalid config file {cfg_path}: {exc}") from exc
    return Settings.from_env(file_data)


__all__ = ["Settings", "load_settings"]
