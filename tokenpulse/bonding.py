"""Bonding-curve progress estimation.

The fallback formulas are rough: a pump-style curve graduates after roughly
``bonding_curve_target_sol`` SOL has been deposited, so reserves (or market
cap converted at ``sol_price_usd``) give an approximate fill ratio.  Both
constants come from :class:`~tokenpulse.config.Settings`; the SOL price may be
refreshed at runtime.
"""

from __future__ import annotations

from typing import Optional

from .models import ProtocolToken


def clamp_progress(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def estimate_bonding_progress(
    token: ProtocolToken,
    *,
    target_sol: float,
    sol_price_usd: float,
) -> Optional[float]:
    """Return progress in ``[0, 1]`` or ``None`` when nothing can be derived.

    Precedence: migrated tokens are complete, then an explicit vendor value,
    then SOL reserves against the curve target, then market cap against the
    curve target priced in USD.
    """

    if token.is_migrated:
        return 1.0
    if token.bonding_progress is not None:
        return clamp_progress(token.bonding_progress)
    if token.sol_reserves is not None and target_sol > 0:
        return clamp_progress(token.sol_reserves / target_sol)
    if token.market_cap is not None and target_sol > 0 and sol_price_usd > 0:
        return clamp_progress(token.market_cap / (target_sol * sol_price_usd))
    return None


def with_progress(
    token: ProtocolToken,
    *,
    target_sol: float,
    sol_price_usd: float,
) -> ProtocolToken:
    """Return ``token`` with ``bonding_progress`` filled in where derivable."""

    if token.bonding_progress is not None or token.is_migrated:
        return token
    progress = estimate_bonding_progress(token, target_sol=target_sol, sol_price_usd=sol_price_usd)
    if progress is None:
        return token
    return token.replace(bonding_progress=progress)


__all__ = ["clamp_progress", "estimate_bonding_progress", "with_progress"]
