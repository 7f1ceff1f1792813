"""Source adapters, one per upstream vendor."""

from .base import ProviderAdapter
from .coingecko import PriceAdapter
from .dexscreener import DexScreenerAdapter
from .geckoterminal import GeckoTerminalAdapter
from .helius import HeliusAdapter
from .jupiter import JupiterAdapter
from .meteora import MeteoraAdapter
from .moonit import MoonitAdapter
from .orca import OrcaAdapter
from .pumpfun import PumpFunAdapter
from .raydium import RaydiumAdapter

__all__ = [
    "ProviderAdapter",
    "PriceAdapter",
    "DexScreenerAdapter",
    "GeckoTerminalAdapter",
    "HeliusAdapter",
    "JupiterAdapter",
    "MeteoraAdapter",
    "MoonitAdapter",
    "OrcaAdapter",
    "PumpFunAdapter",
    "RaydiumAdapter",
]
