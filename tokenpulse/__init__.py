"""Multi-source memecoin token aggregation."""

from .aggregator import ProtocolAggregator
from .config import Settings, load_settings
from .models import ProtocolToken, TokenDetails, TokenMarketInfo, TokenStatus, WalletAssets
from .outcome import Empty, Failure, FailureKind, FetchOutcome, Success

__version__ = "0.1.0"

__all__ = [
    "ProtocolAggregator",
    "Settings",
    "load_settings",
    "ProtocolToken",
    "TokenDetails",
    "TokenMarketInfo",
    "TokenStatus",
    "WalletAssets",
    "Empty",
    "Failure",
    "FailureKind",
    "FetchOutcome",
    "Success",
]
