"""
Calculators Package

Provides the pure calculation components used by the royalty processor.
"""

from .net_sales import NetSalesResolver
from .recoupment import RecoupmentTracker
from .splits import SplitApportioner
from .tiers import TierRateApplier

__all__ = [
    "NetSalesResolver",
    "TierRateApplier",
    "SplitApportioner",
    "RecoupmentTracker",
]
