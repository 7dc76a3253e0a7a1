"""
ROYALTY SPLIT ENGINE
Tiered royalties, co-author apportionment and advance recoupment
"""

from .batch import BatchCalculator, BatchResult
from .errors import (
    ContractNotFoundError,
    InvalidInputError,
    InvalidTierScheduleError,
    OwnershipSumError,
    RoyaltyCalculationError,
    SplitReconciliationError,
)
from .models import CalculationOutcome, CalculationResult, TitleCalculationInput
from .processor import RoyaltyProcessor

__all__ = [
    'RoyaltyProcessor',
    'BatchCalculator',
    'BatchResult',
    'TitleCalculationInput',
    'CalculationResult',
    'CalculationOutcome',
    'RoyaltyCalculationError',
    'InvalidInputError',
    'InvalidTierScheduleError',
    'ContractNotFoundError',
    'OwnershipSumError',
    'SplitReconciliationError',
]
