"""
Error Types for the Royalty Engine

Every error carries a machine-readable ``code`` and the structured data
needed to present an actionable message. Calculation errors subclass
ValueError so API layers can treat them as validation failures; split
reconciliation is a defect and subclasses RuntimeError instead.
"""

from decimal import Decimal


class RoyaltyEngineError(Exception):
    """Base class for all royalty engine errors."""

    code: str = "ROYALTY_ENGINE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RoyaltyCalculationError(RoyaltyEngineError, ValueError):
    """A data problem that blocks the calculation for one title."""

    code: str = "ROYALTY_CALCULATION_ERROR"


class InvalidInputError(RoyaltyCalculationError):
    """Input values violate a basic constraint (negative counts, bad dates...)."""

    code: str = "INVALID_INPUT"


class InvalidTierScheduleError(RoyaltyCalculationError):
    """A tier schedule has gaps, overlaps or non-increasing bands."""

    code: str = "INVALID_TIER_SCHEDULE"

    def __init__(self, format: str | None, reason: str):
        self.format = format
        self.reason = reason
        label = f"'{format}'" if format else "(unnamed format)"
        super().__init__(f"Invalid tier schedule for format {label}: {reason}")


class ContractNotFoundError(RoyaltyCalculationError):
    """An author on the ownership roster has no contract for this title."""

    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contact_id: str, title_id: str, missing_contact_ids: tuple[str, ...] = ()):
        self.contact_id = contact_id
        self.title_id = title_id
        self.missing_contact_ids = missing_contact_ids or (contact_id,)
        message = f"Author {contact_id} has no active contract for title {title_id}"
        others = [c for c in self.missing_contact_ids if c != contact_id]
        if others:
            message += f" (also missing: {', '.join(others)})"
        super().__init__(message)


class OwnershipSumError(RoyaltyCalculationError):
    """Ownership percentages for a title do not sum to 100."""

    code: str = "OWNERSHIP_SUM_MISMATCH"

    def __init__(self, title_id: str | None, total: Decimal, detail: str | None = None):
        self.title_id = title_id
        self.total = total
        message = f"Ownership percentages must sum to 100, got {total}"
        if title_id:
            message += f" for title {title_id}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class SplitReconciliationError(RoyaltyEngineError, RuntimeError):
    """Apportioned splits do not sum to the total. Indicates a defect."""

    code: str = "SPLIT_RECONCILIATION_FAILED"

    def __init__(self, total: Decimal, split_sum: Decimal):
        self.total = total
        self.split_sum = split_sum
        super().__init__(
            f"Apportioned splits sum to {split_sum} but total royalty is {total} "
            f"(difference {split_sum - total})"
        )
