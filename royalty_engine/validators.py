"""
Input Validation for the Royalty Engine

Validates all input data before any arithmetic runs.
Raises typed errors (ValueError subclasses) with clear messages for any
constraint violation. Tier schedules are validated when they are built,
not here.
"""

from .calculators.splits import SplitApportioner
from .errors import InvalidInputError
from .models import CALCULATION_MODES, Contract, FormatSales, Period, TitleCalculationInput


class InputValidator:
    """Validates a title calculation input according to business rules."""

    def __init__(self):
        self._apportioner = SplitApportioner()

    def validate(self, input_data: TitleCalculationInput) -> None:
        """
        Run all validations. Raises on the first failed check.
        """
        if not input_data.title_id:
            raise InvalidInputError("title_id is required")

        self._validate_period(input_data.period)
        self._validate_sales(input_data.sales)
        for contract in input_data.contracts:
            # Contracts for other titles are never used, so they are not checked
            if contract.title_id == input_data.title_id:
                self._validate_contract(contract)
        self._validate_ownership(input_data)

    def _validate_period(self, period: Period) -> None:
        try:
            start, end = period.parsed()
        except (TypeError, ValueError):
            raise InvalidInputError(
                f"period dates must be YYYY-MM-DD, got: {period.start_date} to {period.end_date}"
            ) from None
        if start > end:
            raise InvalidInputError(f"period start_date {period.start_date} is after end_date {period.end_date}")

    def _validate_sales(self, sales: list[FormatSales]) -> None:
        seen = set()
        for entry in sales:
            if not entry.format:
                raise InvalidInputError("sales entry is missing its format")
            if entry.format in seen:
                raise InvalidInputError(f"duplicate sales entry for format: {entry.format}")
            seen.add(entry.format)

            if entry.units_sold < 0:
                raise InvalidInputError(f"units_sold cannot be negative for {entry.format}, got: {entry.units_sold}")
            if entry.units_returned_approved < 0:
                raise InvalidInputError(
                    f"units_returned_approved cannot be negative for {entry.format}, "
                    f"got: {entry.units_returned_approved}"
                )
            if entry.prior_lifetime_units_sold < 0:
                raise InvalidInputError(
                    f"prior_lifetime_units_sold cannot be negative for {entry.format}, "
                    f"got: {entry.prior_lifetime_units_sold}"
                )
            if entry.gross_revenue is not None and entry.gross_revenue < 0:
                raise InvalidInputError(
                    f"gross_revenue cannot be negative for {entry.format}, got: {entry.gross_revenue}"
                )
            if entry.returns_amount < 0:
                raise InvalidInputError(
                    f"returns_amount cannot be negative for {entry.format}, got: {entry.returns_amount}"
                )

    def _validate_contract(self, contract: Contract) -> None:
        if contract.calculation_mode not in CALCULATION_MODES:
            raise InvalidInputError(
                f"Invalid calculation_mode: {contract.calculation_mode}. "
                f"Must be one of {', '.join(CALCULATION_MODES)}"
            )

        if contract.advance_paid < 0:
            raise InvalidInputError(
                f"advance_paid cannot be negative on contract {contract.contract_id}, got: {contract.advance_paid}"
            )

        if contract.advance_recouped < 0:
            raise InvalidInputError(
                f"advance_recouped cannot be negative on contract {contract.contract_id}, "
                f"got: {contract.advance_recouped}"
            )

        if contract.advance_recouped > contract.advance_paid:
            raise InvalidInputError(
                f"advance_recouped ({contract.advance_recouped}) cannot exceed advance_paid "
                f"({contract.advance_paid}) on contract {contract.contract_id}"
            )

    def _validate_ownership(self, input_data: TitleCalculationInput) -> None:
        contact_ids = [entry.contact_id for entry in input_data.ownership]
        duplicates = sorted({c for c in contact_ids if contact_ids.count(c) > 1})
        if duplicates:
            raise InvalidInputError(f"duplicate ownership entries for: {', '.join(duplicates)}")

        primaries = [entry for entry in input_data.ownership if entry.is_primary]
        if len(primaries) > 1:
            raise InvalidInputError(
                f"only one primary author allowed, got: {', '.join(p.contact_id for p in primaries)}"
            )

        self._apportioner.check_ownership(input_data.ownership, input_data.title_id)
