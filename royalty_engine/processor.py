"""
Royalty Processor - Main Orchestrator

Coordinates the royalty calculation pipeline through discrete, testable steps.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict

from .calculators import NetSalesResolver, RecoupmentTracker, SplitApportioner, TierRateApplier
from .errors import ContractNotFoundError, InvalidInputError, RoyaltyCalculationError, SplitReconciliationError
from .models import (
    LIFETIME_MODE,
    AuthorSplitBreakdown,
    CalculationOutcome,
    CalculationResult,
    Contract,
    FormatCalculation,
    FormatSales,
    OwnershipEntry,
    Period,
    ProcessingContext,
    Recoupment,
    TierApplication,
    TitleCalculationInput,
    window_for,
)
from .output import OutputBuilder
from .validators import InputValidator

logger = logging.getLogger(__name__)


class RoyaltyProcessor:
    """
    Main orchestrator for royalty calculation.

    Implements a clear pipeline pattern:
    1. Validate Input
    2. Resolve Contracts (by author AND title)
    3. Calculate Title Royalty (net sales + tiers per format, summed)
    4. Split & Recoup (single-author fast path, or apportion per author)
    5. Build Result

    Any failing step aborts the whole title: no author gets a result
    unless every author does.
    """

    def __init__(self):
        # Initialize all calculators
        self.validator = InputValidator()
        self.net_sales_resolver = NetSalesResolver()
        self.tier_applier = TierRateApplier()
        self.apportioner = SplitApportioner()
        self.recoupment_tracker = RecoupmentTracker()
        self.output_builder = OutputBuilder()

    def calculate(
        self,
        title_id: str,
        period: Period,
        sales: list[FormatSales],
        contracts: list[Contract],
        ownership: list[OwnershipEntry],
    ) -> CalculationResult:
        """Calculate one title's royalties for one period. Raises on failure."""
        return self.process(
            TitleCalculationInput(
                title_id=title_id,
                period=period,
                sales=list(sales),
                contracts=list(contracts),
                ownership=list(ownership),
            )
        )

    def process(self, input_data: TitleCalculationInput) -> CalculationResult:
        """
        Process a title through the complete pipeline.

        Args:
            input_data: TitleCalculationInput snapshot

        Returns:
            Immutable CalculationResult
        """
        # Step 1: Validate
        self.validator.validate(input_data)

        # Step 2: Resolve contracts and build context
        ctx = self._build_context(input_data)

        # Step 3: Title-level royalty across formats
        self._calculate_title_royalty(ctx)

        # Step 4: Split and recoup
        try:
            if ctx.is_split_calculation:
                self._apply_split_path(ctx)
            else:
                self._apply_single_author_path(ctx)
        except SplitReconciliationError:
            logger.error(
                f"Split reconciliation failed for title {input_data.title_id}: "
                f"total={ctx.title_total_royalty} input={input_data!r}",
                exc_info=True,
            )
            raise

        # Step 5: Build result
        result = CalculationResult(
            title_id=input_data.title_id,
            period=input_data.period,
            title_total_royalty=ctx.title_total_royalty,
            is_split_calculation=ctx.is_split_calculation,
            author_splits=tuple(ctx.author_splits),
            format_calculations=tuple(ctx.format_calculations),
        )

        logger.info(
            f"Calculated title {input_data.title_id} "
            f"({input_data.period.start_date} to {input_data.period.end_date}): "
            f"total={result.title_total_royalty} authors={len(result.author_splits)}"
        )
        return result

    def try_calculate(self, input_data: TitleCalculationInput) -> CalculationOutcome:
        """
        Like process(), but expected data problems come back as a failed outcome.

        SplitReconciliationError is a defect and still propagates.
        """
        try:
            return CalculationOutcome.ok(self.process(input_data))
        except RoyaltyCalculationError as e:
            logger.warning(f"Calculation blocked for title {input_data.title_id}: [{e.code}] {e}")
            return CalculationOutcome.failed(input_data.title_id, e)

    def process_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process a title from raw dictionary input.

        Convenience method for API usage.
        """
        input_data = TitleCalculationInput.from_dict(data)
        result = self.process(input_data)
        return self.output_builder.build(result)

    def _build_context(self, input_data: TitleCalculationInput) -> ProcessingContext:
        """Resolve every author's contract for this title before any arithmetic."""
        contracts_by_author = self._resolve_contracts(input_data)

        primary = next((e for e in input_data.ownership if e.is_primary), input_data.ownership[0])

        return ProcessingContext(
            input=input_data,
            contracts_by_author=contracts_by_author,
            primary_entry=primary,
        )

    def _resolve_contracts(self, input_data: TitleCalculationInput) -> dict[str, Contract]:
        """
        Match each ownership entry to the contract for THIS title.

        An author's contracts for other titles are never substituted.
        """
        title_id = input_data.title_id
        title_contracts: dict[str, Contract] = {}
        for contract in input_data.contracts:
            if contract.title_id != title_id:
                continue
            if contract.contact_id in title_contracts:
                raise InvalidInputError(
                    f"Author {contract.contact_id} has more than one contract for title {title_id}: "
                    f"{title_contracts[contract.contact_id].contract_id}, {contract.contract_id}"
                )
            title_contracts[contract.contact_id] = contract

        missing = tuple(e.contact_id for e in input_data.ownership if e.contact_id not in title_contracts)
        if missing:
            raise ContractNotFoundError(missing[0], title_id, missing)

        return {e.contact_id: title_contracts[e.contact_id] for e in input_data.ownership}

    def _calculate_title_royalty(self, ctx: ProcessingContext) -> None:
        """
        Net sales and tiers per format, summed into the title total.

        Formats come from the ledger plus every format the primary contract
        has a schedule for. Each format's contribution is floored at zero, so
        the total is never negative.
        """
        contract = ctx.primary_contract
        sales_by_format = {s.format: s for s in ctx.input.sales}
        formats = list(sales_by_format) + [f for f in contract.tier_schedules if f not in sales_by_format]

        total = Decimal("0")
        for format in formats:
            sales = sales_by_format.get(format) or FormatSales(format=format)
            net_sales = self.net_sales_resolver.resolve_format(sales)
            schedule = contract.schedule_for(format)

            if schedule is None:
                if net_sales.net_units > 0:
                    logger.warning(
                        f"Contract {contract.contract_id} has no tier schedule for format '{format}'; "
                        f"{net_sales.net_units} net units on title {ctx.input.title_id} earn no royalty"
                    )
                application = TierApplication()
            elif net_sales.is_negative_period:
                # Returns exceeded sales: this format earns zero, never a negative offset
                application = TierApplication()
            else:
                window = window_for(contract.calculation_mode, sales.prior_lifetime_units_sold)
                application = self.tier_applier.apply(
                    schedule, net_sales.net_units, window, net_revenue=net_sales.net_revenue
                )

            is_lifetime = contract.calculation_mode == LIFETIME_MODE
            ctx.format_calculations.append(
                FormatCalculation(
                    format=format,
                    net_sales=net_sales,
                    tier_breakdowns=application.breakdowns,
                    format_royalty=application.amount,
                    lifetime_units_before=sales.prior_lifetime_units_sold if is_lifetime else None,
                )
            )
            total += application.amount

        ctx.title_total_royalty = total

    def _apply_single_author_path(self, ctx: ProcessingContext) -> None:
        """One author at 100%: the split is the total, no apportionment."""
        entry = ctx.input.ownership[0]
        contract = ctx.contracts_by_author[entry.contact_id]
        recoupment = self.recoupment_tracker.recoup(ctx.title_total_royalty, contract)
        ctx.author_splits = [self._build_breakdown(entry, contract, ctx.title_total_royalty, recoupment)]

    def _apply_split_path(self, ctx: ProcessingContext) -> None:
        """Apportion across authors, then recoup each against their own advance."""
        amounts = self.apportioner.apportion(ctx.title_total_royalty, ctx.input.ownership, ctx.input.title_id)

        splits = []
        for entry, amount in zip(ctx.input.ownership, amounts):
            contract = ctx.contracts_by_author[entry.contact_id]
            recoupment = self.recoupment_tracker.recoup(amount, contract)
            splits.append(self._build_breakdown(entry, contract, amount, recoupment))
        ctx.author_splits = splits

    def _build_breakdown(
        self, entry: OwnershipEntry, contract: Contract, split_amount: Decimal, recoupment: Recoupment
    ) -> AuthorSplitBreakdown:
        return AuthorSplitBreakdown(
            contact_id=entry.contact_id,
            contract_id=contract.contract_id,
            ownership_percentage=entry.ownership_percentage,
            split_amount=split_amount,
            recoupment=recoupment.recoupment,
            net_payable=recoupment.net_payable,
            advance_status=recoupment.advance_status,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def process_title_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """Process one title from a Python dict and return a Python dict."""
    processor = RoyaltyProcessor()
    return processor.process_from_dict(input_data)


def process_title_from_json(json_input: str) -> str:
    """
    Process one title from a JSON string and return a JSON string.
    Errors come back as a JSON error body instead of raising.
    """
    try:
        input_data = json.loads(json_input)
        processor = RoyaltyProcessor()
        result = processor.process_from_dict(input_data)
        return json.dumps(result, indent=2)

    except RoyaltyCalculationError as e:
        error_response = {"error": str(e), "error_code": e.code, "status": "validation_failed"}
        return json.dumps(error_response, indent=2)

    except (ValueError, KeyError, TypeError) as e:
        error_response = {"error": str(e), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)

    except Exception as e:
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        error_response = {"error": str(e), "status": "failed"}
        return json.dumps(error_response, indent=2)
