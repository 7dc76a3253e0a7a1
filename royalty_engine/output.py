"""
Output Builder

Serializes a CalculationResult into the JSON-ready dict handed to the
statement-persistence and audit layers. Money is written as fixed two-place
strings so the audit record matches the Decimal result exactly.
"""

from decimal import Decimal
from typing import Optional

from .models import (
    AuthorSplitBreakdown,
    CalculationOutcome,
    CalculationResult,
    FormatCalculation,
    NetSales,
    TierBreakdown,
)
from .money import format_money


def _fmt_optional(value: Optional[Decimal]) -> Optional[str]:
    return format_money(value) if value is not None else None


class OutputBuilder:
    """Builds the final output response."""

    def build(self, result: CalculationResult) -> dict:
        """Construct the complete output dict for one calculation."""
        return {
            "title_id": result.title_id,
            "period": {
                "start_date": result.period.start_date,
                "end_date": result.period.end_date,
            },
            "title_total_royalty": format_money(result.title_total_royalty),
            "is_split_calculation": result.is_split_calculation,
            "total_recoupment": format_money(result.total_recoupment),
            "total_net_payable": format_money(result.total_net_payable),
            "author_splits": [self._build_author_split(s) for s in result.author_splits],
            "format_calculations": [self._build_format_calculation(f) for f in result.format_calculations],
            "recoupment_deltas": {
                contract_id: format_money(delta) for contract_id, delta in result.recoupment_deltas.items()
            },
        }

    def build_outcome(self, outcome: CalculationOutcome) -> dict:
        """Success carries the full result; failure carries the error code and message."""
        if outcome.success:
            return {"title_id": outcome.title_id, "status": "success", "result": self.build(outcome.result)}

        output = {
            "title_id": outcome.title_id,
            "status": "failed",
            "error_code": outcome.error_code,
            "error": outcome.message,
        }
        if outcome.missing_contract_authors:
            output["missing_contract_authors"] = list(outcome.missing_contract_authors)
        return output

    def _build_author_split(self, split: AuthorSplitBreakdown) -> dict:
        status = split.advance_status
        return {
            "contact_id": split.contact_id,
            "contract_id": split.contract_id,
            "ownership_percentage": str(split.ownership_percentage),
            "split_amount": format_money(split.split_amount),
            "recoupment": format_money(split.recoupment),
            "net_payable": format_money(split.net_payable),
            "advance_status": {
                "total_advance": format_money(status.total_advance),
                "previously_recouped": format_money(status.previously_recouped),
                "remaining_after_this_period": format_money(status.remaining_after_this_period),
            },
        }

    def _build_format_calculation(self, calc: FormatCalculation) -> dict:
        return {
            "format": calc.format,
            "net_sales": self._build_net_sales(calc.net_sales),
            "lifetime_units_before": calc.lifetime_units_before,
            "tier_breakdowns": [self._build_tier_breakdown(t) for t in calc.tier_breakdowns],
            "format_royalty": format_money(calc.format_royalty),
        }

    def _build_net_sales(self, net_sales: NetSales) -> dict:
        return {
            "gross_units": net_sales.gross_units,
            "returned_units": net_sales.returned_units,
            "signed_net_units": net_sales.signed_net_units,
            "net_units": net_sales.net_units,
            "is_negative_period": net_sales.is_negative_period,
            "gross_revenue": _fmt_optional(net_sales.gross_revenue),
            "returns_amount": format_money(net_sales.returns_amount),
            "net_revenue": _fmt_optional(net_sales.net_revenue),
        }

    def _build_tier_breakdown(self, tier: TierBreakdown) -> dict:
        return {
            "min_quantity": tier.min_quantity,
            "max_quantity": tier.max_quantity,
            "rate": str(tier.rate),
            "units_applied": tier.units_applied,
            "royalty_amount": format_money(tier.royalty_amount),
        }
