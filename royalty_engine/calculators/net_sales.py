"""
Net Sales Resolver

Combines a format's sales and approved returns into net units.
"""

from decimal import Decimal

from ..errors import InvalidInputError
from ..models import FormatSales, NetSales


class NetSalesResolver:
    """Resolves net units per format, applying the negative-period floor."""

    def resolve(
        self,
        units_sold: int,
        units_returned_approved: int,
        gross_revenue: Decimal | None = None,
        returns_amount: Decimal = Decimal("0"),
    ) -> NetSales:
        """
        Net units = units_sold - units_returned_approved.

        The signed value is kept on the result. When returns exceed sales the
        format is a negative period: it earns exactly zero and must not offset
        royalty earned on other formats.
        """
        if units_sold < 0:
            raise InvalidInputError(f"units_sold cannot be negative, got: {units_sold}")
        if units_returned_approved < 0:
            raise InvalidInputError(f"units_returned_approved cannot be negative, got: {units_returned_approved}")

        return NetSales(
            gross_units=units_sold,
            returned_units=units_returned_approved,
            gross_revenue=gross_revenue,
            returns_amount=returns_amount,
        )

    def resolve_format(self, sales: FormatSales) -> NetSales:
        return self.resolve(
            sales.units_sold,
            sales.units_returned_approved,
            gross_revenue=sales.gross_revenue,
            returns_amount=sales.returns_amount,
        )
