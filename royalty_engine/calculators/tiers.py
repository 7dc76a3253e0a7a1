"""
Tier Rate Applier

Applies a tiered (escalating) rate schedule to a band of units.
All use Decimal for precision with ROUND_HALF_UP rounding.
"""

from decimal import Decimal

from ..errors import InvalidInputError
from ..models import PeriodWindow, TierApplication, TierBreakdown, TierSchedule, TierWindow
from ..money import ZERO, quantize_money


class TierRateApplier:
    """Calculates royalty for a period's units against a tier schedule."""

    def apply(
        self,
        schedule: TierSchedule,
        period_units: int,
        window: TierWindow = PeriodWindow(),
        net_revenue: Decimal | None = None,
    ) -> TierApplication:
        """
        Apply the schedule to ``period_units``.

        The window places the units on the schedule: ``[0, n)`` in period
        mode, ``[prior, prior + n)`` in lifetime mode. Each band earns on its
        overlap with that range, so a period crossing a lifetime threshold is
        split across both rates. Prior lifetime units only pick the starting
        band; they never earn royalty themselves.

        Basis per band:
        - units:   overlap × rate
        - revenue: overlap / period_units × net_revenue × rate
        """
        if period_units < 0:
            raise InvalidInputError(f"period_units cannot be negative, got: {period_units}")
        if period_units == 0:
            return TierApplication()

        start, end = window.bounds(period_units)
        if start < 0:
            raise InvalidInputError(f"prior lifetime units cannot be negative, got: {start}")

        breakdowns = []
        amount = ZERO

        for index, (band_start, band_end, band) in enumerate(schedule.position_ranges()):
            # Band lies entirely before the window
            if band_end is not None and band_end <= start:
                continue
            # Band and everything after it lies beyond the window
            if band_start >= end:
                break

            upper = end if band_end is None else min(end, band_end)
            overlap = upper - max(start, band_start)
            if overlap <= 0:
                continue

            exact = self._band_royalty(overlap, band.rate, period_units, net_revenue)
            breakdowns.append(
                TierBreakdown(
                    min_quantity=band.min_quantity,
                    max_quantity=schedule.max_quantity_of(index),
                    rate=band.rate,
                    units_applied=overlap,
                    royalty_amount=quantize_money(exact),
                )
            )
            amount += exact

        # Bands add up unrounded; the format total is rounded once
        return TierApplication(breakdowns=tuple(breakdowns), amount=quantize_money(amount))

    def _band_royalty(
        self, units: int, rate: Decimal, period_units: int, net_revenue: Decimal | None
    ) -> Decimal:
        if net_revenue is None:
            return Decimal(units) * rate
        # Multiply before dividing so the only inexact step is the last one
        return Decimal(units) * net_revenue * rate / Decimal(period_units)
