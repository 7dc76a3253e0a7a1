"""
Split Apportioner

Divides a title's royalty across co-authors by ownership percentage so the
splits always sum back to the total at the cent.
"""

from decimal import Decimal
from typing import Sequence

from ..errors import InvalidInputError, OwnershipSumError, SplitReconciliationError
from ..models import OwnershipEntry
from ..money import HUNDRED, ZERO, quantize_money


class SplitApportioner:
    """Apportions one monetary total across N ownership entries."""

    def apportion(
        self,
        total: Decimal,
        entries: Sequence[OwnershipEntry],
        title_id: str | None = None,
    ) -> list[Decimal]:
        """
        Return one split per entry, in input order.

        1. Zero or negative total: every split is zero.
        2. Each split = total × pct / 100, rounded half-up to the cent.
        3. Any rounding residual goes to the largest-percentage entry
           (first in input order among ties).
        4. The sum is re-verified before returning.
        """
        self.check_ownership(entries, title_id)

        if total <= 0:
            return [ZERO for _ in entries]

        if quantize_money(total) != total:
            raise InvalidInputError(f"total must be in whole cents to apportion, got: {total}")

        amounts = [quantize_money(total * entry.ownership_percentage / HUNDRED) for entry in entries]

        residual = total - sum(amounts, ZERO)
        if residual != 0:
            self._absorb_residual(amounts, entries, residual)

        split_sum = sum(amounts, ZERO)
        if split_sum != total:
            raise SplitReconciliationError(total, split_sum)

        return amounts

    def check_ownership(self, entries: Sequence[OwnershipEntry], title_id: str | None = None) -> None:
        """Percentages must each be in (0, 100] and sum to exactly 100."""
        if not entries:
            raise OwnershipSumError(title_id, ZERO, "no ownership entries")

        for entry in entries:
            pct = entry.ownership_percentage
            if not (ZERO < pct <= HUNDRED):
                raise OwnershipSumError(
                    title_id,
                    sum((e.ownership_percentage for e in entries), ZERO),
                    f"author {entry.contact_id} has ownership {pct}",
                )

        total_pct = sum((e.ownership_percentage for e in entries), ZERO)
        if total_pct != HUNDRED:
            raise OwnershipSumError(title_id, total_pct)

    def _absorb_residual(
        self, amounts: list[Decimal], entries: Sequence[OwnershipEntry], residual: Decimal
    ) -> None:
        # sorted() is stable, so ties keep input order
        order = sorted(range(len(entries)), key=lambda i: entries[i].ownership_percentage, reverse=True)

        largest = order[0]
        if amounts[largest] + residual >= 0:
            amounts[largest] += residual
            return

        # Only reachable for totals of a few cents over many authors: no split may go negative
        remaining = -residual
        for i in order:
            take = min(amounts[i], remaining)
            amounts[i] -= take
            remaining -= take
            if remaining == 0:
                break
