"""
Recoupment Tracker

Offsets an author's royalty split against the unrecouped part of their advance.
"""

from decimal import Decimal

from ..models import AdvanceStatus, Contract, Recoupment
from ..money import ZERO


class RecoupmentTracker:
    """Computes recoupment and net payable for one author's split."""

    def recoup(self, split_amount: Decimal, contract: Contract) -> Recoupment:
        """
        Recoupment = min(split, remaining advance); Net Payable = split - recoupment.

        The result is a proposed delta for the caller to persist. Nothing here
        reads or writes storage, and a zero or negative split never reverses
        an advance that was already recouped.
        """
        remaining = contract.remaining_advance

        if split_amount > 0:
            recoupment = min(split_amount, remaining)
        else:
            recoupment = ZERO

        net_payable = max(ZERO, split_amount - recoupment)

        return Recoupment(
            recoupment=recoupment,
            net_payable=net_payable,
            advance_status=AdvanceStatus(
                total_advance=contract.advance_paid,
                previously_recouped=contract.advance_recouped,
                remaining_after_this_period=remaining - recoupment,
            ),
        )
