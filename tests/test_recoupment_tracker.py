"""
Unit Tests for Recoupment Tracker
"""

from decimal import Decimal

import pytest

from royalty_engine.calculators.recoupment import RecoupmentTracker
from royalty_engine.models import Contract


def make_contract(advance_paid="0", advance_recouped="0"):
    return Contract(
        contract_id="C-1",
        contact_id="A",
        title_id="T-1",
        advance_paid=Decimal(advance_paid),
        advance_recouped=Decimal(advance_recouped),
    )


class TestRecoup:
    """Test recoupment against the unrecouped advance."""

    @pytest.fixture
    def tracker(self):
        return RecoupmentTracker()

    def test_no_advance_pays_everything(self, tracker):
        result = tracker.recoup(Decimal("600.00"), make_contract())

        assert result.recoupment == Decimal("0")
        assert result.net_payable == Decimal("600.00")

    def test_fully_recouped_author(self, tracker):
        """Advance 5,000 already recouped: split of 500 is paid in full."""
        result = tracker.recoup(Decimal("500.00"), make_contract("5000", "5000"))

        assert result.recoupment == Decimal("0")
        assert result.net_payable == Decimal("500.00")
        assert result.advance_status.remaining_after_this_period == Decimal("0")

    def test_partially_recouped_author(self, tracker):
        """Advance 2,000 with 1,800 recouped: 200 of a 500 split recoups, 300 is payable."""
        result = tracker.recoup(Decimal("500.00"), make_contract("2000", "1800"))

        assert result.recoupment == Decimal("200")
        assert result.net_payable == Decimal("300.00")
        assert result.advance_status.total_advance == Decimal("2000")
        assert result.advance_status.previously_recouped == Decimal("1800")
        assert result.advance_status.remaining_after_this_period == Decimal("0")

    def test_split_smaller_than_remaining_advance(self, tracker):
        result = tracker.recoup(Decimal("250.00"), make_contract("1000", "0"))

        assert result.recoupment == Decimal("250.00")
        assert result.net_payable == Decimal("0")
        assert result.advance_status.remaining_after_this_period == Decimal("750.00")

    def test_zero_split_leaves_advance_unchanged(self, tracker):
        result = tracker.recoup(Decimal("0"), make_contract("1000", "400"))

        assert result.recoupment == Decimal("0")
        assert result.net_payable == Decimal("0")
        assert result.advance_status.remaining_after_this_period == Decimal("600")

    def test_negative_split_never_reverses_recoupment(self, tracker):
        result = tracker.recoup(Decimal("-50.00"), make_contract("1000", "400"))

        assert result.recoupment == Decimal("0")
        assert result.net_payable == Decimal("0")


class TestMonotonicity:
    """Across periods, recouped advance never decreases and never overshoots."""

    @pytest.fixture
    def tracker(self):
        return RecoupmentTracker()

    def test_sequence_of_periods(self, tracker):
        contract = make_contract("1000", "0")
        history = [contract.advance_recouped]
        payables = []

        for split in ["300.00", "0", "500.00", "400.00", "150.00"]:
            remaining = contract.remaining_advance
            result = tracker.recoup(Decimal(split), contract)

            assert result.recoupment <= remaining
            assert result.recoupment + result.net_payable == max(Decimal(split), Decimal("0"))

            # Caller persists the proposed delta
            contract.advance_recouped += result.recoupment
            history.append(contract.advance_recouped)
            payables.append(result.net_payable)

        assert history == sorted(history)
        assert contract.advance_recouped == Decimal("1000.00")
        assert payables == [Decimal("0"), Decimal("0"), Decimal("0"), Decimal("200.00"), Decimal("150.00")]
