"""
Tests for the Batch Calculator

Each title succeeds or fails on its own.
"""

from decimal import Decimal

import pytest

from royalty_engine import BatchCalculator, RoyaltyProcessor
from royalty_engine.errors import SplitReconciliationError


def title_payload(title_id, units_sold=1000, authors=("A",), contracted=None):
    contracted = authors if contracted is None else contracted
    share = 100 // len(authors)
    ownership = [{"contact_id": a, "ownership_percentage": share} for a in authors]
    ownership[-1]["ownership_percentage"] += 100 - share * len(authors)
    return {
        "title_id": title_id,
        "period": {"start_date": "2025-01-01", "end_date": "2025-03-31"},
        "sales": [{"format": "hardcover", "units_sold": units_sold}],
        "contracts": [
            {
                "contract_id": f"C-{a}-{title_id}",
                "contact_id": a,
                "title_id": title_id,
                "tiers": [{"format": "hardcover", "min_quantity": 0, "rate": 0.10}],
            }
            for a in contracted
        ],
        "ownership": ownership,
    }


class TestBatchCalculator:
    """Test failure isolation and ordering."""

    @pytest.fixture
    def calculator(self):
        return BatchCalculator(max_workers=4)

    def test_all_titles_succeed(self, calculator):
        result = calculator.run_from_dicts([title_payload("T-1"), title_payload("T-2", units_sold=2000)])

        assert len(result.succeeded) == 2
        assert result.failed == []
        assert result.outcomes[1].result.title_total_royalty == Decimal("200.00")

    def test_missing_contract_fails_only_that_title(self, calculator):
        payloads = [
            title_payload("T-1"),
            title_payload("T-2", authors=("A", "B"), contracted=("A",)),
            title_payload("T-3"),
        ]

        result = calculator.run_from_dicts(payloads)

        assert [o.title_id for o in result.outcomes] == ["T-1", "T-2", "T-3"]
        assert [o.success for o in result.outcomes] == [True, False, True]
        failed = result.failed[0]
        assert failed.error_code == "CONTRACT_NOT_FOUND"
        assert failed.missing_contract_authors == ("B",)

    def test_unparseable_payload_fails_only_that_title(self, calculator):
        broken = title_payload("T-2")
        del broken["period"]

        result = calculator.run_from_dicts([title_payload("T-1"), broken, "not a title", title_payload("T-4")])

        assert [o.title_id for o in result.outcomes] == ["T-1", "T-2", "#2", "T-4"]
        assert [o.success for o in result.outcomes] == [True, False, False, True]
        assert result.outcomes[1].error_code == "INVALID_INPUT"
        assert result.outcomes[2].error_code == "INVALID_INPUT"

    def test_invalid_schedule_keeps_its_code(self, calculator):
        broken = title_payload("T-1")
        broken["contracts"][0]["tiers"] = [{"format": "hardcover", "min_quantity": 10, "rate": 0.1}]

        result = calculator.run_from_dicts([broken])

        assert result.outcomes[0].error_code == "INVALID_TIER_SCHEDULE"

    def test_sequential_matches_concurrent(self):
        payloads = [title_payload(f"T-{i}", units_sold=100 * i, authors=("A", "B", "C")) for i in range(1, 9)]

        concurrent = BatchCalculator(max_workers=4).run_from_dicts(payloads)
        sequential = BatchCalculator(max_workers=1).run_from_dicts(payloads)

        assert [o.result for o in concurrent.outcomes] == [o.result for o in sequential.outcomes]

    def test_reconciliation_defect_isolated(self, monkeypatch):
        processor = RoyaltyProcessor()

        def broken_apportion(total, entries, title_id=None):
            raise SplitReconciliationError(total, total + Decimal("0.01"))

        monkeypatch.setattr(processor.apportioner, "apportion", broken_apportion)
        calculator = BatchCalculator(processor=processor, max_workers=2)

        result = calculator.run_from_dicts([title_payload("T-1"), title_payload("T-2", authors=("A", "B"))])

        assert [o.success for o in result.outcomes] == [True, False]
        assert result.outcomes[1].error_code == "SPLIT_RECONCILIATION_FAILED"

    def test_empty_batch(self, calculator):
        result = calculator.run([])

        assert result.outcomes == ()

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            BatchCalculator(max_workers=0)


class TestBatchResultOutput:
    """Serialized batch output."""

    def test_to_dict(self):
        result = BatchCalculator(max_workers=2).run_from_dicts([
            title_payload("T-1"),
            title_payload("T-2", authors=("A", "B"), contracted=("A",)),
        ])

        output = result.to_dict()

        assert output["total_titles"] == 2
        assert output["succeeded"] == 1
        assert output["failed"] == 1
        assert output["results"][0]["status"] == "success"
        assert output["results"][0]["result"]["title_total_royalty"] == "100.00"
        assert output["results"][1] == {
            "title_id": "T-2",
            "status": "failed",
            "error_code": "CONTRACT_NOT_FOUND",
            "error": "Author B has no active contract for title T-2",
            "missing_contract_authors": ["B"],
        }
