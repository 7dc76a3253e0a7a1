"""
Batch Calculator

Runs one calculation per title across a catalog. Titles are independent,
so they run concurrently; a failure on one title is recorded against that
title only and never blocks the rest of the batch.

No retries, timeouts or persistence happen here. The caller persists each
successful title's statements and advance updates in one transaction.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import InvalidInputError, RoyaltyCalculationError, SplitReconciliationError
from .models import CalculationOutcome, TitleCalculationInput
from .output import OutputBuilder
from .processor import RoyaltyProcessor

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True)
class BatchResult:
    """Outcomes for every title, in input order."""

    outcomes: tuple[CalculationOutcome, ...]

    @property
    def succeeded(self) -> List[CalculationOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> List[CalculationOutcome]:
        return [o for o in self.outcomes if not o.success]

    def to_dict(self, output_builder: Optional[OutputBuilder] = None) -> Dict[str, Any]:
        builder = output_builder or OutputBuilder()
        return {
            "total_titles": len(self.outcomes),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "results": [builder.build_outcome(o) for o in self.outcomes],
        }


class BatchCalculator:
    """Calculates many titles with per-title failure isolation."""

    def __init__(self, processor: Optional[RoyaltyProcessor] = None, max_workers: int = DEFAULT_MAX_WORKERS):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got: {max_workers}")
        # Calculators hold no state, so one processor is shared by all workers
        self.processor = processor or RoyaltyProcessor()
        self.max_workers = max_workers

    def run(self, inputs: List[TitleCalculationInput]) -> BatchResult:
        """Calculate every title and collect the outcomes."""
        logger.info(f"Starting royalty batch for {len(inputs)} titles (max_workers={self.max_workers})")

        if self.max_workers == 1 or len(inputs) <= 1:
            outcomes = [self._run_one(input_data) for input_data in inputs]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes = list(pool.map(self._run_one, inputs))

        result = BatchResult(outcomes=tuple(outcomes))
        logger.info(
            f"Royalty batch finished: {len(result.succeeded)} succeeded, {len(result.failed)} failed"
        )
        return result

    def run_from_dicts(self, payloads: List[Dict[str, Any]]) -> BatchResult:
        """
        Parse and calculate raw title payloads.

        A payload that cannot be parsed fails for its own title only.
        """
        inputs: List[TitleCalculationInput] = []
        parse_failures: Dict[int, CalculationOutcome] = {}

        for index, payload in enumerate(payloads):
            try:
                inputs.append(TitleCalculationInput.from_dict(payload))
            except (RoyaltyCalculationError, KeyError, TypeError, ValueError) as e:
                title_id = payload.get("title_id", f"#{index}") if isinstance(payload, dict) else f"#{index}"
                if not isinstance(e, RoyaltyCalculationError):
                    e = InvalidInputError(f"Invalid payload: {e!r}")
                logger.warning(f"Could not parse title {title_id}: {e}")
                parse_failures[index] = CalculationOutcome.failed(title_id, e)

        calculated = iter(self.run(inputs).outcomes)
        outcomes = [parse_failures[i] if i in parse_failures else next(calculated) for i in range(len(payloads))]
        return BatchResult(outcomes=tuple(outcomes))

    def _run_one(self, input_data: TitleCalculationInput) -> CalculationOutcome:
        try:
            return self.processor.try_calculate(input_data)
        except SplitReconciliationError as e:
            # Defect: already logged with full input by the processor
            return CalculationOutcome.failed(input_data.title_id, e)
