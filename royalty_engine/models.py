"""
Domain Models for the Royalty Engine

These dataclasses provide type-safe representations of all business entities.
All monetary values and rates use Decimal for precision.

Input models mirror the snapshots handed over by the sales ledger, contract
store and ownership roster. Output models are frozen: a CalculationResult is
created once per call and never mutated.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from .errors import InvalidInputError, InvalidTierScheduleError
from .money import ZERO, to_decimal, to_units

PERIOD_MODE = "period"
LIFETIME_MODE = "lifetime"
CALCULATION_MODES = (PERIOD_MODE, LIFETIME_MODE)


# =============================================================================
# TIER SCHEDULES
# =============================================================================


@dataclass(frozen=True)
class TierBand:
    """A single band in a tier schedule. The band runs until the next one starts."""

    min_quantity: int
    rate: Decimal


@dataclass(frozen=True)
class TierSchedule:
    """
    Ordered, gap-free rate bands for one sales format.

    Bands start at 0 or 1 and have strictly increasing ``min_quantity``; the
    last band is open-ended. A schedule starting at 1 counts units 1-based,
    so band positions are shifted down by one. Validation runs once here,
    never per calculation.
    """

    bands: tuple[TierBand, ...]
    format: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "bands", tuple(self.bands))
        self._validate()

    def _validate(self) -> None:
        if not self.bands:
            raise InvalidTierScheduleError(self.format, "schedule has no bands")

        first = self.bands[0].min_quantity
        if first not in (0, 1):
            raise InvalidTierScheduleError(
                self.format, f"first band must start at 0 or 1, got {first} (gap below it)"
            )

        previous = None
        for i, band in enumerate(self.bands):
            if not (ZERO <= band.rate <= 1):
                raise InvalidTierScheduleError(self.format, f"band {i} rate must be between 0 and 1, got {band.rate}")
            if previous is not None and band.min_quantity <= previous:
                raise InvalidTierScheduleError(
                    self.format,
                    f"band {i} min_quantity {band.min_quantity} must be greater than {previous}",
                )
            previous = band.min_quantity

    @property
    def offset(self) -> int:
        return self.bands[0].min_quantity

    def position_ranges(self) -> list[tuple[int, int | None, TierBand]]:
        """Half-open ``[start, end)`` unit positions per band; ``end`` None is open-ended."""
        ranges = []
        for i, band in enumerate(self.bands):
            start = 0 if i == 0 else band.min_quantity - self.offset
            if i + 1 < len(self.bands):
                end = self.bands[i + 1].min_quantity - self.offset
            else:
                end = None
            ranges.append((start, end, band))
        return ranges

    def max_quantity_of(self, index: int) -> int | None:
        """Inclusive upper bound of a band as the contract store records it."""
        if index + 1 >= len(self.bands):
            return None
        return self.bands[index + 1].min_quantity - 1

    @classmethod
    def from_dict(cls, tiers: list[dict], format: str | None = None) -> "TierSchedule":
        """
        Build a schedule from contract-store rows.

        Rows may carry an inclusive ``max_quantity``. When present the next
        band must start exactly one unit later; only the last row may set it
        to null. A row without the key ends where the next band starts.
        """
        bands = []
        for tier in tiers:
            try:
                min_quantity = to_units(tier["min_quantity"], "min_quantity")
                rate = to_decimal(tier["rate"], "rate")
            except KeyError as e:
                raise InvalidTierScheduleError(format, f"tier is missing {e}") from None
            except InvalidInputError as e:
                raise InvalidTierScheduleError(format, e.message) from None
            if min_quantity < 0:
                raise InvalidTierScheduleError(format, f"min_quantity cannot be negative, got {min_quantity}")
            has_max = "max_quantity" in tier
            max_raw = tier.get("max_quantity")
            max_quantity = to_units(max_raw, "max_quantity") if max_raw is not None else None
            bands.append((min_quantity, max_quantity, rate, has_max))

        bands.sort(key=lambda b: b[0])

        for i, (min_quantity, max_quantity, _, has_max) in enumerate(bands):
            is_last = i == len(bands) - 1
            if not has_max:
                continue
            if max_quantity is None:
                if not is_last:
                    raise InvalidTierScheduleError(
                        format, f"only the last band may be open-ended (band starting at {min_quantity})"
                    )
                continue
            if max_quantity < min_quantity:
                raise InvalidTierScheduleError(
                    format, f"band starting at {min_quantity} ends before it starts ({max_quantity})"
                )
            if is_last:
                raise InvalidTierScheduleError(format, f"schedule does not cover quantities above {max_quantity}")
            next_min = bands[i + 1][0]
            if next_min > max_quantity + 1:
                raise InvalidTierScheduleError(format, f"gap between {max_quantity} and {next_min}")
            if next_min < max_quantity + 1:
                raise InvalidTierScheduleError(
                    format, f"band starting at {next_min} overlaps band ending at {max_quantity}"
                )

        return cls(bands=tuple(TierBand(min_quantity=b[0], rate=b[2]) for b in bands), format=format)


# =============================================================================
# TIER WINDOWS (calculation mode)
# =============================================================================


@dataclass(frozen=True)
class PeriodWindow:
    """Period mode: tiers restart from zero every period."""

    def bounds(self, period_units: int) -> tuple[int, int]:
        return 0, period_units


@dataclass(frozen=True)
class LifetimeWindow:
    """Lifetime mode: the period's units start where lifetime sales left off."""

    prior_units: int = 0

    def bounds(self, period_units: int) -> tuple[int, int]:
        return self.prior_units, self.prior_units + period_units


TierWindow = PeriodWindow | LifetimeWindow


def window_for(calculation_mode: str, prior_lifetime_units: int) -> TierWindow:
    """Map a contract's calculation mode to the window the tier applier consumes."""
    if calculation_mode == LIFETIME_MODE:
        return LifetimeWindow(prior_units=prior_lifetime_units)
    if calculation_mode == PERIOD_MODE:
        return PeriodWindow()
    raise InvalidInputError(
        f"Invalid calculation_mode: {calculation_mode}. Must be one of {', '.join(CALCULATION_MODES)}"
    )


# =============================================================================
# INPUT MODELS
# =============================================================================


def _flag(value, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidInputError(f"{field_name} must be true or false, got: {value!r}")
    return value


@dataclass(frozen=True)
class Period:
    """Reporting period, inclusive on both ends."""

    start_date: str
    end_date: str

    @classmethod
    def from_dict(cls, data: dict) -> "Period":
        return cls(start_date=data["start_date"], end_date=data["end_date"])

    def parsed(self) -> tuple[datetime, datetime]:
        return (
            datetime.strptime(self.start_date, "%Y-%m-%d"),
            datetime.strptime(self.end_date, "%Y-%m-%d"),
        )


@dataclass
class FormatSales:
    """Ledger totals for one sales format in one period."""

    format: str
    units_sold: int = 0
    units_returned_approved: int = 0
    prior_lifetime_units_sold: int = 0
    gross_revenue: Decimal | None = None  # None = unit-based royalty basis
    returns_amount: Decimal = Decimal("0")

    @classmethod
    def from_dict(cls, data: dict) -> "FormatSales":
        revenue = data.get("gross_revenue")
        return cls(
            format=data["format"],
            units_sold=to_units(data.get("units_sold", 0), "units_sold"),
            units_returned_approved=to_units(data.get("units_returned_approved", 0), "units_returned_approved"),
            prior_lifetime_units_sold=to_units(
                data.get("prior_lifetime_units_sold", 0), "prior_lifetime_units_sold"
            ),
            gross_revenue=to_decimal(revenue, "gross_revenue") if revenue is not None else None,
            returns_amount=to_decimal(data.get("returns_amount", 0), "returns_amount"),
        )


@dataclass
class Contract:
    """One author's contract for one title."""

    contract_id: str
    contact_id: str
    title_id: str
    tier_schedules: dict[str, TierSchedule] = field(default_factory=dict)
    calculation_mode: str = PERIOD_MODE
    advance_paid: Decimal = Decimal("0")
    advance_recouped: Decimal = Decimal("0")

    @property
    def remaining_advance(self) -> Decimal:
        return max(ZERO, self.advance_paid - self.advance_recouped)

    def schedule_for(self, format: str) -> TierSchedule | None:
        return self.tier_schedules.get(format)

    @classmethod
    def from_dict(cls, data: dict) -> "Contract":
        # Flat contract-store rows carry their format; group them per schedule
        rows_by_format: dict[str, list[dict]] = {}
        for tier in data.get("tiers", []):
            rows_by_format.setdefault(tier.get("format"), []).append(tier)
        for format, rows in data.get("tier_schedules", {}).items():
            rows_by_format.setdefault(format, []).extend(rows)

        if None in rows_by_format:
            raise InvalidTierScheduleError(None, "tier row is missing its format")

        schedules = {
            format: TierSchedule.from_dict(rows, format=format) for format, rows in rows_by_format.items()
        }
        return cls(
            contract_id=data["contract_id"],
            contact_id=data["contact_id"],
            title_id=data["title_id"],
            tier_schedules=schedules,
            calculation_mode=data.get("calculation_mode", PERIOD_MODE),
            advance_paid=to_decimal(data.get("advance_paid", 0), "advance_paid"),
            advance_recouped=to_decimal(data.get("advance_recouped", 0), "advance_recouped"),
        )


@dataclass
class OwnershipEntry:
    """An author's ownership share of a title."""

    contact_id: str
    ownership_percentage: Decimal
    is_primary: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "OwnershipEntry":
        return cls(
            contact_id=data["contact_id"],
            ownership_percentage=to_decimal(data["ownership_percentage"], "ownership_percentage"),
            is_primary=_flag(data.get("is_primary", False), "is_primary"),
        )


@dataclass
class TitleCalculationInput:
    """Complete input for calculating one title's royalties for one period."""

    title_id: str
    period: Period
    sales: list[FormatSales] = field(default_factory=list)
    contracts: list[Contract] = field(default_factory=list)
    ownership: list[OwnershipEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "TitleCalculationInput":
        return cls(
            title_id=data["title_id"],
            period=Period.from_dict(data["period"]),
            sales=[FormatSales.from_dict(s) for s in data.get("sales", [])],
            contracts=[Contract.from_dict(c) for c in data.get("contracts", [])],
            ownership=[OwnershipEntry.from_dict(o) for o in data.get("ownership", [])],
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass(frozen=True)
class NetSales:
    """Net sales for one format after approved returns."""

    gross_units: int
    returned_units: int
    gross_revenue: Decimal | None = None
    returns_amount: Decimal = Decimal("0")

    @property
    def signed_net_units(self) -> int:
        return self.gross_units - self.returned_units

    @property
    def net_units(self) -> int:
        """Units used for band selection, floored at zero."""
        return max(0, self.signed_net_units)

    @property
    def is_negative_period(self) -> bool:
        return self.signed_net_units < 0

    @property
    def net_revenue(self) -> Decimal | None:
        if self.gross_revenue is None:
            return None
        return max(ZERO, self.gross_revenue - self.returns_amount)


@dataclass(frozen=True)
class TierBreakdown:
    """Units and royalty attributed to one band."""

    min_quantity: int
    max_quantity: int | None
    rate: Decimal
    units_applied: int
    royalty_amount: Decimal


@dataclass(frozen=True)
class TierApplication:
    """Result of applying a schedule to one format's units."""

    breakdowns: tuple[TierBreakdown, ...] = ()
    amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class FormatCalculation:
    """Per-format audit trail."""

    format: str
    net_sales: NetSales
    tier_breakdowns: tuple[TierBreakdown, ...]
    format_royalty: Decimal
    lifetime_units_before: int | None = None  # Set only in lifetime mode


@dataclass(frozen=True)
class AdvanceStatus:
    total_advance: Decimal
    previously_recouped: Decimal
    remaining_after_this_period: Decimal


@dataclass(frozen=True)
class Recoupment:
    """Proposed recoupment for one author's split. Never persisted here."""

    recoupment: Decimal
    net_payable: Decimal
    advance_status: AdvanceStatus


@dataclass(frozen=True)
class AuthorSplitBreakdown:
    contact_id: str
    contract_id: str
    ownership_percentage: Decimal
    split_amount: Decimal
    recoupment: Decimal
    net_payable: Decimal
    advance_status: AdvanceStatus


@dataclass
class ProcessingContext:
    """
    Holds all intermediate state during one title's calculation.
    This is the "bag" that flows through the pipeline; it never escapes it.
    """

    # Input (immutable during processing)
    input: TitleCalculationInput
    contracts_by_author: dict[str, Contract] = field(default_factory=dict)
    primary_entry: OwnershipEntry | None = None

    # Step results (populated as we go)
    format_calculations: list[FormatCalculation] = field(default_factory=list)
    title_total_royalty: Decimal = Decimal("0")
    author_splits: list[AuthorSplitBreakdown] = field(default_factory=list)

    @property
    def primary_contract(self) -> Contract:
        return self.contracts_by_author[self.primary_entry.contact_id]

    @property
    def is_split_calculation(self) -> bool:
        return len(self.input.ownership) > 1


@dataclass(frozen=True)
class CalculationResult:
    """
    Final, immutable output of one title/period calculation.

    ``recoupment_deltas`` is what the caller adds to each contract's
    ``advance_recouped`` inside the same transaction that stores statements.
    """

    title_id: str
    period: Period
    title_total_royalty: Decimal
    is_split_calculation: bool
    author_splits: tuple[AuthorSplitBreakdown, ...]
    format_calculations: tuple[FormatCalculation, ...] = ()

    @property
    def total_recoupment(self) -> Decimal:
        return sum((s.recoupment for s in self.author_splits), ZERO)

    @property
    def total_net_payable(self) -> Decimal:
        return sum((s.net_payable for s in self.author_splits), ZERO)

    @property
    def recoupment_deltas(self) -> dict[str, Decimal]:
        return {s.contract_id: s.recoupment for s in self.author_splits}


@dataclass(frozen=True)
class CalculationOutcome:
    """
    Success value or named failure for one title.

    Expected business failures (missing contract, bad schedule, ownership
    mismatch, invalid input) are reported here instead of raised.
    """

    title_id: str
    success: bool
    result: CalculationResult | None = None
    error_code: str | None = None
    message: str | None = None
    missing_contract_authors: tuple[str, ...] = ()

    @classmethod
    def ok(cls, result: CalculationResult) -> "CalculationOutcome":
        return cls(title_id=result.title_id, success=True, result=result)

    @classmethod
    def failed(cls, title_id: str, error: Exception) -> "CalculationOutcome":
        missing = tuple(getattr(error, "missing_contact_ids", ()))
        return cls(
            title_id=title_id,
            success=False,
            error_code=getattr(error, "code", "FAILED"),
            message=str(error),
            missing_contract_authors=missing,
        )
