"""
Projection engine for the Medicare Part D coverage gap estimator.

Walks one plan year month by month through the three payer phases:
  Initial Coverage  ->  Coverage Gap (donut hole)  ->  Catastrophic Coverage

The phase that prices a month is decided by the retail spend accumulated
before that month's fills; the entry-month markers look ahead to the spend
after them. ``project_grid`` runs the same twelve-step loop over a numpy
array of monthly costs so that sweeps are vectorised; the month loop
(12 steps) is a plain Python loop.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

import config as cfg

logger = logging.getLogger(__name__)


class InvalidInput(ValueError):
    """Raised when projection inputs violate a precondition."""


def _require_positive(label: str, value: float) -> None:
    if not math.isfinite(value) or value <= 0:
        raise InvalidInput(f"{label} must be a positive number, got {value!r}")


def _require_fraction(label: str, value: float) -> None:
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        raise InvalidInput(f"{label} must be between 0 and 1, got {value!r}")


# ─── Data Classes ─────────────────────────────────────────────────────

@dataclass
class DrugCost:
    """One recurring medication."""

    name: str
    monthly_cost: float          # full retail cost per month

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidInput("Drug name is required")
        _require_positive(f"Monthly cost for {self.name}", self.monthly_cost)


@dataclass
class PlanParameters:
    """Plan limits for one simulated year."""

    initial_coverage_limit: float       # retail spend that opens the gap
    catastrophic_coverage_limit: float  # retail spend that ends the gap
    coverage_gap_discount_percent: float  # 0-100, discount while in the gap
    initial_coinsurance: float = cfg.INITIAL_COINSURANCE
    catastrophic_coinsurance: float = cfg.CATASTROPHIC_COINSURANCE

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        _require_positive("Initial coverage limit", self.initial_coverage_limit)
        _require_positive("Catastrophic coverage limit", self.catastrophic_coverage_limit)
        discount = self.coverage_gap_discount_percent
        if not math.isfinite(discount) or not 0 <= discount <= 100:
            raise InvalidInput(
                f"Coverage gap discount must be between 0 and 100, got {discount!r}"
            )
        _require_fraction("Initial coinsurance", self.initial_coinsurance)
        _require_fraction("Catastrophic coinsurance", self.catastrophic_coinsurance)

    @property
    def gap_coinsurance(self) -> float:
        return 1 - self.coverage_gap_discount_percent / 100

    def coinsurance(self, phase: str) -> float:
        """Patient share of retail cost while in *phase*."""
        if phase == cfg.PHASE_CATASTROPHIC:
            return self.catastrophic_coinsurance
        if phase == cfg.PHASE_GAP:
            return self.gap_coinsurance
        return self.initial_coinsurance


@dataclass
class MonthRecord:
    """One simulated month."""

    month: int                       # 1..12
    phase: str                       # one of cfg.PHASES
    out_of_pocket: float             # patient cost this month
    retail_cost: float               # total drug cost dispensed this month
    cumulative_retail_spend: float   # retail spend after this month's fills

    @property
    def phase_label(self) -> str:
        return cfg.PHASE_LABELS[self.phase]


@dataclass
class ProjectionResult:
    """Output of one projection run."""

    plan: PlanParameters
    total_monthly_cost: float
    monthly_records: list[MonthRecord]
    gap_entry_month: Optional[int]           # None if the gap is never reached
    catastrophic_entry_month: Optional[int]  # None if never reached
    annual_out_of_pocket: float

    @property
    def annual_retail_cost(self) -> float:
        return self.total_monthly_cost * cfg.MONTHS_PER_YEAR

    @property
    def plan_paid(self) -> float:
        return max(self.annual_retail_cost - self.annual_out_of_pocket, 0.0)

    def months_in_phase(self, phase: str) -> int:
        return sum(1 for r in self.monthly_records if r.phase == phase)


@dataclass
class GridResult:
    """Vectorised projection over many monthly costs.

    Per-month arrays have shape (12, n_costs); per-cost arrays (n_costs,).
    Entry months are NaN where the threshold is never crossed.
    """

    monthly_costs: np.ndarray = field(repr=False)
    phase_codes: np.ndarray = field(repr=False)     # index into cfg.PHASES
    out_of_pocket: np.ndarray = field(repr=False)
    annual_out_of_pocket: np.ndarray = field(repr=False)
    gap_entry_month: np.ndarray = field(repr=False)
    catastrophic_entry_month: np.ndarray = field(repr=False)


# ─── Validation ───────────────────────────────────────────────────────

def validate_limit_order(plan: PlanParameters) -> None:
    """Caller-side check that the catastrophic limit sits above the initial one.

    ``project`` itself does not enforce this; form handlers call it before
    invoking the projector.
    """
    if plan.catastrophic_coverage_limit <= plan.initial_coverage_limit:
        raise InvalidInput(
            "Catastrophic coverage limit must be greater than the "
            "initial coverage limit"
        )


def _validate_inputs(drugs: Sequence[DrugCost], plan: PlanParameters) -> None:
    if not drugs:
        raise InvalidInput("Please add at least one drug")
    for drug in drugs:
        drug.validate()
    plan.validate()


def _phase_for(cumulative: float, plan: PlanParameters) -> str:
    if cumulative >= plan.catastrophic_coverage_limit:
        return cfg.PHASE_CATASTROPHIC
    if cumulative >= plan.initial_coverage_limit:
        return cfg.PHASE_GAP
    return cfg.PHASE_INITIAL


# ─── Core Projection ──────────────────────────────────────────────────

def project(drugs: Sequence[DrugCost], plan: PlanParameters) -> ProjectionResult:
    """Project twelve months of out-of-pocket drug costs.

    Parameters
    ----------
    drugs : sequence of DrugCost
        At least one drug; each monthly cost is held constant all year.
    plan : PlanParameters
        Coverage limits and gap discount. The ordering of the two limits
        is not checked here (see ``validate_limit_order``).

    Returns
    -------
    ProjectionResult
        Monthly records, phase entry months and the annual total.

    Raises
    ------
    InvalidInput
        If the drug list is empty or any value is out of range.
    """
    _validate_inputs(drugs, plan)

    total_monthly_cost = sum(d.monthly_cost for d in drugs)
    cumulative = 0.0
    gap_entry: Optional[int] = None
    catastrophic_entry: Optional[int] = None
    records: list[MonthRecord] = []

    for month in range(1, cfg.MONTHS_PER_YEAR + 1):
        # Pricing uses spend through the end of last month
        phase = _phase_for(cumulative, plan)
        out_of_pocket = total_monthly_cost * plan.coinsurance(phase)

        # Markers use spend after this month's fills
        projected = cumulative + total_monthly_cost
        if gap_entry is None and projected > plan.initial_coverage_limit:
            gap_entry = month
            logger.debug("Coverage gap reached in month %d", month)
        if catastrophic_entry is None and projected > plan.catastrophic_coverage_limit:
            catastrophic_entry = month
            logger.debug("Catastrophic coverage reached in month %d", month)

        cumulative = projected
        records.append(MonthRecord(
            month=month,
            phase=phase,
            out_of_pocket=out_of_pocket,
            retail_cost=total_monthly_cost,
            cumulative_retail_spend=cumulative,
        ))

    annual = sum(r.out_of_pocket for r in records)

    return ProjectionResult(
        plan=plan,
        total_monthly_cost=total_monthly_cost,
        monthly_records=records,
        gap_entry_month=gap_entry,
        catastrophic_entry_month=catastrophic_entry,
        annual_out_of_pocket=annual,
    )


def project_grid(monthly_costs, plan: PlanParameters) -> GridResult:
    """Run the projection for every total monthly cost in *monthly_costs*.

    Same phase and marker rules as ``project``, vectorised across costs.
    """
    costs = np.atleast_1d(np.asarray(monthly_costs, dtype=float))
    if costs.size == 0:
        raise InvalidInput("At least one monthly cost is required")
    if not np.all(np.isfinite(costs)) or np.any(costs <= 0):
        raise InvalidInput("Monthly costs must be positive numbers")
    plan.validate()

    T = cfg.MONTHS_PER_YEAR
    n = costs.size
    gap_code = cfg.PHASES.index(cfg.PHASE_GAP)
    cat_code = cfg.PHASES.index(cfg.PHASE_CATASTROPHIC)

    phase_codes = np.zeros((T, n), dtype=int)
    oop = np.zeros((T, n))
    gap_entry = np.full(n, np.nan)
    cat_entry = np.full(n, np.nan)
    cumulative = np.zeros(n)

    for t in range(T):
        month = t + 1
        in_cat = cumulative >= plan.catastrophic_coverage_limit
        in_gap = ~in_cat & (cumulative >= plan.initial_coverage_limit)

        phase_codes[t] = np.where(in_cat, cat_code, np.where(in_gap, gap_code, 0))
        oop[t] = np.where(
            in_cat,
            costs * plan.catastrophic_coinsurance,
            np.where(in_gap, costs * plan.gap_coinsurance, costs * plan.initial_coinsurance),
        )

        projected = cumulative + costs
        gap_entry = np.where(
            np.isnan(gap_entry) & (projected > plan.initial_coverage_limit),
            month, gap_entry,
        )
        cat_entry = np.where(
            np.isnan(cat_entry) & (projected > plan.catastrophic_coverage_limit),
            month, cat_entry,
        )
        cumulative = projected

    return GridResult(
        monthly_costs=costs,
        phase_codes=phase_codes,
        out_of_pocket=oop,
        annual_out_of_pocket=oop.sum(axis=0),
        gap_entry_month=gap_entry,
        catastrophic_entry_month=cat_entry,
    )


# ─── Discount Sensitivity Table ───────────────────────────────────────

@dataclass
class DiscountRow:
    """One row of the gap discount table."""

    discount_percent: float
    annual_out_of_pocket: float
    gap_months: int
    savings: float               # versus no gap discount
    is_plan_level: bool          # matches the plan's own discount


@dataclass
class DiscountTable:
    """Annual cost at each tested coverage gap discount."""

    rows: list[DiscountRow]
    no_discount_out_of_pocket: float


def discount_table(
    drugs: Sequence[DrugCost],
    plan: PlanParameters,
    levels: Optional[Sequence[float]] = None,
) -> DiscountTable:
    """Re-run the projection at several gap discount levels.

    The plan's own discount is added to the tested levels when missing.
    Savings are measured against a 0% discount (patient pays full retail
    in the gap).
    """
    tested = sorted(set(cfg.DISCOUNT_LEVELS if levels is None else levels)
                    | {plan.coverage_gap_discount_percent})

    baseline = project(
        drugs, dataclasses.replace(plan, coverage_gap_discount_percent=0)
    ).annual_out_of_pocket

    rows: list[DiscountRow] = []
    for level in tested:
        res = project(drugs, dataclasses.replace(plan, coverage_gap_discount_percent=level))
        rows.append(DiscountRow(
            discount_percent=float(level),
            annual_out_of_pocket=res.annual_out_of_pocket,
            gap_months=res.months_in_phase(cfg.PHASE_GAP),
            savings=baseline - res.annual_out_of_pocket,
            is_plan_level=level == plan.coverage_gap_discount_percent,
        ))

    return DiscountTable(rows=rows, no_discount_out_of_pocket=baseline)


# ─── Monthly Cost Sweep ───────────────────────────────────────────────

def cost_sweep(plan: PlanParameters, monthly_costs=None) -> GridResult:
    """Project a ladder of monthly drug spends under the same plan."""
    if monthly_costs is None:
        monthly_costs = cfg.SWEEP_MONTHLY_COSTS
    return project_grid(monthly_costs, plan)
