"""
Annual refill cost estimator for recurring prescriptions.

Each prescription is refilled monthly, every 90 days or once a year.
When an insurance copay is given the patient pays that per refill;
otherwise they pay the full cost.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import config as cfg
from projector import InvalidInput


@dataclass
class Prescription:
    """One recurring prescription."""

    name: str
    cost: float                              # retail cost per refill
    frequency: str = "monthly"               # key of cfg.REFILLS_PER_YEAR
    insurance_copay: Optional[float] = None  # per-refill copay, if insured

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidInput("Prescription name is required")
        if not math.isfinite(self.cost) or self.cost <= 0:
            raise InvalidInput(f"Cost for {self.name} must be positive")
        if self.frequency not in cfg.REFILLS_PER_YEAR:
            opts = ", ".join(cfg.REFILLS_PER_YEAR)
            raise InvalidInput(f"Frequency must be one of: {opts}")
        if self.insurance_copay is not None and (
            not math.isfinite(self.insurance_copay) or self.insurance_copay < 0
        ):
            raise InvalidInput(f"Copay for {self.name} cannot be negative")

    @property
    def refills_per_year(self) -> int:
        return cfg.REFILLS_PER_YEAR[self.frequency]


@dataclass
class RefillRow:
    name: str
    annual_cost: float
    out_of_pocket: float
    insurance_pays: float


@dataclass
class RefillEstimate:
    """Annual totals across all prescriptions."""

    rows: list[RefillRow]
    total_annual_cost: float
    total_annual_copay: float

    @property
    def total_insurance_pays(self) -> float:
        return sum(r.insurance_pays for r in self.rows)


def estimate_refills(prescriptions: Sequence[Prescription]) -> RefillEstimate:
    """Estimate yearly retail and out-of-pocket cost of *prescriptions*."""
    if not prescriptions:
        raise InvalidInput("Please add at least one prescription")

    rows: list[RefillRow] = []
    total_cost = 0.0
    total_copay = 0.0

    for rx in prescriptions:
        n = rx.refills_per_year
        annual_cost = rx.cost * n
        per_refill = rx.insurance_copay if rx.insurance_copay is not None else rx.cost
        annual_copay = per_refill * n

        total_cost += annual_cost
        total_copay += annual_copay
        rows.append(RefillRow(
            name=rx.name,
            annual_cost=annual_cost,
            out_of_pocket=annual_copay,
            insurance_pays=max(0.0, annual_cost - annual_copay),
        ))

    return RefillEstimate(
        rows=rows,
        total_annual_cost=total_cost,
        total_annual_copay=total_copay,
    )
