"""
Plan constants for the Medicare Part D coverage gap projector.

All monetary values in USD. Default limits follow the 2023 standard
benefit; 2024 figures are kept alongside for reference.
"""

# ── General assumptions ──────────────────────────────────────────────
MONTHS_PER_YEAR = 12
BASE_PLAN_YEAR = 2023

# ── Coinsurance (patient share of retail cost) ───────────────────────
INITIAL_COINSURANCE = 0.25       # Initial Coverage phase
CATASTROPHIC_COINSURANCE = 0.05  # after the catastrophic threshold

# ── Standard benefit limits by plan year ─────────────────────────────
# (initial coverage limit, catastrophic limit, coverage gap discount %)
PLAN_YEAR_LIMITS = {
    2023: (4_660, 7_400, 75),
    2024: (5_030, 8_000, 75),
}
DEFAULT_INITIAL_COVERAGE_LIMIT = PLAN_YEAR_LIMITS[BASE_PLAN_YEAR][0]
DEFAULT_CATASTROPHIC_COVERAGE_LIMIT = PLAN_YEAR_LIMITS[BASE_PLAN_YEAR][1]
DEFAULT_GAP_DISCOUNT_PERCENT = PLAN_YEAR_LIMITS[BASE_PLAN_YEAR][2]

# ── Phases ───────────────────────────────────────────────────────────
# Order matters: a plan year only ever moves forward through this tuple.
PHASE_INITIAL = "initial"
PHASE_GAP = "gap"
PHASE_CATASTROPHIC = "catastrophic"
PHASES = (PHASE_INITIAL, PHASE_GAP, PHASE_CATASTROPHIC)

PHASE_LABELS = {
    PHASE_INITIAL: "Initial Coverage",
    PHASE_GAP: "Coverage Gap (Donut Hole)",
    PHASE_CATASTROPHIC: "Catastrophic Coverage",
}

# ── Sensitivity tables ───────────────────────────────────────────────
DISCOUNT_LEVELS = [0, 25, 50, 75, 100]
SWEEP_MONTHLY_COSTS = [100, 250, 500, 750, 1_000, 1_500, 2_000, 3_000]

# ── Refill estimator ─────────────────────────────────────────────────
REFILLS_PER_YEAR = {
    "monthly": 12,
    "90-day": 4,
    "annually": 1,
}

# ── Web app / report ─────────────────────────────────────────────────
WEB_HOST = "127.0.0.1"
WEB_PORT = 5000
PDF_PATH = "coverage_gap_report.pdf"
