"""
CLI interface and shared display-data computation for the
Medicare Part D coverage gap projector.
"""

from __future__ import annotations

import logging
import math
import sys
from typing import Any, Dict, List, Optional, Sequence

import config as cfg
from projector import (
    DiscountTable,
    DrugCost,
    InvalidInput,
    PlanParameters,
    ProjectionResult,
    cost_sweep,
    discount_table,
    project,
    validate_limit_order,
)
from refills import Prescription, RefillEstimate, estimate_refills
import report

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# Formatting helpers
# ═══════════════════════════════════════════════════════════════════

def fmt(val: float, decimals: int = 0) -> str:
    """Format number as $X,XXX."""
    if decimals > 0:
        return f"${val:,.{decimals}f}"
    return f"${val:,.0f}"


def pct(val: float, decimals: int = 1) -> str:
    return f"{val:.{decimals}f}%"


def month_str(month: Optional[int]) -> str:
    return f"Month {month}" if month is not None else "Not reached"


# ═══════════════════════════════════════════════════════════════════
# Input collection (CLI)
# ═══════════════════════════════════════════════════════════════════

def _strip_currency(s: str) -> str:
    """Remove currency symbols, commas, spaces."""
    return s.replace("$", "").replace(",", "").replace(" ", "")


def _prompt_float(
    label: str,
    default: Any,
    min_val: float | None = None,
    max_val: float | None = None,
    currency: bool = False,
) -> float:
    while True:
        raw = input(f"  {label} [{default}]: ").strip()
        if not raw:
            return float(_strip_currency(str(default))) if currency else float(default)
        try:
            val = float(_strip_currency(raw) if currency else raw.replace("%", ""))
            if not math.isfinite(val):
                print("    Invalid number, try again.")
                continue
            if min_val is not None and val < min_val:
                print(f"    Must be at least {min_val}")
                continue
            if max_val is not None and val > max_val:
                print(f"    Must be at most {max_val}")
                continue
            return val
        except ValueError:
            print("    Invalid number, try again.")


def _prompt_int(
    label: str,
    default: int,
    min_val: int | None = None,
    max_val: int | None = None,
) -> int:
    while True:
        raw = input(f"  {label} [{default}]: ").strip()
        if not raw:
            return default
        try:
            val = int(float(_strip_currency(raw)))
            if min_val is not None and val < min_val:
                print(f"    Must be at least {min_val}")
                continue
            if max_val is not None and val > max_val:
                print(f"    Must be at most {max_val}")
                continue
            return val
        except ValueError:
            print("    Invalid number, try again.")


def _prompt_text(label: str, default: str) -> str:
    raw = input(f"  {label} [{default}]: ").strip()
    return raw or default


def _prompt_choice(label: str, options: list[str], default: str) -> str:
    opts = "/".join(options)
    while True:
        raw = input(f"  {label} ({opts}) [{default}]: ").strip().lower()
        if not raw:
            return default
        if raw in options:
            return raw
        print(f"    Choose from: {opts}")


def _prompt_copay() -> Optional[float]:
    """Per-refill copay; blank means uninsured."""
    while True:
        raw = input("  Insurance copay per refill (blank if none): ").strip()
        if not raw:
            return None
        try:
            val = float(_strip_currency(raw))
        except ValueError:
            val = math.nan
        if not math.isfinite(val):
            print("    Invalid number, try again.")
            continue
        if val < 0:
            print("    Copay cannot be negative")
            continue
        return val


def collect_drugs() -> List[DrugCost]:
    """Prompt for each recurring medication."""
    n_drugs = _prompt_int("Number of drugs", 1, 1, 20)
    drugs = []
    for i in range(1, n_drugs + 1):
        name = _prompt_text(f"Drug {i} name", f"Drug {i}")
        cost = _prompt_float(f"Drug {i} monthly cost", "$950", 0.01, currency=True)
        drugs.append(DrugCost(name=name, monthly_cost=cost))
    return drugs


def collect_plan() -> PlanParameters:
    """Prompt for plan limits until they are consistent."""
    while True:
        initial = _prompt_float(
            "Initial coverage limit", f"${cfg.DEFAULT_INITIAL_COVERAGE_LIMIT:,}",
            0.01, currency=True,
        )
        catastrophic = _prompt_float(
            "Catastrophic limit", f"${cfg.DEFAULT_CATASTROPHIC_COVERAGE_LIMIT:,}",
            0.01, currency=True,
        )
        discount = _prompt_float(
            "Coverage gap discount %", cfg.DEFAULT_GAP_DISCOUNT_PERCENT, 0, 100,
        )
        try:
            plan = PlanParameters(
                initial_coverage_limit=initial,
                catastrophic_coverage_limit=catastrophic,
                coverage_gap_discount_percent=discount,
            )
            validate_limit_order(plan)
        except InvalidInput as exc:
            print(f"    {exc}. Please re-enter the plan limits.")
            continue
        return plan


def collect_inputs() -> tuple[List[DrugCost], PlanParameters]:
    """Prompt the user for all projection parameters."""
    print("\n  Enter your medications (press Enter for defaults):\n")
    drugs = collect_drugs()
    print(f"\n  Plan limits ({cfg.BASE_PLAN_YEAR} standard benefit by default):\n")
    plan = collect_plan()
    return drugs, plan


def collect_prescriptions() -> List[Prescription]:
    """Prompt for prescriptions for the refill estimator."""
    n_rx = _prompt_int("Number of prescriptions", 1, 1, 20)
    frequencies = list(cfg.REFILLS_PER_YEAR)
    prescriptions = []
    for i in range(1, n_rx + 1):
        name = _prompt_text(f"Prescription {i} name", f"Prescription {i}")
        cost = _prompt_float(f"Prescription {i} cost per refill", "$100", 0.01, currency=True)
        freq = _prompt_choice("Refill frequency", frequencies, "monthly")
        copay = _prompt_copay()
        prescriptions.append(Prescription(name=name, cost=cost, frequency=freq,
                                          insurance_copay=copay))
    return prescriptions


# ═══════════════════════════════════════════════════════════════════
# Shared display-data computation (used by CLI and web app)
# ═══════════════════════════════════════════════════════════════════

def compute_display_data(
    drugs: Sequence[DrugCost],
    plan: PlanParameters,
    result: ProjectionResult,
    table: DiscountTable,
) -> Dict[str, Any]:
    """Extract every metric needed for the output sections."""
    annual_retail = result.annual_retail_cost
    annual_oop = result.annual_out_of_pocket
    effective_pct = (annual_oop / annual_retail * 100) if annual_retail > 0 else 0.0

    plan_row = next((r for r in table.rows if r.is_plan_level), None)
    plan_savings = plan_row.savings if plan_row is not None else 0.0

    return {
        # Inputs echo
        "drugs": list(drugs),
        "n_drugs": len(drugs),
        "initial_limit": plan.initial_coverage_limit,
        "catastrophic_limit": plan.catastrophic_coverage_limit,
        "gap_discount": plan.coverage_gap_discount_percent,
        "initial_coinsurance_pct": plan.initial_coinsurance * 100,
        "gap_coinsurance_pct": plan.gap_coinsurance * 100,
        "catastrophic_coinsurance_pct": plan.catastrophic_coinsurance * 100,
        # Costs
        "total_monthly_cost": result.total_monthly_cost,
        "annual_retail": annual_retail,
        "annual_oop": annual_oop,
        "monthly_avg_oop": annual_oop / cfg.MONTHS_PER_YEAR,
        "plan_paid": result.plan_paid,
        "effective_pct": effective_pct,
        "progress_pct": min(annual_oop / plan.catastrophic_coverage_limit * 100, 100.0),
        # Phases
        "records": result.monthly_records,
        "gap_entry_month": result.gap_entry_month,
        "catastrophic_entry_month": result.catastrophic_entry_month,
        "months_initial": result.months_in_phase(cfg.PHASE_INITIAL),
        "months_gap": result.months_in_phase(cfg.PHASE_GAP),
        "months_catastrophic": result.months_in_phase(cfg.PHASE_CATASTROPHIC),
        "remaining_to_gap": max(plan.initial_coverage_limit - annual_retail, 0.0),
        # Discount table
        "discount_table": table,
        "plan_discount_savings": plan_savings,
    }


def generate_summary_text(d: Dict[str, Any]) -> str:
    """Build a 2-3 sentence plain-English summary."""
    monthly = fmt(d["total_monthly_cost"])
    annual = fmt(d["annual_oop"])

    if d["gap_entry_month"] is None:
        return (
            f"At {monthly}/mo in drug costs you stay in Initial Coverage all "
            f"year, paying about {annual} out of pocket. Your total retail "
            f"spend falls {fmt(d['remaining_to_gap'])} short of the "
            f"{fmt(d['initial_limit'])} initial coverage limit."
        )

    text = (
        f"At {monthly}/mo in drug costs you reach the coverage gap in "
        f"month {d['gap_entry_month']}"
    )
    if d["catastrophic_entry_month"] is not None:
        text += (
            f" and catastrophic coverage in month "
            f"{d['catastrophic_entry_month']}, after which you pay "
            f"{pct(d['catastrophic_coinsurance_pct'], 0)} of retail."
        )
    else:
        text += ", and you do not reach catastrophic coverage this year."
    text += (
        f" Expect about {annual} out of pocket for the year "
        f"({pct(d['effective_pct'])} of {fmt(d['annual_retail'])} retail)."
    )
    if d["months_gap"] > 0 and d["plan_discount_savings"] > 0:
        text += (
            f" The {pct(d['gap_discount'], 0)} gap discount saves you "
            f"{fmt(d['plan_discount_savings'])}."
        )
    return text


# ═══════════════════════════════════════════════════════════════════
# Box-drawing CLI output
# ═══════════════════════════════════════════════════════════════════

W = 78  # box width (characters)


def _box_top(title: str) -> str:
    inner = W - 2
    bar = "═" * inner
    return (
        f"╔{bar}╗\n"
        f"║  {title:<{inner - 2}}║\n"
        f"╠{bar}╣"
    )


def _box_line(text: str = "") -> str:
    inner = W - 4
    if len(text) > inner:
        text = text[:inner]
    return f"║  {text:<{inner}}║"


def _box_row(label: str, value: str, lw: int = 38) -> str:
    return _box_line(f"{label:<{lw}}{value}")


def _box_bottom() -> str:
    return f"╚{'═' * (W - 2)}╝"


def _wrap(text: str, width: int = W - 6) -> List[str]:
    lines = []
    line = ""
    for word in text.split():
        if len(line) + len(word) + 1 <= width:
            line = f"{line} {word}" if line else word
        else:
            lines.append(line)
            line = word
    if line:
        lines.append(line)
    return lines


def _print_section(title: str, rows: List[str]) -> None:
    """Print a titled box with content rows."""
    print(_box_top(title))
    for r in rows:
        print(r)
    print(_box_bottom())
    print()


# ═══════════════════════════════════════════════════════════════════
# CLI Section Printers
# ═══════════════════════════════════════════════════════════════════

def _print_drugs(d: Dict[str, Any]) -> None:
    rows = [_box_row(drug.name, f"{fmt(drug.monthly_cost, 2)}/mo") for drug in d["drugs"]]
    rows += [
        _box_line(),
        _box_row("Total monthly drug cost", fmt(d["total_monthly_cost"], 2)),
        _box_row("Annual retail cost", fmt(d["annual_retail"])),
        _box_line(),
        _box_row("Initial coverage limit", fmt(d["initial_limit"])),
        _box_row("Catastrophic limit", fmt(d["catastrophic_limit"])),
        _box_row("Coverage gap discount", pct(d["gap_discount"], 0)),
        _box_row(
            "  You pay",
            f"{pct(d['initial_coinsurance_pct'], 0)} initial / "
            f"{pct(d['gap_coinsurance_pct'], 0)} gap / "
            f"{pct(d['catastrophic_coinsurance_pct'], 0)} catastrophic",
            lw=12,
        ),
    ]
    _print_section("YOUR DRUGS & PLAN", rows)


def _print_months(d: Dict[str, Any]) -> None:
    h = f"{'Month':>5}  {'Phase':<27}  {'Retail':>10}  {'You pay':>10}  {'Cumulative':>11}"
    rows = [_box_line(h), _box_line("─" * (W - 6))]
    for r in d["records"]:
        rows.append(_box_line(
            f"{r.month:>5}  {r.phase_label:<27}  "
            f"{fmt(r.retail_cost, 2):>10}  {fmt(r.out_of_pocket, 2):>10}  "
            f"{fmt(r.cumulative_retail_spend):>11}"
        ))
    _print_section("MONTH BY MONTH", rows)


def _print_summary(d: Dict[str, Any], summary_text: str) -> None:
    rows = [
        _box_row("Coverage gap starts", month_str(d["gap_entry_month"])),
        _box_row("Catastrophic coverage starts", month_str(d["catastrophic_entry_month"])),
        _box_row(
            "Months per phase",
            f"{d['months_initial']} initial / {d['months_gap']} gap / "
            f"{d['months_catastrophic']} catastrophic",
        ),
        _box_line(),
        _box_row("Annual out-of-pocket", fmt(d["annual_oop"], 2)),
        _box_row("Average per month", fmt(d["monthly_avg_oop"], 2)),
        _box_row("Plan pays", fmt(d["plan_paid"], 2)),
        _box_row("Share of retail you pay", pct(d["effective_pct"])),
        _box_row("Progress to catastrophic limit", pct(d["progress_pct"], 0)),
        _box_line(),
    ]
    rows += [_box_line(line) for line in _wrap(summary_text)]
    _print_section("SUMMARY", rows)


def _print_discount_table(d: Dict[str, Any]) -> None:
    table: DiscountTable = d["discount_table"]
    h1 = f"{'Discount':>8}  {'Gap months':>10}  {'Annual OOP':>12}  {'Saves':>10}"
    rows = [_box_line(h1), _box_line("─" * (W - 6))]
    for r in table.rows:
        marker = " << your plan" if r.is_plan_level else ""
        rows.append(_box_line(
            f"{pct(r.discount_percent, 0):>8}  {r.gap_months:>10}  "
            f"{fmt(r.annual_out_of_pocket, 2):>12}  {fmt(r.savings):>10}{marker}"
        ))
    rows.append(_box_line())
    if d["months_gap"] == 0:
        rows.append(_box_line("You never pay a month in the gap, so the discount"))
        rows.append(_box_line("does not change your costs."))
    else:
        rows.append(_box_line(
            f"With no discount you would pay {fmt(table.no_discount_out_of_pocket, 2)}."
        ))
    _print_section("HOW MUCH DOES THE GAP DISCOUNT MATTER?", rows)


def _print_charts(pdf_path: str | None) -> None:
    rows = []
    if pdf_path:
        rows.append(_box_line(f"PDF report saved to: {pdf_path}"))
    else:
        rows.append(_box_line("Charts available in the web app:"))
        rows.append(_box_line(f"  python main.py  (opens {cfg.WEB_HOST}:{cfg.WEB_PORT})"))
    _print_section("CHARTS", rows)


def _print_refills(est: RefillEstimate) -> None:
    h = f"{'Prescription':<24}  {'Annual cost':>12}  {'You pay':>12}  {'Insurance':>12}"
    rows = [_box_line(h), _box_line("─" * (W - 6))]
    for r in est.rows:
        rows.append(_box_line(
            f"{r.name[:24]:<24}  {fmt(r.annual_cost, 2):>12}  "
            f"{fmt(r.out_of_pocket, 2):>12}  {fmt(r.insurance_pays, 2):>12}"
        ))
    rows += [
        _box_line(),
        _box_row("Total annual cost", fmt(est.total_annual_cost, 2)),
        _box_row("Your total annual cost", fmt(est.total_annual_copay, 2)),
        _box_row("Insurance pays", fmt(est.total_insurance_pays, 2)),
    ]
    _print_section("ANNUAL REFILL COSTS", rows)


# ═══════════════════════════════════════════════════════════════════
# Main CLI entry points
# ═══════════════════════════════════════════════════════════════════

def _utf8_stdout() -> None:
    # Box-drawing characters on Windows consoles
    try:
        sys.stdout.reconfigure(encoding="utf-8")
    except (AttributeError, OSError):
        pass


def run_cli(pdf_path: str | None = cfg.PDF_PATH) -> None:
    """Run the full CLI workflow."""
    _utf8_stdout()
    print()
    print("=" * W)
    print("  Medicare Part D Coverage Gap Estimator")
    print("=" * W)

    drugs, plan = collect_inputs()

    print("\n  Projecting the plan year...")
    result = project(drugs, plan)
    table = discount_table(drugs, plan)
    sweep = cost_sweep(plan)
    logger.info("Projected %d drug(s): annual out-of-pocket %.2f",
                len(drugs), result.annual_out_of_pocket)
    print("  Done.")

    d = compute_display_data(drugs, plan, result, table)
    summary_text = generate_summary_text(d)

    print()
    _print_drugs(d)
    _print_months(d)
    _print_summary(d, summary_text)
    _print_discount_table(d)

    saved = None
    if pdf_path:
        print("\n  Generating PDF report...")
        saved = report.generate_pdf(result, table, sweep, d, summary_text, pdf_path)
        print(f"  Saved to {saved}\n")

    _print_charts(saved)


def run_refills_cli() -> None:
    """Run the prescription refill estimator in the terminal."""
    _utf8_stdout()
    print()
    print("=" * W)
    print("  Prescription Refill Cost Estimator")
    print("=" * W)
    print()

    est = estimate_refills(collect_prescriptions())
    print()
    _print_refills(est)


if __name__ == "__main__":
    run_cli()
