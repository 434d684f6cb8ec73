"""
PDF report generation and reusable chart rendering for the
Medicare Part D coverage gap projector.

Provides:
  - PDF report of up to five pages (generate_pdf)
  - Base64-encoded chart images for web embedding (get_web_charts)
  - Individual chart renderers reusable by both CLI and web
"""

from __future__ import annotations

import base64
import io
from typing import Any, Dict, List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.patches import Patch
from matplotlib.ticker import FuncFormatter
import numpy as np

import config as cfg
from projector import DiscountTable, GridResult, ProjectionResult

# ═══════════════════════════════════════════════════════════════════
# Style constants
# ═══════════════════════════════════════════════════════════════════

BG = "#0a101f"
CARD = "#131b2e"
TEXT = "#f1f5f9"
TEXT2 = "#cbd5e1"
INDIGO = "#818cf8"
EMERALD = "#34d399"
AMBER = "#fbbf24"
RED = "#f87171"
SLATE = "#94a3b8"
BORDER = "#1e293b"

PHASE_COLORS = {
    cfg.PHASE_INITIAL: EMERALD,
    cfg.PHASE_GAP: AMBER,
    cfg.PHASE_CATASTROPHIC: INDIGO,
}

A4W, A4H = 8.27, 11.69
WEB_W, WEB_H = 10, 6


# ═══════════════════════════════════════════════════════════════════
# Axis formatters
# ═══════════════════════════════════════════════════════════════════

def _usd_fmt(x, _):
    if abs(x) >= 1e6:
        return f"${x / 1e6:.1f}M"
    if abs(x) >= 1e4:
        return f"${x / 1e3:.0f}k"
    return f"${x:,.0f}"


USD_FMT = FuncFormatter(_usd_fmt)


def _plain(s: str) -> str:
    """Escape dollar signs so matplotlib draws them instead of mathtext."""
    return s.replace("$", r"\$")


def _text(fig, x, y, s, **kw):
    return fig.text(x, y, _plain(s), **kw)


# ═══════════════════════════════════════════════════════════════════
# Style helpers
# ═══════════════════════════════════════════════════════════════════

def _style(fig, *axes):
    """Apply dark theme to figure and all axes."""
    fig.patch.set_facecolor(BG)
    for ax in axes:
        ax.set_facecolor(CARD)
        ax.tick_params(colors=TEXT, labelsize=8)
        ax.xaxis.label.set_color(TEXT)
        ax.yaxis.label.set_color(TEXT)
        ax.title.set_color(TEXT)
        for spine in ax.spines.values():
            spine.set_color(BORDER)
        ax.grid(True, alpha=0.15, color=SLATE)


def _legend(ax, loc="upper left", **kwargs):
    ax.legend(loc=loc, fontsize=8, facecolor=CARD, edgecolor=BORDER,
              labelcolor=TEXT, **kwargs)


def _phase_handles() -> List[Patch]:
    return [Patch(color=PHASE_COLORS[p], label=cfg.PHASE_LABELS[p])
            for p in cfg.PHASES]


# ═══════════════════════════════════════════════════════════════════
# Page 1: summary (text only, dark background)
# ═══════════════════════════════════════════════════════════════════

def _page1_summary(d: Dict, summary_text: str) -> plt.Figure:
    fig = plt.figure(figsize=(A4W, A4H))
    fig.patch.set_facecolor(BG)

    _text(fig, 0.50, 0.93, "Medicare Part D Coverage Gap Estimate",
          ha="center", fontsize=18, color=TEXT, fontweight="bold")
    _text(fig, 0.50, 0.91, "Twelve-Month Out-of-Pocket Projection",
          ha="center", fontsize=11, color=TEXT2)

    y = 0.86
    _text(fig, 0.08, y, "Your Drugs", fontsize=13, color=TEXT, fontweight="bold")
    y -= 0.028
    for drug in d["drugs"]:
        _text(fig, 0.10, y, f"{drug.name}: ${drug.monthly_cost:,.2f}/mo",
              fontsize=9.5, color=TEXT2)
        y -= 0.022
    _text(fig, 0.10, y, f"Total: ${d['total_monthly_cost']:,.2f}/mo  |  "
                        f"${d['annual_retail']:,.0f}/yr retail",
          fontsize=9.5, color=TEXT, fontweight="bold")

    y -= 0.04
    _text(fig, 0.08, y, "Plan", fontsize=13, color=TEXT, fontweight="bold")
    y -= 0.028
    plan_lines = [
        f"Initial coverage limit: ${d['initial_limit']:,.0f}  |  "
        f"Catastrophic limit: ${d['catastrophic_limit']:,.0f}",
        f"You pay {d['initial_coinsurance_pct']:.0f}% initial, "
        f"{d['gap_coinsurance_pct']:.0f}% in the gap "
        f"({d['gap_discount']:.0f}% discount), "
        f"{d['catastrophic_coinsurance_pct']:.0f}% catastrophic",
    ]
    for line in plan_lines:
        _text(fig, 0.10, y, line, fontsize=9, color=TEXT2)
        y -= 0.024

    y -= 0.02
    _text(fig, 0.08, y, "Phases", fontsize=13, color=AMBER, fontweight="bold")
    y -= 0.028
    gap = d["gap_entry_month"]
    cat = d["catastrophic_entry_month"]
    phase_lines = [
        f"Coverage gap starts: {f'month {gap}' if gap is not None else 'not reached'}",
        f"Catastrophic coverage starts: {f'month {cat}' if cat is not None else 'not reached'}",
        f"Months per phase: {d['months_initial']} initial, {d['months_gap']} gap, "
        f"{d['months_catastrophic']} catastrophic",
    ]
    for line in phase_lines:
        _text(fig, 0.10, y, line, fontsize=9.5, color=TEXT2)
        y -= 0.024

    y -= 0.02
    _text(fig, 0.08, y, "Your Costs", fontsize=13, color=EMERALD, fontweight="bold")
    y -= 0.03
    _text(fig, 0.10, y, f"${d['annual_oop']:,.2f} out of pocket for the year",
          fontsize=12, color=EMERALD, fontweight="bold")
    y -= 0.028
    cost_lines = [
        f"Average per month: ${d['monthly_avg_oop']:,.2f}",
        f"Plan pays: ${d['plan_paid']:,.2f}",
        f"Share of retail you pay: {d['effective_pct']:.1f}%",
    ]
    for line in cost_lines:
        _text(fig, 0.10, y, line, fontsize=9.5, color=TEXT2)
        y -= 0.024

    y -= 0.02
    words = summary_text.split()
    line = ""
    for word in words:
        if len(line) + len(word) + 1 <= 85:
            line = f"{line} {word}" if line else word
        else:
            _text(fig, 0.10, y, line, fontsize=9, color=TEXT2)
            y -= 0.022
            line = word
    if line:
        _text(fig, 0.10, y, line, fontsize=9, color=TEXT2)

    _text(fig, 0.50, 0.03,
          "Estimate only. Actual plan costs depend on deductibles, "
          "formularies and pharmacy pricing.",
          ha="center", fontsize=8, color=SLATE, style="italic")
    return fig


# ═══════════════════════════════════════════════════════════════════
# Monthly out-of-pocket (bars coloured by phase)
# ═══════════════════════════════════════════════════════════════════

def _chart_monthly_oop(result: ProjectionResult,
                       figsize=(WEB_W, WEB_H)) -> plt.Figure:
    fig, ax = plt.subplots(figsize=figsize, constrained_layout=True)
    _style(fig, ax)

    months = [r.month for r in result.monthly_records]
    oop = [r.out_of_pocket for r in result.monthly_records]
    colors = [PHASE_COLORS[r.phase] for r in result.monthly_records]

    ax.bar(months, oop, color=colors, edgecolor=BORDER, linewidth=0.5)
    ax.step(months, [r.retail_cost for r in result.monthly_records],
            where="mid", color=SLATE, linewidth=1.2, linestyle="--")
    ax.set_xticks(months)
    ax.set_xticklabels([f"M{m}" for m in months])
    ax.yaxis.set_major_formatter(USD_FMT)
    ax.set_xlabel("Month")
    ax.set_ylabel("Out-of-Pocket")
    ax.set_title("Your Monthly Out-of-Pocket Cost", fontsize=13, pad=12)

    handles = _phase_handles()
    handles.append(plt.Line2D([], [], color=SLATE, linestyle="--",
                              label="Total drug cost"))
    ax.legend(handles=handles, loc="upper right", fontsize=8,
              facecolor=CARD, edgecolor=BORDER, labelcolor=TEXT)
    return fig


# ═══════════════════════════════════════════════════════════════════
# Cumulative retail spend vs limits
# ═══════════════════════════════════════════════════════════════════

def _chart_cumulative(result: ProjectionResult,
                      figsize=(WEB_W, WEB_H)) -> plt.Figure:
    fig, ax = plt.subplots(figsize=figsize, constrained_layout=True)
    _style(fig, ax)

    months = np.arange(0, cfg.MONTHS_PER_YEAR + 1)
    spend = [0.0] + [r.cumulative_retail_spend for r in result.monthly_records]
    oop = np.concatenate([[0.0], np.cumsum([r.out_of_pocket
                                            for r in result.monthly_records])])

    ax.plot(months, spend, color=INDIGO, linewidth=2.2, label="Total drug spend")
    ax.plot(months, oop, color=EMERALD, linewidth=2.2, label="Your out-of-pocket")
    ax.axhline(result.plan.initial_coverage_limit, color=AMBER, linewidth=1.2,
               linestyle="--", alpha=0.8, label="Initial coverage limit")
    ax.axhline(result.plan.catastrophic_coverage_limit, color=RED, linewidth=1.2,
               linestyle="--", alpha=0.8, label="Catastrophic limit")

    for month, label, color in (
        (result.gap_entry_month, "Gap", AMBER),
        (result.catastrophic_entry_month, "Catastrophic", RED),
    ):
        if month is not None:
            ax.axvline(month, color=color, linewidth=1, alpha=0.4)
            ax.annotate(label, xy=(month, 0.96), xycoords=("data", "axes fraction"),
                        fontsize=8, color=color, ha="center", fontweight="bold")

    ax.set_xticks(months)
    ax.yaxis.set_major_formatter(USD_FMT)
    ax.set_xlabel("Month")
    ax.set_ylabel("Cumulative Cost")
    ax.set_title("Spending Toward the Coverage Limits", fontsize=13, pad=12)
    _legend(ax)
    return fig


# ═══════════════════════════════════════════════════════════════════
# Gap discount sensitivity
# ═══════════════════════════════════════════════════════════════════

def _chart_discount_bar(table: DiscountTable,
                        figsize=(WEB_W, WEB_H - 1)) -> plt.Figure:
    fig, ax = plt.subplots(figsize=figsize, constrained_layout=True)
    _style(fig, ax)

    levels = [r.discount_percent for r in table.rows]
    oop = [r.annual_out_of_pocket for r in table.rows]
    colors = [AMBER if r.is_plan_level else INDIGO for r in table.rows]

    x = np.arange(len(levels))
    ax.bar(x, oop, 0.6, color=colors, edgecolor=BORDER, linewidth=0.5)
    ax.set_xticks(x)
    ax.set_xticklabels([f"{lvl:.0f}%" for lvl in levels])
    ax.yaxis.set_major_formatter(USD_FMT)
    ax.set_xlabel("Coverage Gap Discount")
    ax.set_ylabel("Annual Out-of-Pocket")
    ax.set_title("Annual Cost by Gap Discount", fontsize=13, pad=12)

    plan_idx = next((i for i, r in enumerate(table.rows) if r.is_plan_level), None)
    if plan_idx is not None:
        ax.annotate(
            "Your plan", xy=(plan_idx, oop[plan_idx]),
            fontsize=9, color=AMBER, fontweight="bold",
            xytext=(0, 15), textcoords="offset points", ha="center",
            arrowprops=dict(arrowstyle="->", color=AMBER, lw=1.5),
        )
    if all(r.gap_months == 0 for r in table.rows):
        ax.annotate(
            "No months in the gap: discount has no effect",
            xy=(0.5, 0.94), xycoords="axes fraction",
            fontsize=10, color=EMERALD, ha="center", fontweight="bold",
        )
    return fig


def _page_discount(table: DiscountTable, figsize=(A4W, A4H)) -> plt.Figure:
    fig = plt.figure(figsize=figsize, constrained_layout=True)
    gs = fig.add_gridspec(2, 1, height_ratios=[1, 0.8])
    ax_bar = fig.add_subplot(gs[0])
    ax_tbl = fig.add_subplot(gs[1])
    _style(fig, ax_bar)

    levels = [r.discount_percent for r in table.rows]
    oop = [r.annual_out_of_pocket for r in table.rows]
    x = np.arange(len(levels))
    ax_bar.bar(x, oop, 0.6,
               color=[AMBER if r.is_plan_level else INDIGO for r in table.rows])
    ax_bar.set_xticks(x)
    ax_bar.set_xticklabels([f"{lvl:.0f}%" for lvl in levels], fontsize=8)
    ax_bar.yaxis.set_major_formatter(USD_FMT)
    ax_bar.set_xlabel("Coverage Gap Discount")
    ax_bar.set_ylabel("Annual Out-of-Pocket")
    ax_bar.set_title("Annual Cost by Gap Discount", fontsize=11, pad=10)

    ax_tbl.set_facecolor(BG)
    ax_tbl.axis("off")

    cols = ["Discount", "Gap months", "Annual OOP", "Savings"]
    cell_data = []
    row_colors = []
    for r in table.rows:
        cell_data.append([
            f"{r.discount_percent:.0f}%",
            str(r.gap_months),
            _plain(f"${r.annual_out_of_pocket:,.2f}"),
            _plain(f"${r.savings:,.2f}"),
        ])
        row_colors.append("#3a2e05" if r.is_plan_level else CARD)

    tbl = ax_tbl.table(cellText=cell_data, colLabels=cols,
                       loc="center", cellLoc="center")
    tbl.auto_set_font_size(False)
    tbl.set_fontsize(8)
    tbl.scale(1, 1.4)

    for (row, col), cell in tbl.get_celld().items():
        cell.set_edgecolor(BORDER)
        if row == 0:
            cell.set_facecolor(BG)
            cell.set_text_props(fontweight="bold", color=SLATE)
        else:
            cell.set_facecolor(row_colors[row - 1])
            cell.set_text_props(color=EMERALD if col == 3 else TEXT)

    return fig


# ═══════════════════════════════════════════════════════════════════
# Monthly cost sweep
# ═══════════════════════════════════════════════════════════════════

def _chart_cost_sweep(sweep: GridResult, result: ProjectionResult,
                      figsize=(WEB_W, WEB_H - 1)) -> plt.Figure:
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=figsize, constrained_layout=True)
    _style(fig, ax1, ax2)

    costs = sweep.monthly_costs

    ax1.plot(costs, sweep.annual_out_of_pocket, color=EMERALD, linewidth=2,
             marker="o", markersize=4, label="Annual out-of-pocket")
    ax1.axvline(result.total_monthly_cost, color=AMBER, linewidth=1.2,
                linestyle="--", label="Your drugs")
    ax1.xaxis.set_major_formatter(USD_FMT)
    ax1.yaxis.set_major_formatter(USD_FMT)
    ax1.set_xlabel("Monthly Drug Cost")
    ax1.set_ylabel("Annual Out-of-Pocket")
    ax1.set_title("Annual Cost vs Monthly Spend", fontsize=11, pad=10)
    _legend(ax1)

    ax2.plot(costs, sweep.gap_entry_month, color=AMBER, linewidth=2,
             marker="o", markersize=4, label="Gap starts")
    ax2.plot(costs, sweep.catastrophic_entry_month, color=RED, linewidth=2,
             marker="o", markersize=4, label="Catastrophic starts")
    ax2.set_ylim(0, cfg.MONTHS_PER_YEAR + 1)
    ax2.invert_yaxis()
    ax2.xaxis.set_major_formatter(USD_FMT)
    ax2.set_xlabel("Monthly Drug Cost")
    ax2.set_ylabel("Month")
    ax2.set_title("When Each Phase Begins", fontsize=11, pad=10)
    _legend(ax2, loc="lower right")

    fig.suptitle("The Big Picture: Where the Donut Hole Bites",
                 fontsize=13, color=TEXT, fontweight="bold")
    return fig


# ═══════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════

def figure_to_base64(fig: plt.Figure) -> str:
    """Convert a matplotlib figure to a base64-encoded PNG string."""
    buf = io.BytesIO()
    fig.savefig(buf, format="png", facecolor=fig.get_facecolor(),
                dpi=120, bbox_inches="tight")
    buf.seek(0)
    b64 = base64.b64encode(buf.read()).decode()
    buf.close()
    return b64


def generate_pdf(
    result: ProjectionResult,
    table: DiscountTable,
    sweep: Optional[GridResult],
    d: Dict[str, Any],
    summary_text: str,
    path: str = cfg.PDF_PATH,
) -> str:
    """Generate the full PDF report. Returns the file path."""
    pages = [
        _page1_summary(d, summary_text),
        _chart_monthly_oop(result, figsize=(A4W, A4H * 0.5)),
        _chart_cumulative(result, figsize=(A4W, A4H * 0.5)),
        _page_discount(table),
    ]
    if sweep is not None:
        pages.append(_chart_cost_sweep(sweep, result, figsize=(A4W, A4H * 0.45)))

    with PdfPages(path) as pdf:
        for fig in pages:
            pdf.savefig(fig, facecolor=fig.get_facecolor())
    for fig in pages:
        plt.close(fig)
    return path


def get_web_charts(
    result: ProjectionResult,
    table: DiscountTable,
    sweep: Optional[GridResult],
) -> List[str]:
    """Return base64-encoded PNG chart images for web embedding.

    Returns up to 4 charts:
      [0] Monthly out-of-pocket by phase
      [1] Cumulative spend vs limits
      [2] Gap discount sensitivity
      [3] Monthly cost sweep (when a sweep is given)
    """
    chart_figs = [
        _chart_monthly_oop(result),
        _chart_cumulative(result),
        _chart_discount_bar(table),
    ]
    if sweep is not None:
        chart_figs.append(_chart_cost_sweep(sweep, result))

    images = [figure_to_base64(f) for f in chart_figs]
    for f in chart_figs:
        plt.close(f)
    return images
