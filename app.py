"""
Flask web application for the Medicare Part D coverage gap projector.

Single-file app using render_template_string.  Run via ``python main.py``
which starts the dev server on localhost:5000.
"""

from __future__ import annotations

import logging
import os
from typing import List, Tuple

from flask import Flask, render_template_string, request, send_file

import config as cfg
from projector import (
    DrugCost,
    InvalidInput,
    PlanParameters,
    cost_sweep,
    discount_table,
    project,
    validate_limit_order,
)
from refills import Prescription, estimate_refills
from cli import (
    compute_display_data,
    generate_summary_text,
    fmt,
    pct,
    month_str,
)
import report

logger = logging.getLogger(__name__)

app = Flask(__name__)

PDF_PATH = cfg.PDF_PATH
MIN_DRUG_ROWS = 3

# ═══════════════════════════════════════════════════════════════════
# Form parsing
# ═══════════════════════════════════════════════════════════════════

def _parse_number(label: str, s: str) -> float:
    try:
        return float(s.replace("$", "").replace("%", "").replace(",", "").replace(" ", ""))
    except ValueError:
        raise InvalidInput(f"{label} must be a number") from None


def _drug_rows(form) -> List[Tuple[str, str]]:
    """Pair up the repeated name/cost fields, dropping fully blank rows."""
    names = form.getlist("drug_name")
    costs = form.getlist("drug_cost")
    rows = []
    for i in range(max(len(names), len(costs))):
        name = names[i].strip() if i < len(names) else ""
        cost = costs[i].strip() if i < len(costs) else ""
        if name or cost:
            rows.append((name, cost))
    return rows


def parse_form(form) -> Tuple[List[DrugCost], PlanParameters]:
    """Parse the HTML form into drugs and plan parameters.

    Rejects misordered limits here so the projector only ever sees a
    consistent plan.
    """
    drugs = []
    for name, cost in _drug_rows(form):
        drugs.append(DrugCost(
            name=name,
            monthly_cost=_parse_number(f"Monthly cost for {name or 'drug'}", cost),
        ))
    if not drugs:
        raise InvalidInput("Please add at least one drug")

    plan = PlanParameters(
        initial_coverage_limit=_parse_number(
            "Initial coverage limit",
            form.get("initial_limit", str(cfg.DEFAULT_INITIAL_COVERAGE_LIMIT))),
        catastrophic_coverage_limit=_parse_number(
            "Catastrophic limit",
            form.get("catastrophic_limit", str(cfg.DEFAULT_CATASTROPHIC_COVERAGE_LIMIT))),
        coverage_gap_discount_percent=_parse_number(
            "Coverage gap discount",
            form.get("gap_discount", str(cfg.DEFAULT_GAP_DISCOUNT_PERCENT))),
    )
    validate_limit_order(plan)
    return drugs, plan


def parse_refill_form(form) -> List[Prescription]:
    names = form.getlist("rx_name")
    costs = form.getlist("rx_cost")
    freqs = form.getlist("rx_frequency")
    copays = form.getlist("rx_copay")
    prescriptions = []
    for i, name in enumerate(names):
        cost = costs[i].strip() if i < len(costs) else ""
        if not name.strip() and not cost:
            continue
        copay = copays[i].strip() if i < len(copays) else ""
        prescriptions.append(Prescription(
            name=name.strip(),
            cost=_parse_number(f"Cost for {name or 'prescription'}", cost),
            frequency=freqs[i] if i < len(freqs) else "monthly",
            insurance_copay=_parse_number("Copay", copay) if copay else None,
        ))
    if not prescriptions:
        raise InvalidInput("Please add at least one prescription")
    return prescriptions


# ═══════════════════════════════════════════════════════════════════
# HTML Templates
# ═══════════════════════════════════════════════════════════════════

BASE_CSS = r"""
  *{margin:0;padding:0;box-sizing:border-box}
  :root{
    --bg-deep:#050816;--bg-surface:rgba(15,23,42,0.55);--bg-input:rgba(8,11,22,0.85);
    --border-subtle:rgba(99,102,241,0.1);--text-primary:#f1f5f9;--text-secondary:#94a3b8;
    --text-muted:#64748b;--indigo:#818cf8;--emerald:#34d399;--amber:#fbbf24;--red:#f87171;
    --radius-lg:16px;--radius-md:10px;
  }
  body{background:var(--bg-deep);color:var(--text-primary);
    font-family:'Inter',system-ui,-apple-system,sans-serif;line-height:1.6;min-height:100vh}
  .container{max-width:1040px;margin:0 auto;padding:2rem 1.5rem}
  .hero{text-align:center;padding:1.5rem 0 2rem}
  .hero h1{font-size:clamp(1.5rem,4vw,2.3rem);font-weight:800;letter-spacing:-.03em;
    background:linear-gradient(135deg,#e2e8f0 0%,#818cf8 45%,#34d399 100%);
    -webkit-background-clip:text;-webkit-text-fill-color:transparent;background-clip:text}
  .hero-sub{color:var(--text-secondary);margin-top:.5rem;font-size:.92rem}
  .nav{margin-top:.8rem;font-size:.82rem}
  .nav a{color:var(--indigo);text-decoration:none;margin:0 .5rem}
  .card{background:var(--bg-surface);border:1px solid var(--border-subtle);
    border-radius:var(--radius-lg);padding:1.6rem;margin-bottom:1.3rem}
  h2{font-size:1.1rem;font-weight:700;margin-bottom:1rem}
  .form-grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(240px,1fr));gap:1rem 1.5rem}
  .drug-row{display:grid;grid-template-columns:2fr 1fr;gap:1rem;margin-bottom:.7rem}
  .rx-row{display:grid;grid-template-columns:2fr 1fr 1fr 1fr;gap:1rem;margin-bottom:.7rem}
  .form-group{display:flex;flex-direction:column}
  .form-group label{font-size:.78rem;color:var(--text-secondary);margin-bottom:.3rem;font-weight:500}
  input,select{background:var(--bg-input);border:1px solid rgba(71,85,105,.35);
    border-radius:var(--radius-md);color:var(--text-primary);padding:.55rem .8rem;font-size:.88rem}
  .btn{display:inline-flex;align-items:center;gap:.4rem;border:none;border-radius:var(--radius-md);
    padding:.65rem 1.3rem;font-weight:600;font-size:.88rem;cursor:pointer;text-decoration:none}
  .btn-primary{background:linear-gradient(135deg,#6366f1,#8b5cf6);color:#fff}
  .btn-ghost{background:transparent;color:var(--indigo);border:1px solid rgba(99,102,241,.3)}
  .btn-success{background:linear-gradient(135deg,#10b981,#059669);color:#fff}
  .error{background:rgba(248,113,113,.1);border:1px solid rgba(248,113,113,.35);
    color:var(--red);border-radius:var(--radius-md);padding:.8rem 1rem;margin-bottom:1.3rem}
  .stat-row{display:flex;justify-content:space-between;padding:.45rem 0;
    border-bottom:1px solid rgba(51,65,85,.25);font-size:.88rem}
  .stat-label{color:var(--text-secondary)}
  .stat-value{font-weight:600}
  .big{font-size:2rem;font-weight:800;color:var(--emerald)}
  .progress{height:12px;background:rgba(51,65,85,.4);border-radius:6px;overflow:hidden;margin:.6rem 0}
  .progress-bar{height:100%;background:linear-gradient(90deg,#34d399,#fbbf24)}
  table{width:100%;border-collapse:collapse;font-size:.85rem}
  th{color:var(--text-secondary);font-weight:600;text-align:right;padding:.45rem .6rem;
    border-bottom:1px solid rgba(51,65,85,.5)}
  td{text-align:right;padding:.4rem .6rem;border-bottom:1px solid rgba(51,65,85,.2)}
  th:first-child,td:first-child{text-align:left}
  .ph-initial{color:var(--emerald)}.ph-gap{color:var(--amber)}.ph-catastrophic{color:var(--indigo)}
  .plan-row{background:rgba(251,191,36,.08)}
  .summary{color:var(--text-secondary);font-size:.9rem;margin-top:1rem}
  .chart-img{width:100%;border-radius:var(--radius-md);margin-top:.5rem}
  .footer{text-align:center;color:var(--text-muted);font-size:.75rem;padding:2rem 0}
"""

HTML_TEMPLATE = r"""
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Medicare Part D Coverage Gap Estimator</title>
<style>{{ css|safe }}</style>
</head>
<body>
<div class="container">

<div class="hero">
  <h1>Medicare Part D Coverage Gap Estimator</h1>
  <p class="hero-sub">See when you enter the donut hole, when catastrophic coverage starts, and what you'll pay over the year.</p>
  <div class="nav"><a href="/">Coverage gap</a>&middot;<a href="/refills">Refill costs</a></div>
</div>

{% if error %}<div class="error">{{ error }}</div>{% endif %}

<div class="card">
  <form method="POST" action="/" id="gap-form">
    <h2>Your Drugs</h2>
    <div id="drug-rows">
      {% for name, cost in drug_rows %}
      <div class="drug-row">
        <div class="form-group"><label>Drug name</label>
          <input type="text" name="drug_name" value="{{ name }}" placeholder="e.g., Eliquis"></div>
        <div class="form-group"><label>Monthly cost ($)</label>
          <input type="text" name="drug_cost" value="{{ cost }}" placeholder="e.g., 950"></div>
      </div>
      {% endfor %}
    </div>
    <button type="button" class="btn btn-ghost" id="add-drug">+ Add drug</button>

    <h2 style="margin-top:1.5rem">Plan Limits ({{ base_year }} Standard)</h2>
    <div class="form-grid">
      <div class="form-group"><label>Initial coverage limit ($)</label>
        <input type="text" name="initial_limit" value="{{ form.initial_limit or defaults.initial }}"></div>
      <div class="form-group"><label>Catastrophic limit ($)</label>
        <input type="text" name="catastrophic_limit" value="{{ form.catastrophic_limit or defaults.catastrophic }}"></div>
      <div class="form-group"><label>Coverage gap discount (%)</label>
        <input type="number" step="0.1" min="0" max="100" name="gap_discount" value="{{ form.gap_discount or defaults.discount }}"></div>
    </div>
    <div style="margin-top:1.2rem"><button type="submit" class="btn btn-primary">Estimate Costs</button></div>
  </form>
</div>

{% if d %}
<div class="card">
  <h2>Your Year at a Glance</h2>
  <div class="big">{{ fmt(d.annual_oop, 2) }}</div>
  <div class="stat-label">estimated out-of-pocket for the year</div>
  <div class="progress"><div class="progress-bar" style="width:{{ '%.0f'|format(d.progress_pct) }}%"></div></div>
  <div class="stat-label" style="font-size:.78rem">{{ fmt(d.annual_oop) }} of {{ fmt(d.catastrophic_limit) }} catastrophic limit</div>
  <div style="margin-top:1rem">
    <div class="stat-row"><span class="stat-label">Total monthly drug cost</span><span class="stat-value">{{ fmt(d.total_monthly_cost, 2) }}</span></div>
    <div class="stat-row"><span class="stat-label">Coverage gap starts</span><span class="stat-value ph-gap">{{ month_str(d.gap_entry_month) }}</span></div>
    <div class="stat-row"><span class="stat-label">Catastrophic coverage starts</span><span class="stat-value ph-catastrophic">{{ month_str(d.catastrophic_entry_month) }}</span></div>
    <div class="stat-row"><span class="stat-label">Average per month</span><span class="stat-value">{{ fmt(d.monthly_avg_oop, 2) }}</span></div>
    <div class="stat-row"><span class="stat-label">Plan pays</span><span class="stat-value">{{ fmt(d.plan_paid, 2) }}</span></div>
    <div class="stat-row"><span class="stat-label">Share of retail you pay</span><span class="stat-value">{{ pct(d.effective_pct) }}</span></div>
  </div>
  <p class="summary">{{ summary_text }}</p>
</div>

<div class="card">
  <h2>Month by Month</h2>
  <table>
    <thead><tr><th>Month</th><th>Phase</th><th>Drug cost</th><th>You pay</th><th>Cumulative spend</th></tr></thead>
    <tbody>
    {% for r in d.records %}
      <tr><td>{{ r.month }}</td><td class="ph-{{ r.phase }}">{{ r.phase_label }}</td>
        <td>{{ fmt(r.retail_cost, 2) }}</td><td>{{ fmt(r.out_of_pocket, 2) }}</td><td>{{ fmt(r.cumulative_retail_spend) }}</td></tr>
    {% endfor %}
    </tbody>
  </table>
</div>

<div class="card">
  <h2>How Much Does the Gap Discount Matter?</h2>
  <table>
    <thead><tr><th>Discount</th><th>Gap months</th><th>Annual out-of-pocket</th><th>Savings</th></tr></thead>
    <tbody>
    {% for r in d.discount_table.rows %}
      <tr class="{{ 'plan-row' if r.is_plan_level }}"><td>{{ pct(r.discount_percent, 0) }}</td><td>{{ r.gap_months }}</td>
        <td>{{ fmt(r.annual_out_of_pocket, 2) }}</td><td>{{ fmt(r.savings, 2) }}</td></tr>
    {% endfor %}
    </tbody>
  </table>
</div>

{% for title, img in charts %}
<div class="card">
  <h2>{{ title }}</h2>
  <img class="chart-img" src="data:image/png;base64,{{ img }}" alt="{{ title }}">
</div>
{% endfor %}

<div style="text-align:center;margin:1rem 0 2rem">
  <a href="/download-pdf" class="btn btn-success">Download PDF Report</a>
</div>
{% endif %}

<div class="footer">Estimate only &middot; actual costs depend on your plan's deductible, formulary and pharmacy</div>
</div>
<script>
document.getElementById('add-drug').addEventListener('click',function(){
  var rows=document.getElementById('drug-rows');
  var row=rows.lastElementChild.cloneNode(true);
  row.querySelectorAll('input').forEach(function(i){i.value=''});
  rows.appendChild(row);
});
</script>
</body>
</html>
"""

REFILL_TEMPLATE = r"""
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Prescription Refill Cost Estimator</title>
<style>{{ css|safe }}</style>
</head>
<body>
<div class="container">

<div class="hero">
  <h1>Prescription Refill Cost Estimator</h1>
  <p class="hero-sub">Estimate your annual out-of-pocket costs for recurring prescription medications.</p>
  <div class="nav"><a href="/">Coverage gap</a>&middot;<a href="/refills">Refill costs</a></div>
</div>

{% if error %}<div class="error">{{ error }}</div>{% endif %}

<div class="card">
  <form method="POST" action="/refills">
    <h2>Your Prescriptions</h2>
    {% for i in range(rows) %}
    <div class="rx-row">
      <div class="form-group"><label>Name</label><input type="text" name="rx_name"></div>
      <div class="form-group"><label>Cost per refill ($)</label><input type="text" name="rx_cost"></div>
      <div class="form-group"><label>Frequency</label>
        <select name="rx_frequency">
          {% for f in frequencies %}<option value="{{ f }}">{{ f }}</option>{% endfor %}
        </select></div>
      <div class="form-group"><label>Copay ($, optional)</label><input type="text" name="rx_copay"></div>
    </div>
    {% endfor %}
    <div style="margin-top:1.2rem"><button type="submit" class="btn btn-primary">Estimate Costs</button></div>
  </form>
</div>

{% if est %}
<div class="card">
  <h2>Annual Costs</h2>
  <table>
    <thead><tr><th>Prescription</th><th>Annual cost</th><th>You pay</th><th>Insurance pays</th></tr></thead>
    <tbody>
    {% for r in est.rows %}
      <tr><td>{{ r.name }}</td><td>{{ fmt(r.annual_cost, 2) }}</td><td>{{ fmt(r.out_of_pocket, 2) }}</td><td>{{ fmt(r.insurance_pays, 2) }}</td></tr>
    {% endfor %}
    </tbody>
  </table>
  <div style="margin-top:1rem">
    <div class="stat-row"><span class="stat-label">Total annual cost</span><span class="stat-value">{{ fmt(est.total_annual_cost, 2) }}</span></div>
    <div class="stat-row"><span class="stat-label">Your total annual cost</span><span class="stat-value">{{ fmt(est.total_annual_copay, 2) }}</span></div>
    <div class="stat-row"><span class="stat-label">Insurance pays</span><span class="stat-value">{{ fmt(est.total_insurance_pays, 2) }}</span></div>
  </div>
</div>
{% endif %}

</div>
</body>
</html>
"""

CHART_TITLES = [
    "Monthly Out-of-Pocket by Phase",
    "Spending Toward the Coverage Limits",
    "Annual Cost by Gap Discount",
    "The Big Picture",
]


def _render(form: dict, drug_rows, d=None, charts=None, summary_text="",
            error=None, status=200):
    rows = list(drug_rows)
    while len(rows) < MIN_DRUG_ROWS:
        rows.append(("", ""))
    html = render_template_string(
        HTML_TEMPLATE,
        css=BASE_CSS,
        form=form,
        drug_rows=rows,
        defaults={
            "initial": cfg.DEFAULT_INITIAL_COVERAGE_LIMIT,
            "catastrophic": cfg.DEFAULT_CATASTROPHIC_COVERAGE_LIMIT,
            "discount": cfg.DEFAULT_GAP_DISCOUNT_PERCENT,
        },
        base_year=cfg.BASE_PLAN_YEAR,
        d=d,
        charts=list(zip(CHART_TITLES, charts or [])),
        summary_text=summary_text,
        error=error,
        fmt=fmt,
        pct=pct,
        month_str=month_str,
    )
    return html, status


# ═══════════════════════════════════════════════════════════════════
# Routes
# ═══════════════════════════════════════════════════════════════════

@app.route("/", methods=["GET", "POST"])
def index():
    if request.method == "GET":
        return _render({}, [])

    # POST: run projection
    form = request.form.to_dict()
    drug_rows = _drug_rows(request.form)
    try:
        drugs, plan = parse_form(request.form)
    except InvalidInput as exc:
        logger.warning("Rejected coverage gap form: %s", exc)
        return _render(form, drug_rows, error=str(exc), status=400)

    result = project(drugs, plan)
    table = discount_table(drugs, plan)
    sweep = cost_sweep(plan)
    d = compute_display_data(drugs, plan, result, table)
    summary_text = generate_summary_text(d)
    logger.info("Projected %d drug(s): gap month %s, annual out-of-pocket %.2f",
                len(drugs), result.gap_entry_month, result.annual_out_of_pocket)

    # Generate charts for web display
    chart_images = report.get_web_charts(result, table, sweep)

    # Save PDF for download
    report.generate_pdf(result, table, sweep, d, summary_text, PDF_PATH)

    return _render(form, drug_rows, d=d, charts=chart_images,
                   summary_text=summary_text)


@app.route("/refills", methods=["GET", "POST"])
def refills():
    ctx = dict(css=BASE_CSS, rows=MIN_DRUG_ROWS,
               frequencies=list(cfg.REFILLS_PER_YEAR), fmt=fmt, est=None, error=None)
    if request.method == "GET":
        return render_template_string(REFILL_TEMPLATE, **ctx)

    try:
        est = estimate_refills(parse_refill_form(request.form))
    except InvalidInput as exc:
        logger.warning("Rejected refill form: %s", exc)
        ctx["error"] = str(exc)
        return render_template_string(REFILL_TEMPLATE, **ctx), 400

    ctx["est"] = est
    return render_template_string(REFILL_TEMPLATE, **ctx)


@app.route("/download-pdf")
def download_pdf():
    if os.path.exists(PDF_PATH):
        return send_file(os.path.abspath(PDF_PATH), as_attachment=True,
                         download_name="coverage_gap_report.pdf")
    return "No report generated yet. Run a projection first.", 404


# ═══════════════════════════════════════════════════════════════════
# Entry point
# ═══════════════════════════════════════════════════════════════════

def run_web(debug: bool = True) -> None:
    """Start the Flask development server and open browser."""
    import webbrowser
    import threading

    url = f"http://{cfg.WEB_HOST}:{cfg.WEB_PORT}"
    logger.info("Starting web app at %s", url)
    print(f"Starting web app at {url}")
    threading.Timer(1.0, lambda: webbrowser.open(url)).start()
    app.run(host=cfg.WEB_HOST, port=cfg.WEB_PORT, debug=debug)


if __name__ == "__main__":
    run_web()
