"""Tests for chart and PDF rendering."""

import base64
import io

import matplotlib.pyplot as plt
import pytest

import cli
import report
from projector import DrugCost, PlanParameters, cost_sweep, discount_table, project


@pytest.fixture
def bundle():
    drugs = [DrugCost("Eliquis", 950), DrugCost("Jardiance", 550)]
    plan = PlanParameters(5030, 8000, 75)
    result = project(drugs, plan)
    table = discount_table(drugs, plan)
    sweep = cost_sweep(plan)
    d = cli.compute_display_data(drugs, plan, result, table)
    return result, table, sweep, d, cli.generate_summary_text(d)


def test_usd_formatter():
    assert report._usd_fmt(950, None) == "$950"
    assert report._usd_fmt(7400, None) == "$7,400"
    assert report._usd_fmt(25_000, None) == "$25k"
    assert report._usd_fmt(2_500_000, None) == "$2.5M"


def test_web_charts_are_png(bundle):
    result, table, sweep, _, _ = bundle
    images = report.get_web_charts(result, table, sweep)
    assert len(images) == 4
    for img in images:
        assert base64.b64decode(img)[:8] == b"\x89PNG\r\n\x1a\n"


def test_web_charts_without_sweep(bundle):
    result, table, _, _, _ = bundle
    assert len(report.get_web_charts(result, table, None)) == 3


def test_generate_pdf(bundle, tmp_path):
    result, table, sweep, d, text = bundle
    path = report.generate_pdf(result, table, sweep, d, text, str(tmp_path / "out.pdf"))
    with open(path, "rb") as fh:
        assert fh.read(4) == b"%PDF"


def test_pdf_when_gap_never_reached(tmp_path):
    drugs = [DrugCost("Generic", 20)]
    plan = PlanParameters(5030, 8000, 75)
    result = project(drugs, plan)
    table = discount_table(drugs, plan)
    d = cli.compute_display_data(drugs, plan, result, table)
    path = report.generate_pdf(result, table, None, d, cli.generate_summary_text(d),
                               str(tmp_path / "quiet.pdf"))
    assert (tmp_path / "quiet.pdf").exists()
    assert path.endswith("quiet.pdf")


def test_dollar_signs_escaped():
    assert report._plain("$950/mo  |  $11,400/yr") == r"\$950/mo  |  \$11,400/yr"


def test_summary_page_with_several_amounts(bundle):
    _, _, _, d, _ = bundle
    fig = report._page1_summary(d, "You pay $2,090 of $11,400 retail; the discount saves $1,425.")
    buf = io.BytesIO()
    fig.savefig(buf, format="png")
    plt.close(fig)
    texts = [t.get_text() for t in fig.texts]
    assert any(r"\$2,090 of \$11,400" in t for t in texts)
    assert buf.getvalue()[:8] == b"\x89PNG\r\n\x1a\n"
