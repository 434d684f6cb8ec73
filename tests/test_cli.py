"""Tests for display-data computation and the terminal workflow."""

import pytest

import cli
from projector import DrugCost, PlanParameters, discount_table, project


@pytest.fixture
def standard():
    drugs = [DrugCost("Eliquis", 950)]
    plan = PlanParameters(4660, 7400, 75)
    result = project(drugs, plan)
    table = discount_table(drugs, plan)
    return drugs, plan, result, table


def _feed(monkeypatch, answers):
    it = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(it))


class TestFormatting:
    def test_fmt(self):
        assert cli.fmt(2090) == "$2,090"
        assert cli.fmt(237.5, 2) == "$237.50"

    def test_pct(self):
        assert cli.pct(17.456) == "17.5%"

    def test_month_str(self):
        assert cli.month_str(5) == "Month 5"
        assert cli.month_str(None) == "Not reached"


class TestDisplayData:
    def test_metrics(self, standard):
        d = cli.compute_display_data(*standard)
        assert d["annual_oop"] == pytest.approx(2090.0)
        assert d["annual_retail"] == 11_400
        assert d["plan_paid"] == pytest.approx(9310.0)
        assert d["months_initial"] == 5
        assert d["months_gap"] == 3
        assert d["months_catastrophic"] == 4
        assert d["plan_discount_savings"] == pytest.approx(3 * 950 * 0.75)
        assert d["progress_pct"] == pytest.approx(2090 / 7400 * 100)

    def test_summary_mentions_phases(self, standard):
        text = cli.generate_summary_text(cli.compute_display_data(*standard))
        assert "month 5" in text
        assert "month 8" in text
        assert "$2,090" in text

    def test_summary_when_gap_not_reached(self):
        drugs = [DrugCost("Generic", 100)]
        plan = PlanParameters(4660, 7400, 75)
        d = cli.compute_display_data(drugs, plan, project(drugs, plan),
                                     discount_table(drugs, plan))
        text = cli.generate_summary_text(d)
        assert "Initial Coverage all year" in text
        assert "$3,460 short" in text


class TestPrompts:
    def test_prompt_float_retries(self, monkeypatch, capsys):
        _feed(monkeypatch, ["abc", "-5", "$1,200"])
        assert cli._prompt_float("Cost", "$950", 0.01, currency=True) == 1200
        out = capsys.readouterr().out
        assert "Invalid number" in out
        assert "Must be at least" in out

    @pytest.mark.parametrize("bad", ["inf", "nan", "-inf"])
    def test_prompt_float_rejects_non_finite(self, monkeypatch, capsys, bad):
        _feed(monkeypatch, [bad, "950"])
        assert cli._prompt_float("Cost", "$950", 0.01, currency=True) == 950
        assert "Invalid number" in capsys.readouterr().out

    @pytest.mark.parametrize("bad", ["inf", "nan"])
    def test_collect_drugs_reprompts_non_finite_cost(self, monkeypatch, bad):
        _feed(monkeypatch, ["1", "Eliquis", bad, "950"])
        drugs = cli.collect_drugs()
        assert drugs[0].monthly_cost == 950

    def test_collect_prescriptions_reprompts_non_finite_cost(self, monkeypatch):
        _feed(monkeypatch, ["1", "Rx", "inf", "100", "monthly", ""])
        rx = cli.collect_prescriptions()
        assert rx[0].cost == 100
        assert rx[0].insurance_copay is None

    def test_negative_copay_reprompts(self, monkeypatch, capsys):
        _feed(monkeypatch, ["1", "Rx", "100", "monthly", "-20", "abc", "15"])
        rx = cli.collect_prescriptions()
        assert rx[0].insurance_copay == 15
        out = capsys.readouterr().out
        assert "cannot be negative" in out
        assert "Invalid number" in out

    def test_collect_plan_reprompts_on_misordered_limits(self, monkeypatch, capsys):
        _feed(monkeypatch, ["5000", "3000", "75", "", "", ""])
        plan = cli.collect_plan()
        assert plan.initial_coverage_limit == 4660
        assert plan.catastrophic_coverage_limit == 7400
        assert "must be greater" in capsys.readouterr().out

    def test_collect_inputs(self, monkeypatch):
        _feed(monkeypatch, ["2", "Eliquis", "800", "", "150", "", "", "70"])
        drugs, plan = cli.collect_inputs()
        assert [d.name for d in drugs] == ["Eliquis", "Drug 2"]
        assert sum(d.monthly_cost for d in drugs) == 950
        assert plan.coverage_gap_discount_percent == 70


class TestRunCli:
    def test_full_run_without_pdf(self, monkeypatch, capsys):
        _feed(monkeypatch, ["1", "Eliquis", "950", "", "", ""])
        cli.run_cli(pdf_path=None)
        out = capsys.readouterr().out
        assert "MONTH BY MONTH" in out
        assert "Month 5" in out
        assert "$2,090.00" in out

    def test_full_run_with_pdf(self, monkeypatch, tmp_path):
        path = tmp_path / "report.pdf"
        _feed(monkeypatch, ["1", "Eliquis", "950", "", "", ""])
        cli.run_cli(pdf_path=str(path))
        assert path.exists()

    def test_refills_run(self, monkeypatch, capsys):
        _feed(monkeypatch, ["1", "Eliquis", "500", "90-day", "45"])
        cli.run_refills_cli()
        out = capsys.readouterr().out
        assert "ANNUAL REFILL COSTS" in out
        assert "$180.00" in out
