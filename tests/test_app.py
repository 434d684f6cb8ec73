"""Tests for the Flask web form."""

import pytest
from werkzeug.datastructures import MultiDict

import app as webapp
from projector import InvalidInput


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(webapp, "PDF_PATH", str(tmp_path / "report.pdf"))
    webapp.app.config["TESTING"] = True
    with webapp.app.test_client() as c:
        yield c


def _form(**overrides):
    data = MultiDict([
        ("drug_name", "Eliquis"), ("drug_cost", "950"),
        ("drug_name", ""), ("drug_cost", ""),
        ("initial_limit", "4,660"),
        ("catastrophic_limit", "$7,400"),
        ("gap_discount", "75"),
    ])
    for key, value in overrides.items():
        data.setlist(key, value if isinstance(value, list) else [value])
    return data


class TestParseForm:
    def test_parses_drugs_and_plan(self):
        drugs, plan = webapp.parse_form(_form())
        assert len(drugs) == 1
        assert drugs[0].monthly_cost == 950
        assert plan.initial_coverage_limit == 4660
        assert plan.catastrophic_coverage_limit == 7400

    def test_blank_rows_only(self):
        with pytest.raises(InvalidInput, match="at least one drug"):
            webapp.parse_form(_form(drug_name=["", ""], drug_cost=["", ""]))

    def test_non_numeric_cost(self):
        with pytest.raises(InvalidInput, match="must be a number"):
            webapp.parse_form(_form(drug_cost=["lots", ""]))

    def test_misordered_limits(self):
        with pytest.raises(InvalidInput, match="greater"):
            webapp.parse_form(_form(catastrophic_limit="4000"))

    def test_refill_form(self):
        form = MultiDict([
            ("rx_name", "Eliquis"), ("rx_cost", "500"),
            ("rx_frequency", "90-day"), ("rx_copay", "45"),
            ("rx_name", ""), ("rx_cost", ""),
            ("rx_frequency", "monthly"), ("rx_copay", ""),
        ])
        rx = webapp.parse_refill_form(form)
        assert len(rx) == 1
        assert rx[0].insurance_copay == 45


class TestRoutes:
    def test_get_index(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert b"Coverage Gap Estimator" in resp.data
        assert b"4660" in resp.data

    def test_post_projection(self, client, tmp_path):
        resp = client.post("/", data=_form())
        assert resp.status_code == 200
        assert b"Month 5" in resp.data
        assert b"Month 8" in resp.data
        assert b"$2,090.00" in resp.data
        assert b"data:image/png;base64," in resp.data
        assert (tmp_path / "report.pdf").exists()

    def test_post_invalid_returns_400(self, client):
        resp = client.post("/", data=_form(gap_discount="150"))
        assert resp.status_code == 400
        assert b"between 0 and 100" in resp.data

    def test_download_before_run(self, client):
        resp = client.get("/download-pdf")
        assert resp.status_code == 404

    def test_download_after_run(self, client):
        client.post("/", data=_form())
        resp = client.get("/download-pdf")
        assert resp.status_code == 200
        assert resp.data[:4] == b"%PDF"

    def test_refills_page(self, client):
        assert client.get("/refills").status_code == 200
        resp = client.post("/refills", data=MultiDict([
            ("rx_name", "Eliquis"), ("rx_cost", "500"),
            ("rx_frequency", "90-day"), ("rx_copay", "45"),
        ]))
        assert resp.status_code == 200
        assert b"$180.00" in resp.data

    def test_refills_invalid(self, client):
        resp = client.post("/refills", data=MultiDict([
            ("rx_name", "Eliquis"), ("rx_cost", "0"),
            ("rx_frequency", "monthly"), ("rx_copay", ""),
        ]))
        assert resp.status_code == 400
