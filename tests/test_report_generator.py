"""Tests for nexus and scenario report generation."""

import json
from decimal import Decimal

import pytest

from nexus_engine.engine import NexusEngine, SalesRecord
from nexus_engine.evaluator import RiskLevel
from nexus_engine.report_generator import ReportGenerator, status_message


@pytest.fixture
def engine() -> NexusEngine:
    return NexusEngine()


@pytest.fixture
def rg(tmp_path) -> ReportGenerator:
    return ReportGenerator(str(tmp_path))


@pytest.fixture
def sales() -> dict[str, SalesRecord]:
    return {
        "TX": SalesRecord(direct_revenue=Decimal("600000"), direct_transactions=900),
        "FL": SalesRecord(direct_revenue=Decimal("95000"), direct_transactions=80),
        "GA": SalesRecord(direct_revenue=Decimal("10000"), direct_transactions=185),
    }


# ── Nexus report ─────────────────────────────────────────────────────


def test_nexus_report_structure(engine, rg, sales):
    results = engine.evaluate_all(sales)
    report = rg.nexus_report(results, engine.summarize(results))
    assert report["report_type"] == "nexus_analysis"
    assert report["summary"]["total_jurisdictions"] == 51
    assert report["summary"]["nexus_established"] == 1
    assert report["requiring_action"] == ["TX", "FL", "GA"]
    first = report["jurisdictions"][0]
    assert first["code"] == "TX"
    assert first["risk_level"] == "NEXUS_ESTABLISHED"
    assert first["triggered_by"] == "revenue"


def test_nexus_report_builds_summary_when_missing(engine, rg, sales):
    results = engine.evaluate_all(sales)
    report = rg.nexus_report(results)
    assert report["summary"] == engine.summarize(results).to_dict()


def test_status_messages(engine):
    established = engine.evaluate("TX", {"direct_revenue": 600000})
    imminent = engine.evaluate("FL", {"direct_revenue": 95000})
    no_tax = engine.evaluate("OR", {"direct_revenue": 95000})
    assert "established in Texas" in status_message(established)
    assert "95.0%" in status_message(imminent)
    assert status_message(no_tax) == "Oregon does not have a sales tax"


# ── Scenario report ──────────────────────────────────────────────────


def test_scenario_report(engine, rg, sales):
    scenario = engine.model_scenario(sales, 10)
    report = rg.scenario_report(scenario)
    assert report["report_type"] == "growth_scenario"
    assert report["growth_percent"] == 10
    assert report["new_nexus_jurisdictions"] == ["FL", "GA"]
    assert report["summary"]["new_nexus_count"] == 2
    changed = {c["code"]: c for c in report["risk_changes"]}
    assert set(changed) == {"FL", "GA"}
    assert changed["FL"]["current_risk"] == RiskLevel.NEXUS_IMMINENT.value
    assert changed["FL"]["new_nexus"] is True


# ── Export ───────────────────────────────────────────────────────────


def test_to_json_writes_file(engine, rg, sales, tmp_path):
    results = engine.evaluate_all(sales)
    json_str = rg.to_json(rg.nexus_report(results), "nexus.json")
    data = json.loads((tmp_path / "nexus.json").read_text(encoding="utf-8"))
    assert data == json.loads(json_str)
    tx = data["jurisdictions"][0]
    assert tx["applicable_revenue"] == 600000.0
    assert tx["revenue_threshold"] == 500000.0


def test_to_csv_jurisdictions(engine, rg, sales, tmp_path):
    results = engine.evaluate_all(sales)
    csv_str = rg.to_csv(rg.nexus_report(results), "nexus.csv")
    lines = csv_str.strip().splitlines()
    assert lines[0].startswith("code,name,risk_level")
    assert len(lines) == 52
    assert (tmp_path / "nexus.csv").exists()


def test_to_csv_empty_section(rg):
    assert rg.to_csv({"jurisdictions": []}) == ""


def test_format_text(engine, rg, sales):
    scenario = engine.model_scenario(sales, 10)
    text = rg.format_text(rg.scenario_report(scenario))
    assert "Growth Scenario" in text
    assert "NEW NEXUS UNDER SCENARIO" in text
    assert "FL: NEXUS_IMMINENT -> NEXUS_ESTABLISHED" in text

    results = engine.evaluate_all(sales)
    text = rg.format_text(rg.nexus_report(results))
    assert "REQUIRING ACTION" in text
    assert "TX: NEXUS_ESTABLISHED" in text
    assert "OR:" not in text


def test_output_dir_created_only_on_export(engine, sales, tmp_path):
    out = tmp_path / "out"
    rg = ReportGenerator(str(out))
    report = rg.scenario_report(engine.model_scenario(sales, 10))
    assert not out.exists()

    rg.to_json(report, "scenario.json")
    assert (out / "scenario.json").exists()


def test_rows_include_compliance_info(engine, rg, sales):
    results = engine.evaluate_all(sales)
    tx = rg.nexus_report(results)["jurisdictions"][0]
    assert tx["code"] == "TX"
    assert tx["filing_frequency"]
    assert tx["registration_timing"]
