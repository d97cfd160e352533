"""Tests for the command-line interface."""

import json

import pytest

from nexus_engine.cli import build_parser, main


@pytest.fixture
def sales_csv(tmp_path):
    path = tmp_path / "sales.csv"
    path.write_text(
        "jurisdiction,direct_revenue,direct_transactions\n"
        "TX,600000,900\n"
        "FL,95000,80\n",
        encoding="utf-8",
    )
    return path


def test_parser_requires_growth_for_scenario():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["scenario", "--file", "x.csv"])


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 0


def test_evaluate_single_state(capsys):
    main(["evaluate", "--state", "FL", "--direct-revenue", "95000"])
    out = capsys.readouterr().out
    assert "Florida" in out
    assert "95.0%" in out


def test_evaluate_unknown_state_exits(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["evaluate", "--state", "ZZ", "--direct-revenue", "1"])
    assert exc.value.code == 1
    assert "Unknown jurisdiction code" in capsys.readouterr().out


def test_evaluate_file_exports_json(sales_csv, tmp_path):
    main(
        [
            "evaluate",
            "--file",
            str(sales_csv),
            "--output-dir",
            str(tmp_path / "out"),
            "--export-json",
            "nexus.json",
        ]
    )
    data = json.loads((tmp_path / "out" / "nexus.json").read_text(encoding="utf-8"))
    assert data["requiring_action"] == ["TX", "FL"]


def test_scenario_exports_csv(sales_csv, tmp_path, capsys):
    main(
        [
            "scenario",
            "--file",
            str(sales_csv),
            "--growth",
            "10",
            "--output-dir",
            str(tmp_path / "out"),
            "--export-csv",
            "changes.csv",
        ]
    )
    csv_text = (tmp_path / "out" / "changes.csv").read_text(encoding="utf-8")
    assert "FL" in csv_text
    assert "Scenario Summary" in capsys.readouterr().out


def test_missing_sales_file_exits(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main(["evaluate", "--file", str(tmp_path / "missing.csv")])
    assert exc.value.code == 1


def test_jurisdictions_lookup(capsys):
    main(["jurisdictions", "--state", "NY"])
    out = capsys.readouterr().out
    assert "New York" in out


def test_custom_rules_file(tmp_path, capsys):
    rules = tmp_path / "rules.json"
    rules.write_text(
        json.dumps(
            {
                "XX": {
                    "name": "Example",
                    "has_tax": True,
                    "revenue_threshold": 1000,
                    "threshold_type": "REVENUE_ONLY",
                }
            }
        ),
        encoding="utf-8",
    )
    main(["--rules", str(rules), "evaluate", "--state", "XX", "--direct-revenue", "1000"])
    assert "Example" in capsys.readouterr().out


def test_scenario_without_export_writes_nothing(sales_csv, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    main(["scenario", "--file", str(sales_csv), "--growth", "10"])
    assert not (tmp_path / "reports").exists()


def test_jurisdictions_lookup_shows_compliance_info(capsys):
    main(["jurisdictions", "--state", "CO"])
    out = capsys.readouterr().out
    assert "Filing Frequency" in out
    assert "Registration Timing" in out
    assert "Special Rules" in out
