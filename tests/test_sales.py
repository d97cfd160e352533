"""Tests for sales CSV loading."""

from decimal import Decimal

import pytest

from nexus_engine.engine import NexusEngine, SalesRecord
from nexus_engine.evaluator import RiskLevel
from nexus_engine.sales import load_sales_csv, sales_from_records


def _write(tmp_path, text: str):
    path = tmp_path / "sales.csv"
    path.write_text(text, encoding="utf-8")
    return path


# ── Summary shape ────────────────────────────────────────────────────


def test_summary_rows(tmp_path):
    path = _write(
        tmp_path,
        "jurisdiction,direct_revenue,direct_transactions,"
        "marketplace_revenue,marketplace_transactions\n"
        "ca,480000,1200,60000,300\n"
        "TX,95000.50,400,,\n",
    )
    sales = load_sales_csv(path)
    assert set(sales) == {"CA", "TX"}
    assert sales["CA"].direct_revenue == Decimal("480000")
    assert sales["CA"].marketplace_transactions == 300
    assert sales["TX"].direct_revenue == Decimal("95000.5")
    assert sales["TX"].marketplace_revenue == Decimal("0")


def test_summary_missing_columns_default_to_zero(tmp_path):
    path = _write(tmp_path, "state,direct_revenue\nGA,50000\n")
    sales = load_sales_csv(path)
    assert sales["GA"].direct_revenue == Decimal("50000")
    assert sales["GA"].direct_transactions == 0


def test_summary_repeated_codes_are_summed(tmp_path):
    path = _write(
        tmp_path,
        "state,direct_revenue,direct_transactions\n"
        "FL,40000,10\n"
        "FL,60000,15\n",
    )
    sales = load_sales_csv(path)
    assert sales["FL"].direct_revenue == Decimal("100000")
    assert sales["FL"].direct_transactions == 25


# ── Transaction shape ────────────────────────────────────────────────


def test_transaction_rows_aggregated_by_channel(tmp_path):
    path = _write(
        tmp_path,
        "state,amount,channel\n"
        "NY,100.00,direct\n"
        "NY,250.00,Marketplace\n"
        "ny,50.00,\n"
        "WA,75.00,direct\n",
    )
    sales = load_sales_csv(path)
    assert sales["NY"].direct_revenue == Decimal("150")
    assert sales["NY"].direct_transactions == 2
    assert sales["NY"].marketplace_revenue == Decimal("250")
    assert sales["NY"].marketplace_transactions == 1
    assert sales["WA"].direct_transactions == 1


def test_transaction_rows_without_channel_are_direct(tmp_path):
    path = _write(tmp_path, "state,amount\nOH,10\nOH,20\n")
    sales = load_sales_csv(path)
    assert sales["OH"].direct_revenue == Decimal("30")
    assert sales["OH"].marketplace_transactions == 0


# ── Exact money ──────────────────────────────────────────────────────


def test_rows_summing_to_threshold_establish_nexus(tmp_path):
    path = _write(
        tmp_path,
        "state,amount\n"
        "CO,2422.89\n"
        "CO,5950.82\n"
        "CO,90090.40\n"
        "CO,1535.89\n",
    )
    sales = load_sales_csv(path)
    assert sales["CO"].direct_revenue == Decimal("100000.00")

    result = NexusEngine().evaluate("CO", sales["CO"])
    assert result.has_nexus is True
    assert result.risk_level == RiskLevel.NEXUS_ESTABLISHED


def test_summary_revenue_summed_exactly(tmp_path):
    path = _write(
        tmp_path,
        "state,direct_revenue,marketplace_revenue\n"
        "TX,0.1,0.1\n"
        "TX,0.1,0.2\n"
        "TX,0.1,\n",
    )
    sales = load_sales_csv(path)
    assert sales["TX"].direct_revenue == Decimal("0.3")
    assert sales["TX"].marketplace_revenue == Decimal("0.3")


# ── Errors ───────────────────────────────────────────────────────────


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_sales_csv(tmp_path / "nope.csv")


def test_unrecognised_columns(tmp_path):
    path = _write(tmp_path, "state,widgets\nCA,3\n")
    with pytest.raises(ValueError, match="amount"):
        load_sales_csv(path)


def test_missing_code_column(tmp_path):
    path = _write(tmp_path, "region,amount\nWest,3\n")
    with pytest.raises(ValueError, match="jurisdiction column"):
        load_sales_csv(path)


def test_non_numeric_figure(tmp_path):
    path = _write(tmp_path, "state,direct_revenue\nCA,lots\n")
    with pytest.raises(ValueError):
        load_sales_csv(path)


def test_fractional_transaction_count_rejected(tmp_path):
    path = _write(tmp_path, "state,direct_transactions\nCA,2.5\n")
    with pytest.raises(ValueError, match="whole number"):
        load_sales_csv(path)


# ── Plain mappings ───────────────────────────────────────────────────


def test_sales_from_records():
    existing = SalesRecord(direct_revenue=5)
    sales = sales_from_records(
        {" tx ": {"direct_revenue": 1000, "direct_transactions": 3}, "CA": existing}
    )
    assert sales["TX"].direct_transactions == 3
    assert sales["CA"] is existing
