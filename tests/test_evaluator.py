"""Tests for threshold evaluation and risk classification."""

from decimal import Decimal

import pytest

from nexus_engine.evaluator import (
    RiskLevel,
    TriggeredBy,
    classify_risk,
    evaluate_thresholds,
    rule_anomalies,
)
from nexus_engine.jurisdictions import JurisdictionRule, ThresholdType


def _rule(
    threshold_type: ThresholdType = ThresholdType.REVENUE_ONLY,
    revenue: str | None = "100000",
    transactions: int | None = None,
    has_tax: bool = True,
) -> JurisdictionRule:
    return JurisdictionRule(
        code="ZZ",
        name="Testland",
        has_tax=has_tax,
        revenue_threshold=Decimal(revenue) if revenue is not None else None,
        transaction_threshold=transactions,
        threshold_type=threshold_type,
        exclude_marketplace_sales=True,
    )


# ── Revenue only ─────────────────────────────────────────────────────


def test_revenue_only_below_threshold():
    ev = evaluate_thresholds(_rule(), Decimal("95000"), 0)
    assert ev.has_nexus is False
    assert ev.percent_complete == pytest.approx(95.0)
    assert ev.risk_level == RiskLevel.NEXUS_IMMINENT
    assert ev.triggered_by is None


def test_revenue_only_threshold_is_inclusive():
    ev = evaluate_thresholds(_rule(), Decimal("100000"), 0)
    assert ev.has_nexus is True
    assert ev.risk_level == RiskLevel.NEXUS_ESTABLISHED
    assert ev.triggered_by == TriggeredBy.REVENUE
    assert ev.percent_complete == 100.0


def test_revenue_only_ignores_transactions():
    rule = _rule(transactions=200)
    ev = evaluate_thresholds(rule, Decimal("1000"), 5000)
    assert ev.has_nexus is False
    assert ev.percent_complete == pytest.approx(1.0)


def test_percent_clamped_after_classification():
    ev = evaluate_thresholds(_rule(), Decimal("250000"), 0)
    assert ev.percent_complete == 100.0
    assert ev.revenue_percent == pytest.approx(250.0)


# ── Transaction only ─────────────────────────────────────────────────


def test_transaction_only_mirrors_revenue_only():
    rule = _rule(ThresholdType.TRANSACTION_ONLY, revenue=None, transactions=200)
    ev = evaluate_thresholds(rule, Decimal("999999"), 200)
    assert ev.has_nexus is True
    assert ev.triggered_by == TriggeredBy.TRANSACTIONS

    ev = evaluate_thresholds(rule, Decimal("999999"), 150)
    assert ev.has_nexus is False
    assert ev.percent_complete == pytest.approx(75.0)
    assert ev.risk_level == RiskLevel.MONITORING


# ── Either ───────────────────────────────────────────────────────────


def test_either_triggered_by_transactions():
    rule = _rule(ThresholdType.EITHER, transactions=200)
    ev = evaluate_thresholds(rule, Decimal("50000"), 250)
    assert ev.has_nexus is True
    assert ev.triggered_by == TriggeredBy.TRANSACTIONS
    assert ev.transaction_percent == pytest.approx(125.0)
    assert ev.percent_complete == 100.0


def test_either_triggered_by_revenue():
    rule = _rule(ThresholdType.EITHER, transactions=200)
    ev = evaluate_thresholds(rule, Decimal("120000"), 10)
    assert ev.triggered_by == TriggeredBy.REVENUE


def test_either_triggered_by_both():
    rule = _rule(ThresholdType.EITHER, transactions=200)
    ev = evaluate_thresholds(rule, Decimal("100000"), 200)
    assert ev.has_nexus is True
    assert ev.triggered_by == TriggeredBy.BOTH


def test_either_uses_larger_percentage():
    rule = _rule(ThresholdType.EITHER, transactions=200)
    ev = evaluate_thresholds(rule, Decimal("50000"), 180)
    assert ev.has_nexus is False
    assert ev.percent_complete == pytest.approx(90.0)
    assert ev.risk_level == RiskLevel.NEXUS_IMMINENT


@pytest.mark.parametrize(
    "revenue,transactions,expected",
    [
        ("99999", 199, False),
        ("100000", 0, True),
        ("0", 200, True),
        ("150000", 500, True),
    ],
)
def test_either_nexus_iff_one_threshold_met(revenue, transactions, expected):
    rule = _rule(ThresholdType.EITHER, transactions=200)
    ev = evaluate_thresholds(rule, Decimal(revenue), transactions)
    assert ev.has_nexus is expected


# ── Both ─────────────────────────────────────────────────────────────


def test_both_requires_both_thresholds():
    rule = _rule(ThresholdType.BOTH, transactions=100)
    ev = evaluate_thresholds(rule, Decimal("600000"), 99)
    assert ev.has_nexus is False
    assert ev.triggered_by is None
    assert ev.percent_complete == pytest.approx(99.0)

    ev = evaluate_thresholds(rule, Decimal("100000"), 100)
    assert ev.has_nexus is True
    assert ev.triggered_by == TriggeredBy.BOTH


def test_both_uses_smaller_percentage():
    rule = _rule(ThresholdType.BOTH, transactions=200)
    ev = evaluate_thresholds(rule, Decimal("80000"), 100)
    assert ev.percent_complete == pytest.approx(50.0)
    assert ev.risk_level == RiskLevel.NO_NEXUS


# ── Degenerate thresholds ────────────────────────────────────────────


def test_zero_threshold_is_met_immediately():
    rule = _rule(revenue="0")
    ev = evaluate_thresholds(rule, Decimal("0"), 0)
    assert ev.has_nexus is True
    assert ev.percent_complete == 100.0
    assert ev.anomalies == ()


def test_missing_threshold_with_zero_sales():
    rule = _rule(ThresholdType.EITHER, revenue=None, transactions=200)
    ev = evaluate_thresholds(rule, Decimal("0"), 0)
    assert ev.revenue_percent == 0.0
    assert ev.percent_complete == 0.0
    assert ev.has_nexus is False


def test_none_type_is_no_nexus():
    rule = _rule(ThresholdType.NONE, revenue=None, has_tax=False)
    ev = evaluate_thresholds(rule, Decimal("10000000"), 10000)
    assert ev.has_nexus is False
    assert ev.percent_complete == 0.0
    assert ev.risk_level == RiskLevel.NO_NEXUS


def test_unrecognised_type_flagged_not_raised(caplog):
    rule = _rule(threshold_type="SOMETIMES")  # type: ignore[arg-type]
    ev = evaluate_thresholds(rule, Decimal("500000"), 500)
    assert ev.has_nexus is False
    assert ev.risk_level == RiskLevel.NO_NEXUS
    assert any("SOMETIMES" in a for a in ev.anomalies)
    assert "unrecognised threshold type" in caplog.text


def test_revenue_only_without_threshold_never_met():
    rule = _rule(revenue=None)
    ev = evaluate_thresholds(rule, Decimal("500000"), 0)
    assert ev.has_nexus is False
    assert ev.anomalies == ("REVENUE_ONLY rule has no revenue threshold",)


# ── Rule anomalies ───────────────────────────────────────────────────


def test_well_formed_rule_has_no_anomalies():
    assert rule_anomalies(_rule(ThresholdType.EITHER, transactions=200)) == []


def test_both_missing_threshold_is_anomaly():
    problems = rule_anomalies(_rule(ThresholdType.BOTH))
    assert problems == ["BOTH rule is missing a threshold"]


def test_none_type_with_tax_is_anomaly():
    problems = rule_anomalies(_rule(ThresholdType.NONE, revenue=None))
    assert len(problems) == 1
    assert "NONE" in problems[0]


def test_negative_threshold_is_anomaly():
    problems = rule_anomalies(_rule(revenue="-1"))
    assert "revenue threshold is negative" in problems


# ── Classification tiers ─────────────────────────────────────────────


@pytest.mark.parametrize(
    "percent,expected",
    [
        (0.0, RiskLevel.NO_NEXUS),
        (69.99, RiskLevel.NO_NEXUS),
        (70.0, RiskLevel.MONITORING),
        (89.99, RiskLevel.MONITORING),
        (90.0, RiskLevel.NEXUS_IMMINENT),
        (150.0, RiskLevel.NEXUS_IMMINENT),
    ],
)
def test_classify_risk_tiers(percent, expected):
    assert classify_risk(False, percent) == expected


def test_nexus_overrides_percentage():
    assert classify_risk(True, 0.0) == RiskLevel.NEXUS_ESTABLISHED


def test_risk_rank_orders_by_severity():
    ranks = [level.rank for level in RiskLevel]
    assert ranks == sorted(ranks)
    assert RiskLevel.NEXUS_ESTABLISHED.rank < RiskLevel.NO_SALES_TAX.rank
    assert RiskLevel.NEXUS_IMMINENT.requires_action is True
    assert RiskLevel.MONITORING.requires_action is False
