"""
Economic nexus threshold evaluation.

Given one jurisdiction's rule set and the sales that count toward its
threshold, decide whether nexus exists, how close the seller is to the
threshold, and which metric triggered it.

Classification:
- NEXUS_ESTABLISHED: threshold met (always wins)
- NEXUS_IMMINENT:    >= 90% of threshold
- MONITORING:        >= 70% of threshold
- NO_NEXUS:          below 70%
- NO_SALES_TAX:      jurisdiction levies no sales tax
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from nexus_engine.jurisdictions import JurisdictionRule, ThresholdType

logger = logging.getLogger(__name__)

IMMINENT_PERCENT = 90.0
MONITORING_PERCENT = 70.0
MAX_DISPLAY_PERCENT = 100.0


class RiskLevel(Enum):
    NEXUS_ESTABLISHED = "NEXUS_ESTABLISHED"
    NEXUS_IMMINENT = "NEXUS_IMMINENT"
    MONITORING = "MONITORING"
    NO_NEXUS = "NO_NEXUS"
    NO_SALES_TAX = "NO_SALES_TAX"

    @property
    def rank(self) -> int:
        """Severity rank, 1 = most severe."""
        return _SEVERITY_RANK[self]

    @property
    def requires_action(self) -> bool:
        return self in (RiskLevel.NEXUS_ESTABLISHED, RiskLevel.NEXUS_IMMINENT)


_SEVERITY_RANK: dict[RiskLevel, int] = {
    RiskLevel.NEXUS_ESTABLISHED: 1,
    RiskLevel.NEXUS_IMMINENT: 2,
    RiskLevel.MONITORING: 3,
    RiskLevel.NO_NEXUS: 4,
    RiskLevel.NO_SALES_TAX: 5,
}


class TriggeredBy(Enum):
    REVENUE = "revenue"
    TRANSACTIONS = "transactions"
    BOTH = "both"


@dataclass(frozen=True)
class ThresholdEvaluation:
    """Outcome of comparing applicable sales against one rule set."""

    has_nexus: bool
    risk_level: RiskLevel
    percent_complete: float  # clamped to [0, 100]
    triggered_by: Optional[TriggeredBy]
    revenue_percent: float
    transaction_percent: float
    anomalies: tuple[str, ...] = ()


def rule_anomalies(rule: JurisdictionRule) -> list[str]:
    """
    List the ways a rule contradicts its declared threshold type.

    An empty list means the rule is well formed.
    """
    problems: list[str] = []
    ttype = rule.threshold_type

    if not isinstance(ttype, ThresholdType):
        problems.append(f"unrecognised threshold type {ttype!r}")
    elif ttype == ThresholdType.NONE:
        if rule.has_tax:
            problems.append(
                "threshold type NONE but the jurisdiction levies sales tax"
            )
    elif ttype == ThresholdType.REVENUE_ONLY:
        if rule.revenue_threshold is None:
            problems.append("REVENUE_ONLY rule has no revenue threshold")
    elif ttype == ThresholdType.TRANSACTION_ONLY:
        if rule.transaction_threshold is None:
            problems.append(
                "TRANSACTION_ONLY rule has no transaction threshold"
            )
    elif ttype == ThresholdType.EITHER:
        if rule.revenue_threshold is None and rule.transaction_threshold is None:
            problems.append("EITHER rule has no thresholds")
    elif ttype == ThresholdType.BOTH:
        if rule.revenue_threshold is None or rule.transaction_threshold is None:
            problems.append("BOTH rule is missing a threshold")

    if rule.revenue_threshold is not None and rule.revenue_threshold < 0:
        problems.append("revenue threshold is negative")
    if rule.transaction_threshold is not None and rule.transaction_threshold < 0:
        problems.append("transaction threshold is negative")

    return problems


def _percent_of(
    value: Union[Decimal, int], threshold: Union[Decimal, int, None]
) -> float:
    if threshold is None:
        return 0.0
    # A zero threshold is met by any non-negative figure.
    if threshold <= 0:
        return MAX_DISPLAY_PERCENT
    return float(Decimal(value) / Decimal(threshold) * 100)


def _meets(
    value: Union[Decimal, int], threshold: Union[Decimal, int, None]
) -> bool:
    return threshold is not None and value >= threshold


def classify_risk(has_nexus: bool, percent_complete: float) -> RiskLevel:
    """Map nexus status and unclamped percent-to-threshold onto a tier."""
    if has_nexus:
        return RiskLevel.NEXUS_ESTABLISHED
    if percent_complete >= IMMINENT_PERCENT:
        return RiskLevel.NEXUS_IMMINENT
    if percent_complete >= MONITORING_PERCENT:
        return RiskLevel.MONITORING
    return RiskLevel.NO_NEXUS


def evaluate_thresholds(
    rule: JurisdictionRule,
    applicable_revenue: Decimal,
    applicable_transactions: int,
) -> ThresholdEvaluation:
    """
    Compare applicable sales against a jurisdiction's thresholds.

    Thresholds are inclusive: sales equal to the threshold establish
    nexus. The percentage that drives classification is the unclamped
    one; the reported ``percent_complete`` is capped at 100.

    Misconfigured rules never raise here. Their problems are logged and
    returned in ``anomalies``, and a missing threshold is never treated
    as met.
    """
    anomalies = tuple(rule_anomalies(rule))
    if anomalies:
        logger.warning("%s: %s", rule.code, "; ".join(anomalies))

    revenue_pct = _percent_of(applicable_revenue, rule.revenue_threshold)
    revenue_met = _meets(applicable_revenue, rule.revenue_threshold)
    txn_pct = _percent_of(applicable_transactions, rule.transaction_threshold)
    txn_met = _meets(applicable_transactions, rule.transaction_threshold)

    has_nexus = False
    percent = 0.0
    triggered_by: Optional[TriggeredBy] = None
    ttype = rule.threshold_type

    if ttype == ThresholdType.REVENUE_ONLY:
        percent = revenue_pct
        has_nexus = revenue_met
        if revenue_met:
            triggered_by = TriggeredBy.REVENUE

    elif ttype == ThresholdType.TRANSACTION_ONLY:
        percent = txn_pct
        has_nexus = txn_met
        if txn_met:
            triggered_by = TriggeredBy.TRANSACTIONS

    elif ttype == ThresholdType.EITHER:
        percent = max(revenue_pct, txn_pct)
        has_nexus = revenue_met or txn_met
        if revenue_met and txn_met:
            triggered_by = TriggeredBy.BOTH
        elif revenue_met:
            triggered_by = TriggeredBy.REVENUE
        elif txn_met:
            triggered_by = TriggeredBy.TRANSACTIONS

    elif ttype == ThresholdType.BOTH:
        # Nexus waits on the slower metric.
        percent = min(revenue_pct, txn_pct)
        has_nexus = revenue_met and txn_met
        if has_nexus:
            triggered_by = TriggeredBy.BOTH

    # NONE and unrecognised types fall through: 0%, no nexus.

    risk_level = classify_risk(has_nexus, percent)

    return ThresholdEvaluation(
        has_nexus=has_nexus,
        risk_level=risk_level,
        percent_complete=min(max(percent, 0.0), MAX_DISPLAY_PERCENT),
        triggered_by=triggered_by,
        revenue_percent=revenue_pct,
        transaction_percent=txn_pct,
        anomalies=anomalies,
    )
