"""
Economic nexus engine.

Runs the threshold evaluator across every jurisdiction in a reference
table, applies each jurisdiction's marketplace-sales exclusion policy,
orders and summarizes the results, and projects growth scenarios by
re-evaluating scaled sales.

The engine holds no state beyond the reference table it was built with.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Optional, Union

from nexus_engine.evaluator import (
    RiskLevel,
    ThresholdEvaluation,
    TriggeredBy,
    evaluate_thresholds,
)
from nexus_engine.jurisdictions import (
    JurisdictionRule,
    JurisdictionTable,
    ThresholdType,
)

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]


def _to_revenue(value: Optional[Number]) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def _to_count(value: Optional[Number]) -> int:
    if value is None or value == "":
        return 0
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class SalesRecord:
    """
    A taxpayer's sales into one jurisdiction.

    Revenue figures are stored as Decimal and transaction counts as int,
    whatever numeric type they were given as.
    """

    direct_revenue: Decimal = Decimal("0")
    direct_transactions: int = 0
    marketplace_revenue: Decimal = Decimal("0")
    marketplace_transactions: int = 0

    def __post_init__(self) -> None:
        self.direct_revenue = _to_revenue(self.direct_revenue)
        self.marketplace_revenue = _to_revenue(self.marketplace_revenue)
        self.direct_transactions = _to_count(self.direct_transactions)
        self.marketplace_transactions = _to_count(self.marketplace_transactions)

        for name in (
            "direct_revenue",
            "direct_transactions",
            "marketplace_revenue",
            "marketplace_transactions",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SalesRecord":
        return cls(
            direct_revenue=data.get("direct_revenue", 0),
            direct_transactions=data.get("direct_transactions", 0),
            marketplace_revenue=data.get("marketplace_revenue", 0),
            marketplace_transactions=data.get("marketplace_transactions", 0),
        )

    @property
    def is_empty(self) -> bool:
        return not (
            self.direct_revenue
            or self.direct_transactions
            or self.marketplace_revenue
            or self.marketplace_transactions
        )

    def scaled(self, factor: Number) -> "SalesRecord":
        """
        Return a copy with every figure multiplied by ``factor``.

        Revenue is not rounded; transaction counts are rounded half-up to
        the nearest whole transaction. Negative factors count as zero.
        """
        f = max(Decimal(str(factor)), Decimal("0"))
        return SalesRecord(
            direct_revenue=self.direct_revenue * f,
            direct_transactions=Decimal(self.direct_transactions) * f,
            marketplace_revenue=self.marketplace_revenue * f,
            marketplace_transactions=Decimal(self.marketplace_transactions) * f,
        )

    def __add__(self, other: "SalesRecord") -> "SalesRecord":
        if not isinstance(other, SalesRecord):
            return NotImplemented
        return SalesRecord(
            direct_revenue=self.direct_revenue + other.direct_revenue,
            direct_transactions=self.direct_transactions + other.direct_transactions,
            marketplace_revenue=self.marketplace_revenue + other.marketplace_revenue,
            marketplace_transactions=(
                self.marketplace_transactions + other.marketplace_transactions
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "direct_revenue": self.direct_revenue,
            "direct_transactions": self.direct_transactions,
            "marketplace_revenue": self.marketplace_revenue,
            "marketplace_transactions": self.marketplace_transactions,
        }


SalesInput = Union[SalesRecord, Mapping[str, Any], None]


def _as_record(sales: SalesInput) -> SalesRecord:
    if sales is None:
        return SalesRecord()
    if isinstance(sales, SalesRecord):
        return sales
    return SalesRecord.from_dict(sales)


@dataclass(frozen=True)
class EvaluationResult:
    """Nexus evaluation for one jurisdiction."""

    jurisdiction_code: str
    jurisdiction_name: str
    has_nexus: bool
    risk_level: RiskLevel
    percent_complete: float
    triggered_by: Optional[TriggeredBy]
    applicable_revenue: Decimal
    applicable_transactions: int
    revenue_percent: float
    transaction_percent: float
    threshold_type: ThresholdType
    revenue_threshold: Optional[Decimal]
    transaction_threshold: Optional[int]
    exclude_marketplace_sales: bool
    anomalies: tuple[str, ...] = ()
    filing_frequency: Optional[str] = None
    registration_timing: Optional[str] = None

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.risk_level.rank, self.jurisdiction_name)


@dataclass
class NexusSummary:
    """Counts of jurisdictions per risk tier."""

    total_jurisdictions: int
    counts: dict[RiskLevel, int]
    requiring_action: list[str] = field(default_factory=list)

    @property
    def nexus_established(self) -> int:
        return self.counts[RiskLevel.NEXUS_ESTABLISHED]

    @property
    def nexus_imminent(self) -> int:
        return self.counts[RiskLevel.NEXUS_IMMINENT]

    @property
    def monitoring(self) -> int:
        return self.counts[RiskLevel.MONITORING]

    @property
    def no_nexus(self) -> int:
        return self.counts[RiskLevel.NO_NEXUS]

    @property
    def no_sales_tax(self) -> int:
        return self.counts[RiskLevel.NO_SALES_TAX]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_jurisdictions": self.total_jurisdictions,
            "nexus_established": self.nexus_established,
            "nexus_imminent": self.nexus_imminent,
            "monitoring": self.monitoring,
            "no_nexus": self.no_nexus,
            "no_sales_tax": self.no_sales_tax,
        }


def summarize(results: list[EvaluationResult]) -> NexusSummary:
    """Count results per risk tier and list codes needing action."""
    counts = {level: 0 for level in RiskLevel}
    requiring_action: list[str] = []
    for r in results:
        counts[r.risk_level] += 1
        if r.risk_level.requires_action:
            requiring_action.append(r.jurisdiction_code)
    return NexusSummary(
        total_jurisdictions=len(results),
        counts=counts,
        requiring_action=requiring_action,
    )


@dataclass
class ScenarioSnapshot:
    """One side of a scenario comparison."""

    evaluations: list[EvaluationResult]
    summary: NexusSummary

    def by_code(self) -> dict[str, EvaluationResult]:
        return {e.jurisdiction_code: e for e in self.evaluations}


@dataclass
class ScenarioResult:
    """Current vs. projected nexus exposure under a growth assumption."""

    growth_percent: float
    current: ScenarioSnapshot
    projected: ScenarioSnapshot
    new_nexus_jurisdictions: list[str]


class NexusEngine:
    """
    Evaluates economic nexus across all jurisdictions in a reference table.

    The table is injected so callers can substitute their own thresholds;
    it defaults to the built-in 50-state + DC data.
    """

    def __init__(self, table: Optional[JurisdictionTable] = None) -> None:
        self._table = table if table is not None else JurisdictionTable.default()

    @property
    def table(self) -> JurisdictionTable:
        return self._table

    def evaluate(
        self, jurisdiction_code: str, sales: SalesInput = None
    ) -> EvaluationResult:
        """
        Evaluate nexus for a single jurisdiction.

        Raises ``UnknownJurisdiction`` if the code is not in the table.
        """
        rule = self._table.get_rule(jurisdiction_code)
        return self._evaluate_rule(rule, _as_record(sales))

    def _evaluate_rule(
        self, rule: JurisdictionRule, sales: SalesRecord
    ) -> EvaluationResult:
        revenue = sales.direct_revenue
        transactions = sales.direct_transactions
        if not rule.exclude_marketplace_sales:
            revenue += sales.marketplace_revenue
            transactions += sales.marketplace_transactions

        if not rule.has_tax:
            return EvaluationResult(
                jurisdiction_code=rule.code,
                jurisdiction_name=rule.name,
                has_nexus=False,
                risk_level=RiskLevel.NO_SALES_TAX,
                percent_complete=0.0,
                triggered_by=None,
                applicable_revenue=revenue,
                applicable_transactions=transactions,
                revenue_percent=0.0,
                transaction_percent=0.0,
                threshold_type=rule.threshold_type,
                revenue_threshold=rule.revenue_threshold,
                transaction_threshold=rule.transaction_threshold,
                exclude_marketplace_sales=rule.exclude_marketplace_sales,
                filing_frequency=rule.filing_frequency,
                registration_timing=rule.registration_timing,
            )

        ev: ThresholdEvaluation = evaluate_thresholds(rule, revenue, transactions)

        return EvaluationResult(
            jurisdiction_code=rule.code,
            jurisdiction_name=rule.name,
            has_nexus=ev.has_nexus,
            risk_level=ev.risk_level,
            percent_complete=ev.percent_complete,
            triggered_by=ev.triggered_by,
            applicable_revenue=revenue,
            applicable_transactions=transactions,
            revenue_percent=ev.revenue_percent,
            transaction_percent=ev.transaction_percent,
            threshold_type=rule.threshold_type,
            revenue_threshold=rule.revenue_threshold,
            transaction_threshold=rule.transaction_threshold,
            exclude_marketplace_sales=rule.exclude_marketplace_sales,
            anomalies=ev.anomalies,
            filing_frequency=rule.filing_frequency,
            registration_timing=rule.registration_timing,
        )

    def evaluate_all(
        self, sales_by_jurisdiction: Optional[Mapping[str, SalesInput]] = None
    ) -> list[EvaluationResult]:
        """
        Evaluate every jurisdiction in the table.

        Jurisdictions without recorded sales are evaluated at zero.
        Codes that differ only in case are merged into one record.
        Results are ordered most severe first, then by jurisdiction name.
        """
        sales: dict[str, SalesRecord] = {}
        merged: set[str] = set()
        for code, record in (sales_by_jurisdiction or {}).items():
            key = code.strip().upper()
            if key in sales:
                merged.add(key)
                sales[key] = sales[key] + _as_record(record)
            else:
                sales[key] = _as_record(record)
        if merged:
            logger.warning(
                "Merged sales given under differently-cased codes: %s",
                ", ".join(sorted(merged)),
            )

        unknown = sorted(code for code in sales if code not in self._table)
        if unknown:
            logger.warning(
                "Ignoring sales for unknown jurisdictions: %s",
                ", ".join(unknown),
            )

        results = [
            self._evaluate_rule(rule, sales.get(code, SalesRecord()))
            for code, rule in self._table.items()
        ]
        return sorted(results, key=lambda r: r.sort_key)

    def summarize(self, results: list[EvaluationResult]) -> NexusSummary:
        """Count results per risk tier and list codes needing action."""
        return summarize(results)

    def model_scenario(
        self,
        sales_by_jurisdiction: Mapping[str, SalesInput],
        growth_percent: float,
    ) -> ScenarioResult:
        """
        Project nexus exposure if all sales change by ``growth_percent``.

        ``growth_percent`` may be negative; at -100% or below every figure
        drops to zero. ``new_nexus_jurisdictions`` lists codes that go from
        no nexus to nexus, in projected order.
        """
        factor = max(
            Decimal("1") + Decimal(str(growth_percent)) / Decimal("100"),
            Decimal("0"),
        )
        logger.debug(
            "Modelling %s%% growth (factor %s) over %d jurisdictions",
            growth_percent,
            factor,
            len(sales_by_jurisdiction),
        )

        current = self.evaluate_all(sales_by_jurisdiction)
        projected_sales = {
            code: _as_record(record).scaled(factor)
            for code, record in sales_by_jurisdiction.items()
        }
        projected = self.evaluate_all(projected_sales)

        current_by_code = {r.jurisdiction_code: r for r in current}
        new_nexus = [
            p.jurisdiction_code
            for p in projected
            if p.has_nexus and not current_by_code[p.jurisdiction_code].has_nexus
        ]

        return ScenarioResult(
            growth_percent=growth_percent,
            current=ScenarioSnapshot(current, self.summarize(current)),
            projected=ScenarioSnapshot(projected, self.summarize(projected)),
            new_nexus_jurisdictions=new_nexus,
        )
