"""
Nexus report generator.

Produces:
- Nexus analysis reports (per-jurisdiction risk and summary counts)
- Growth scenario comparison reports
- Short status messages per risk tier
- CSV and JSON export
"""

from __future__ import annotations

import json
import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from nexus_engine.engine import (
    EvaluationResult,
    NexusSummary,
    ScenarioResult,
    summarize,
)
from nexus_engine.evaluator import RiskLevel

logger = logging.getLogger(__name__)


class _ReportEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal, Enum and date objects."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, Enum):
            return o.value
        if isinstance(o, date):
            return o.isoformat()
        return super().default(o)


def _plain(obj: Any) -> Any:
    """Recursively convert Decimal/Enum values for serialization."""
    if isinstance(obj, dict):
        return {k: _plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_plain(i) for i in obj]
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, date):
        return obj.isoformat()
    return obj


_RISK_LABELS: dict[RiskLevel, str] = {
    RiskLevel.NEXUS_ESTABLISHED: "Nexus established",
    RiskLevel.NEXUS_IMMINENT: "Nexus imminent",
    RiskLevel.MONITORING: "Monitoring",
    RiskLevel.NO_NEXUS: "No nexus",
    RiskLevel.NO_SALES_TAX: "No sales tax",
}


def risk_label(level: RiskLevel) -> str:
    return _RISK_LABELS[level]


def status_message(result: EvaluationResult) -> str:
    """One-line description of a jurisdiction's nexus status."""
    name = result.jurisdiction_name
    pct = result.percent_complete
    level = result.risk_level

    if level == RiskLevel.NEXUS_ESTABLISHED:
        return f"Economic nexus has been established in {name}"
    if level == RiskLevel.NEXUS_IMMINENT:
        return f"Approaching nexus threshold in {name} ({pct:.1f}%)"
    if level == RiskLevel.MONITORING:
        return f"Monitor sales in {name} ({pct:.1f}% of threshold)"
    if level == RiskLevel.NO_NEXUS:
        return f"No nexus concerns in {name} ({pct:.1f}% of threshold)"
    if level == RiskLevel.NO_SALES_TAX:
        return f"{name} does not have a sales tax"
    raise ValueError(f"Unhandled risk level: {level!r}")


def _evaluation_row(r: EvaluationResult) -> dict[str, Any]:
    return {
        "code": r.jurisdiction_code,
        "name": r.jurisdiction_name,
        "risk_level": r.risk_level.value,
        "has_nexus": r.has_nexus,
        "percent_complete": round(r.percent_complete, 2),
        "triggered_by": r.triggered_by.value if r.triggered_by else None,
        "applicable_revenue": r.applicable_revenue,
        "applicable_transactions": r.applicable_transactions,
        "revenue_threshold": r.revenue_threshold,
        "transaction_threshold": r.transaction_threshold,
        "threshold_type": (
            r.threshold_type.value
            if isinstance(r.threshold_type, Enum)
            else str(r.threshold_type)
        ),
        "marketplace_excluded": r.exclude_marketplace_sales,
        "filing_frequency": r.filing_frequency,
        "registration_timing": r.registration_timing,
        "message": status_message(r),
    }


class ReportGenerator:
    """
    Builds nexus and scenario reports with export capabilities.

    All reports are returned as structured dicts, which can be rendered to
    console-friendly text or exported to CSV/JSON files.
    """

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir) if output_dir else Path("reports")

    def _write(self, filename: str, text: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_text(text, encoding="utf-8")
        return path

    # ------------------------------------------------------------------
    # Nexus analysis report
    # ------------------------------------------------------------------

    def nexus_report(
        self,
        evaluations: list[EvaluationResult],
        summary: Optional[NexusSummary] = None,
    ) -> dict[str, Any]:
        """Generate a nexus analysis report from ordered evaluations."""
        if summary is None:
            summary = summarize(evaluations)

        anomalies = {
            r.jurisdiction_code: list(r.anomalies)
            for r in evaluations
            if r.anomalies
        }

        report: dict[str, Any] = {
            "report_type": "nexus_analysis",
            "generated_date": date.today().isoformat(),
            "summary": summary.to_dict(),
            "requiring_action": list(summary.requiring_action),
            "jurisdictions": [_evaluation_row(r) for r in evaluations],
        }
        if anomalies:
            report["warnings"] = [
                f"{code}: {'; '.join(problems)}"
                for code, problems in anomalies.items()
            ]
        return report

    # ------------------------------------------------------------------
    # Scenario report
    # ------------------------------------------------------------------

    def scenario_report(self, scenario: ScenarioResult) -> dict[str, Any]:
        """Compare current and projected exposure for a growth scenario."""
        current = scenario.current.by_code()
        changes: list[dict[str, Any]] = []
        for proj in scenario.projected.evaluations:
            curr = current[proj.jurisdiction_code]
            if curr.risk_level == proj.risk_level:
                continue
            changes.append(
                {
                    "code": proj.jurisdiction_code,
                    "name": proj.jurisdiction_name,
                    "current_risk": curr.risk_level.value,
                    "projected_risk": proj.risk_level.value,
                    "current_percent": round(curr.percent_complete, 2),
                    "projected_percent": round(proj.percent_complete, 2),
                    "new_nexus": (
                        proj.jurisdiction_code
                        in scenario.new_nexus_jurisdictions
                    ),
                }
            )

        return {
            "report_type": "growth_scenario",
            "generated_date": date.today().isoformat(),
            "growth_percent": scenario.growth_percent,
            "summary": {
                "current_nexus_established": (
                    scenario.current.summary.nexus_established
                ),
                "projected_nexus_established": (
                    scenario.projected.summary.nexus_established
                ),
                "current_nexus_imminent": scenario.current.summary.nexus_imminent,
                "projected_nexus_imminent": (
                    scenario.projected.summary.nexus_imminent
                ),
                "new_nexus_count": len(scenario.new_nexus_jurisdictions),
            },
            "new_nexus_jurisdictions": list(scenario.new_nexus_jurisdictions),
            "risk_changes": changes,
        }

    # ------------------------------------------------------------------
    # Export methods
    # ------------------------------------------------------------------

    def to_json(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
    ) -> str:
        """Export a report to JSON. Returns the JSON string."""
        json_str = json.dumps(_plain(report), indent=2, cls=_ReportEncoder)

        if filename:
            path = self._write(filename, json_str)
            logger.debug("Wrote JSON report to %s", path)

        return json_str

    def to_csv(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
        section: str = "jurisdictions",
    ) -> str:
        """
        Export a report section to CSV. Returns the CSV string.

        The section parameter names the list of row dicts in the report
        to export (``jurisdictions`` or ``risk_changes``).
        """
        data = report.get(section, [])
        if not data:
            return ""

        df = pd.DataFrame(_plain(data))
        csv_str = df.to_csv(index=False)

        if filename:
            path = self._write(filename, csv_str)
            logger.debug("Wrote CSV report to %s", path)

        return csv_str

    # ------------------------------------------------------------------
    # Console-formatted text output
    # ------------------------------------------------------------------

    def format_text(self, report: dict[str, Any]) -> str:
        """Format a report as human-readable text for console output."""
        lines: list[str] = []
        report_type = report.get("report_type", "report").replace("_", " ").title()
        lines.append(f"{'=' * 60}")
        lines.append(f"  {report_type}")
        lines.append(f"  Generated: {report.get('generated_date', '')}")
        if "growth_percent" in report:
            lines.append(f"  Growth: {report['growth_percent']:+g}%")
        lines.append(f"{'=' * 60}")
        lines.append("")

        summary = report.get("summary", {})
        if summary:
            lines.append("SUMMARY")
            lines.append("-" * 40)
            for key, value in summary.items():
                label = key.replace("_", " ").title()
                lines.append(f"  {label}: {value}")
            lines.append("")

        action = report.get("requiring_action", [])
        if action:
            lines.append("REQUIRING ACTION")
            lines.append("-" * 40)
            lines.append(f"  {', '.join(action)}")
            lines.append("")

        rows = [
            j
            for j in report.get("jurisdictions", [])
            if j["risk_level"] != RiskLevel.NO_SALES_TAX.value
            and (j["has_nexus"] or j["percent_complete"] > 0)
        ]
        if rows:
            lines.append("JURISDICTIONS WITH ACTIVITY")
            lines.append("-" * 40)
            for j in rows:
                lines.append(
                    f"  {j['code']}: {j['risk_level']:<17} "
                    f"{j['percent_complete']:>6.1f}% | {j['message']}"
                )
            lines.append("")

        new_nexus = report.get("new_nexus_jurisdictions", [])
        if new_nexus:
            lines.append("NEW NEXUS UNDER SCENARIO")
            lines.append("-" * 40)
            lines.append(f"  {', '.join(new_nexus)}")
            lines.append("")

        changes = report.get("risk_changes", [])
        if changes:
            lines.append("RISK CHANGES")
            lines.append("-" * 40)
            for c in changes:
                lines.append(
                    f"  {c['code']}: {c['current_risk']} -> {c['projected_risk']} "
                    f"({c['current_percent']:.1f}% -> {c['projected_percent']:.1f}%)"
                )
            lines.append("")

        warnings = report.get("warnings", [])
        if warnings:
            lines.append("WARNINGS")
            lines.append("-" * 40)
            for w in warnings:
                lines.append(f"  * {w}")
            lines.append("")

        return "\n".join(lines)
