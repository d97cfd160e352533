"""
Economic Nexus Engine
=====================

Post-Wayfair economic nexus risk evaluation for multi-state sellers:
per-jurisdiction threshold checks, risk tiers, growth scenarios, and
report export.

Modules:
    jurisdictions   - Nexus threshold reference table (50 states + DC)
    evaluator       - Threshold evaluation and risk classification
    engine          - Multi-jurisdiction evaluation, summaries, scenarios
    sales           - Sales data loading from CSV
    report_generator- Nexus and scenario reports with CSV/JSON export
    errors          - Exception types
    cli             - Command-line interface
"""

__version__ = "1.0.0"

from nexus_engine.errors import (
    InvalidRuleConfiguration,
    NexusEngineError,
    UnknownJurisdiction,
)
from nexus_engine.jurisdictions import (
    JurisdictionRule,
    JurisdictionTable,
    ThresholdType,
)
from nexus_engine.evaluator import RiskLevel, TriggeredBy, evaluate_thresholds
from nexus_engine.engine import (
    EvaluationResult,
    NexusEngine,
    NexusSummary,
    SalesRecord,
    ScenarioResult,
)
from nexus_engine.report_generator import ReportGenerator

__all__ = [
    "EvaluationResult",
    "InvalidRuleConfiguration",
    "JurisdictionRule",
    "JurisdictionTable",
    "NexusEngine",
    "NexusEngineError",
    "NexusSummary",
    "ReportGenerator",
    "RiskLevel",
    "SalesRecord",
    "ScenarioResult",
    "ThresholdType",
    "TriggeredBy",
    "UnknownJurisdiction",
    "evaluate_thresholds",
]
