#!/usr/bin/env python3
"""
Quick Start Example
===================

Demonstrates evaluating economic nexus for a seller with direct and
marketplace sales, then projecting a 10% growth scenario.

Usage:
    python examples/quick_start.py
"""

from decimal import Decimal

from nexus_engine.engine import NexusEngine, SalesRecord


def main() -> None:
    engine = NexusEngine()

    # Alabama: $250k revenue-only threshold, marketplace sales excluded
    result = engine.evaluate(
        "AL",
        SalesRecord(
            direct_revenue=Decimal("230000.00"),
            direct_transactions=410,
            marketplace_revenue=Decimal("90000.00"),
            marketplace_transactions=120,
        ),
    )

    print(f"Jurisdiction:       {result.jurisdiction_name}")
    print(f"Risk Level:         {result.risk_level.value}")
    print(f"Has Nexus:          {result.has_nexus}")
    print(f"% of Threshold:     {result.percent_complete:.1f}%")
    print(f"Applicable Revenue: ${result.applicable_revenue:,.2f}")

    # Project 10% growth across several states
    sales = {
        "AL": {"direct_revenue": 230000, "direct_transactions": 410},
        "GA": {"direct_revenue": 60000, "direct_transactions": 185},
        "TX": {"direct_revenue": 300000, "direct_transactions": 900},
    }
    scenario = engine.model_scenario(sales, 10)

    print("\n--- 10% Growth Scenario ---")
    print(f"Nexus now:       {scenario.current.summary.nexus_established}")
    print(f"Nexus projected: {scenario.projected.summary.nexus_established}")
    print(f"New nexus:       {', '.join(scenario.new_nexus_jurisdictions) or 'None'}")


if __name__ == "__main__":
    main()
