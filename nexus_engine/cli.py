"""
Command-line interface for the Economic Nexus Engine.

Provides subcommands for nexus evaluation, growth scenario modelling,
and browsing the jurisdiction reference table.
"""

from __future__ import annotations

import argparse
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
from rich import box

from nexus_engine.engine import EvaluationResult, NexusEngine, SalesRecord
from nexus_engine.errors import NexusEngineError
from nexus_engine.evaluator import RiskLevel
from nexus_engine.jurisdictions import JurisdictionTable
from nexus_engine.report_generator import (
    ReportGenerator,
    risk_label,
    status_message,
)
from nexus_engine.sales import load_sales_csv

console = Console()

_RISK_COLORS: dict[RiskLevel, str] = {
    RiskLevel.NEXUS_ESTABLISHED: "red",
    RiskLevel.NEXUS_IMMINENT: "yellow",
    RiskLevel.MONITORING: "cyan",
    RiskLevel.NO_NEXUS: "green",
    RiskLevel.NO_SALES_TAX: "dim",
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _build_engine(args: argparse.Namespace) -> NexusEngine:
    if args.rules:
        table = JurisdictionTable.from_json(args.rules, strict=args.strict)
    else:
        table = JurisdictionTable.default()
    return NexusEngine(table)


def _load_sales(path: str) -> dict[str, SalesRecord]:
    try:
        return load_sales_csv(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _pct(value: float) -> str:
    return f"{value:.1f}%"


def _money(value: Optional[Decimal], default: str = "-") -> str:
    return f"${value:,.0f}" if value is not None else default


def _type_name(threshold_type: object) -> str:
    return getattr(threshold_type, "value", str(threshold_type))


def _threshold_text(result: EvaluationResult) -> str:
    parts: list[str] = []
    if result.revenue_threshold is not None:
        parts.append(_money(result.revenue_threshold))
    if result.transaction_threshold is not None:
        parts.append(f"{result.transaction_threshold} txns")
    return " / ".join(parts) or "-"


def _evaluation_table(
    title: str, results: list[EvaluationResult]
) -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("State", style="bold")
    table.add_column("Name")
    table.add_column("Risk")
    table.add_column("% of Threshold", justify="right")
    table.add_column("Revenue", justify="right")
    table.add_column("Transactions", justify="right")
    table.add_column("Threshold", justify="right")
    table.add_column("Trigger")

    for r in results:
        color = _RISK_COLORS[r.risk_level]
        table.add_row(
            r.jurisdiction_code,
            r.jurisdiction_name,
            f"[{color}]{risk_label(r.risk_level)}[/{color}]",
            _pct(r.percent_complete),
            f"${r.applicable_revenue:,.2f}",
            str(r.applicable_transactions),
            _threshold_text(r),
            r.triggered_by.value if r.triggered_by else "",
        )
    return table


def _export(
    rg: ReportGenerator,
    report: dict,
    args: argparse.Namespace,
    section: str,
) -> None:
    if args.export_json:
        rg.to_json(report, args.export_json)
        console.print(
            f"[green]Report exported to {rg.output_dir / args.export_json}[/green]"
        )
    if args.export_csv:
        rg.to_csv(report, args.export_csv, section=section)
        console.print(
            f"[green]CSV exported to {rg.output_dir / args.export_csv}[/green]"
        )


# -----------------------------------------------------------------------
# Subcommand: evaluate
# -----------------------------------------------------------------------


def cmd_evaluate(args: argparse.Namespace) -> None:
    """Evaluate nexus for one jurisdiction or a CSV of sales."""
    engine = _build_engine(args)

    if not args.file:
        if not args.state:
            console.print("[red]Provide --state with sales figures, or --file[/red]")
            sys.exit(1)

        sales = SalesRecord(
            direct_revenue=Decimal(args.direct_revenue or "0"),
            direct_transactions=args.direct_transactions or 0,
            marketplace_revenue=Decimal(args.marketplace_revenue or "0"),
            marketplace_transactions=args.marketplace_transactions or 0,
        )
        result = engine.evaluate(args.state, sales)
        color = _RISK_COLORS[result.risk_level]

        console.print(
            Panel(
                f"[bold]Risk:[/bold] [{color}]{risk_label(result.risk_level)}[/{color}]\n"
                f"[bold]Has Nexus:[/bold] {'Yes' if result.has_nexus else 'No'}\n"
                f"[bold]% of Threshold:[/bold] {_pct(result.percent_complete)}\n"
                f"[bold]Triggered By:[/bold] {result.triggered_by.value if result.triggered_by else 'N/A'}\n"
                f"[bold]Applicable Revenue:[/bold] ${result.applicable_revenue:,.2f}\n"
                f"[bold]Applicable Transactions:[/bold] {result.applicable_transactions}\n"
                f"[bold]Threshold:[/bold] {_threshold_text(result)} "
                f"({_type_name(result.threshold_type)})\n"
                f"[bold]Marketplace Sales Excluded:[/bold] {'Yes' if result.exclude_marketplace_sales else 'No'}\n"
                f"[bold]Filing Frequency:[/bold] {result.filing_frequency or 'N/A'}\n"
                f"[bold]Registration Timing:[/bold] {result.registration_timing or 'N/A'}\n\n"
                f"{status_message(result)}",
                title=f"{result.jurisdiction_name} ({result.jurisdiction_code})",
                border_style=color,
            )
        )
        for a in result.anomalies:
            console.print(f"[yellow]Warning: {a}[/yellow]")
        return

    sales_by_state = _load_sales(args.file)
    results = engine.evaluate_all(sales_by_state)
    summary = engine.summarize(results)

    shown = results if args.all else [
        r
        for r in results
        if r.risk_level != RiskLevel.NO_SALES_TAX
        and (r.has_nexus or r.percent_complete > 0)
    ]
    if shown:
        console.print(_evaluation_table("Economic Nexus Evaluation", shown))
    else:
        console.print("[green]No taxable activity found.[/green]")

    console.print()
    console.print(
        Panel(
            f"[bold]Jurisdictions Evaluated:[/bold] {summary.total_jurisdictions}\n"
            f"[red]Nexus Established:[/red] {summary.nexus_established}\n"
            f"[yellow]Nexus Imminent:[/yellow] {summary.nexus_imminent}\n"
            f"[cyan]Monitoring:[/cyan] {summary.monitoring}\n"
            f"[green]No Nexus:[/green] {summary.no_nexus}\n"
            f"[dim]No Sales Tax:[/dim] {summary.no_sales_tax}\n"
            f"[bold]Requiring Action:[/bold] {', '.join(summary.requiring_action) or 'None'}",
            title="Nexus Summary",
            border_style="blue",
        )
    )

    if args.export_json or args.export_csv:
        rg = ReportGenerator(args.output_dir or "reports")
        _export(rg, rg.nexus_report(results, summary), args, "jurisdictions")


# -----------------------------------------------------------------------
# Subcommand: scenario
# -----------------------------------------------------------------------


def cmd_scenario(args: argparse.Namespace) -> None:
    """Project nexus exposure under a sales growth assumption."""
    engine = _build_engine(args)
    sales_by_state = _load_sales(args.file)
    scenario = engine.model_scenario(sales_by_state, args.growth)

    rg = ReportGenerator(args.output_dir or "reports")
    report = rg.scenario_report(scenario)

    if report["risk_changes"]:
        table = Table(
            title=f"Risk Changes at {args.growth:+g}% Growth",
            box=box.ROUNDED,
        )
        table.add_column("State", style="bold")
        table.add_column("Current")
        table.add_column("Projected")
        table.add_column("Current %", justify="right")
        table.add_column("Projected %", justify="right")
        table.add_column("New Nexus", justify="center")
        for c in report["risk_changes"]:
            table.add_row(
                c["code"],
                risk_label(RiskLevel(c["current_risk"])),
                risk_label(RiskLevel(c["projected_risk"])),
                _pct(c["current_percent"]),
                _pct(c["projected_percent"]),
                "Y" if c["new_nexus"] else "",
            )
        console.print(table)
    else:
        console.print("[green]No risk tier changes under this scenario.[/green]")

    current = scenario.current.summary
    projected = scenario.projected.summary
    console.print()
    console.print(
        Panel(
            f"[bold]Nexus Established:[/bold] {current.nexus_established} -> "
            f"{projected.nexus_established}\n"
            f"[bold]Nexus Imminent:[/bold] {current.nexus_imminent} -> "
            f"{projected.nexus_imminent}\n"
            f"[bold]Monitoring:[/bold] {current.monitoring} -> {projected.monitoring}\n"
            f"[bold]New Nexus:[/bold] "
            f"{', '.join(scenario.new_nexus_jurisdictions) or 'None'}",
            title="Scenario Summary",
            border_style="magenta",
        )
    )

    _export(rg, report, args, "risk_changes")


# -----------------------------------------------------------------------
# Subcommand: jurisdictions
# -----------------------------------------------------------------------


def cmd_jurisdictions(args: argparse.Namespace) -> None:
    """Display nexus thresholds for one or all jurisdictions."""
    table_data = _build_engine(args).table

    if args.state:
        rule = table_data.get_rule(args.state)
        console.print(
            Panel(
                f"[bold]Jurisdiction:[/bold] {rule.name} ({rule.code})\n"
                f"[bold]Sales Tax:[/bold] {'Yes' if rule.has_tax else 'No'}\n"
                f"[bold]Revenue Threshold:[/bold] "
                f"{_money(rule.revenue_threshold, 'None')}\n"
                f"[bold]Transaction Threshold:[/bold] "
                f"{rule.transaction_threshold if rule.transaction_threshold is not None else 'None'}\n"
                f"[bold]Threshold Type:[/bold] {rule.to_dict()['threshold_type']}\n"
                f"[bold]Measurement Period:[/bold] {rule.measurement_period or 'N/A'}\n"
                f"[bold]Marketplace Sales Excluded:[/bold] {'Yes' if rule.exclude_marketplace_sales else 'No'}\n"
                f"[bold]Effective:[/bold] {rule.effective_date or 'N/A'}\n"
                f"[bold]Registration:[/bold] {rule.registration_url or 'N/A'}\n"
                f"[bold]Filing Frequency:[/bold] {rule.filing_frequency or 'N/A'}\n"
                f"[bold]Registration Timing:[/bold] {rule.registration_timing or 'N/A'}\n"
                f"[bold]Special Rules:[/bold] {rule.special_rules or 'None'}\n"
                f"[bold]Notes:[/bold] {rule.notes}",
                title=f"{rule.name} Nexus Rules",
                border_style="cyan",
            )
        )
        return

    table = Table(title="Economic Nexus Thresholds", box=box.ROUNDED)
    table.add_column("State", style="bold")
    table.add_column("Name")
    table.add_column("Revenue", justify="right")
    table.add_column("Transactions", justify="right")
    table.add_column("Type")
    table.add_column("Mkt Excl.", justify="center")

    for rule in table_data.all_rules():
        style = "" if rule.has_tax else "dim"
        table.add_row(
            rule.code,
            rule.name,
            _money(rule.revenue_threshold),
            str(rule.transaction_threshold)
            if rule.transaction_threshold is not None
            else "-",
            _type_name(rule.threshold_type) if rule.has_tax else "No sales tax",
            "Y" if rule.exclude_marketplace_sales else "",
            style=style,
        )
    console.print(table)


# -----------------------------------------------------------------------
# Argument parser
# -----------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nexus-engine",
        description="Economic Nexus Engine - Multi-state sales tax nexus risk evaluation and growth scenarios",
    )
    parser.add_argument(
        "--rules", help="JSON file with a custom jurisdiction reference table"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject rules that contradict their threshold type",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # evaluate
    eval_p = subparsers.add_parser("evaluate", help="Evaluate nexus risk")
    eval_p.add_argument("--file", "-f", help="CSV file with sales data")
    eval_p.add_argument("--state", "-s", help="Two-letter jurisdiction code")
    eval_p.add_argument("--direct-revenue", help="Direct sales revenue")
    eval_p.add_argument("--direct-transactions", type=int, help="Direct transaction count")
    eval_p.add_argument("--marketplace-revenue", help="Marketplace-facilitated revenue")
    eval_p.add_argument(
        "--marketplace-transactions", type=int, help="Marketplace transaction count"
    )
    eval_p.add_argument(
        "--all", "-a", action="store_true", help="List jurisdictions without activity too"
    )
    eval_p.add_argument("--export-json", help="Export report to JSON")
    eval_p.add_argument("--export-csv", help="Export report to CSV")
    eval_p.add_argument("--output-dir", help="Output directory for exports")
    eval_p.set_defaults(func=cmd_evaluate)

    # scenario
    scen_p = subparsers.add_parser(
        "scenario", help="Model nexus exposure under sales growth"
    )
    scen_p.add_argument("--file", "-f", required=True, help="CSV file with sales data")
    scen_p.add_argument(
        "--growth",
        "-g",
        type=float,
        required=True,
        help="Sales growth in percent (negative for contraction)",
    )
    scen_p.add_argument("--export-json", help="Export report to JSON")
    scen_p.add_argument("--export-csv", help="Export risk changes to CSV")
    scen_p.add_argument("--output-dir", help="Output directory for exports")
    scen_p.set_defaults(func=cmd_scenario)

    # jurisdictions
    jur_p = subparsers.add_parser(
        "jurisdictions", help="View the nexus threshold reference table"
    )
    jur_p.add_argument("--state", "-s", help="Jurisdiction code to look up")
    jur_p.set_defaults(func=cmd_jurisdictions)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    _configure_logging(args.verbose)

    try:
        args.func(args)
    except (NexusEngineError, OSError, ValueError, InvalidOperation) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
