#!/usr/bin/env python3
"""
Economic Nexus Engine - Entry Point

Evaluates post-Wayfair economic nexus risk for a multi-state seller,
models growth scenarios, and exports nexus reports.

Usage:
    python main.py evaluate --state CA --direct-revenue 480000
    python main.py evaluate --file examples/sample_sales.csv --export-json nexus.json
    python main.py scenario --file examples/sample_sales.csv --growth 20
    python main.py jurisdictions --state NY
"""

from nexus_engine.cli import main

if __name__ == "__main__":
    main()
