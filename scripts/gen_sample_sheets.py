#!/usr/bin/env python3
"""Sample spreadsheet generator.

Writes a small set of sheets covering every layout the engine understands:
- sales.xlsx / marketing.xlsx / financial.xlsx: horizontal tables
- platform_report.xlsx: vertical report with sections and an embedded table
- daily_<rows>.xlsx (optional): synthetic daily series for trend analysis and
  timing runs (--rows)
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

SALES_ROWS: list[dict[str, Any]] = [
    {"date": "2024-01-05", "product": "Widget A", "quantity": 150, "revenue": 4500, "cost": 2250, "region": "North"},
    {"date": "2024-01-05", "product": "Widget B", "quantity": 80, "revenue": 3200, "cost": 1600, "region": "South"},
    {"date": "2024-01-10", "product": "Widget A", "quantity": 200, "revenue": 6000, "cost": 3000, "region": "East"},
    {"date": "2024-01-10", "product": "Gadget X", "quantity": 50, "revenue": 5000, "cost": 2000, "region": "West"},
    {"date": "2024-01-15", "product": "Widget B", "quantity": 120, "revenue": 4800, "cost": 2400, "region": "North"},
    {"date": "2024-01-15", "product": "Gadget X", "quantity": 75, "revenue": 7500, "cost": 3000, "region": "South"},
    {"date": "2024-01-20", "product": "Widget A", "quantity": 180, "revenue": 5400, "cost": 2700, "region": "East"},
    {"date": "2024-01-20", "product": "Widget C", "quantity": 90, "revenue": 2700, "cost": 1350, "region": "West"},
]

MARKETING_ROWS: list[dict[str, Any]] = [
    {"campaign": "Spring Sale", "impressions": 50000, "clicks": 2500, "conversions": 150, "cost": 1500, "channel": "Facebook"},
    {"campaign": "Spring Sale", "impressions": 35000, "clicks": 1750, "conversions": 105, "cost": 1200, "channel": "Google"},
    {"campaign": "Email Blast", "impressions": 25000, "clicks": 3750, "conversions": 300, "cost": 500, "channel": "Email"},
    {"campaign": "Influencer", "impressions": 80000, "clicks": 4000, "conversions": 200, "cost": 3000, "channel": "Instagram"},
    {"campaign": "Summer Promo", "impressions": 45000, "clicks": 2250, "conversions": 135, "cost": 1350, "channel": "Facebook"},
]

FINANCIAL_ROWS: list[dict[str, Any]] = [
    {"date": "2024-01-01", "category": "Revenue", "amount": 25000, "description": "Product Sales"},
    {"date": "2024-01-01", "category": "Revenue", "amount": 8000, "description": "Service Income"},
    {"date": "2024-01-05", "category": "Expense", "amount": -5000, "description": "Salaries"},
    {"date": "2024-01-05", "category": "Expense", "amount": -2000, "description": "Rent"},
    {"date": "2024-01-10", "category": "Revenue", "amount": 15000, "description": "Product Sales"},
    {"date": "2024-01-10", "category": "Expense", "amount": -3000, "description": "Marketing"},
]

PLATFORM_REPORT: list[list[Any]] = [
    ["Campaign Performance Report"],
    ["Advertiser:", "Acme Corp"],
    ["Date Range:", "2024-01-01 - 2024-01-31"],
    [],
    ["TOTAL IMPRESSIONS", "150,000"],
    ["Total Clicks", "3,750"],
    ["CTR", "2.5%"],
    ["Spend", "$1,200"],
    [],
    ["DEMOGRAPHICS", None],
    ["Age Group", "Impressions", "Clicks", "CTR"],
    ["18-24", 45000, 1300, "2.9%"],
    ["25-34", 60000, 1500, "2.5%"],
    ["35-44", 45000, 950, "2.1%"],
    [],
    ["ENGAGEMENT", None],
    ["Video Completion Rate", "41%"],
    ["Bounce Rate", "37.5%"],
]


def generate_daily_series(rows: int, seed: int = 42) -> pd.DataFrame:
    """Daily revenue with a mild upward drift, weekly seasonality and a few spikes."""
    rng = np.random.default_rng(seed)
    dates = pd.date_range("2024-01-01", periods=rows, freq="D")
    base = 1000 + np.arange(rows) * 2.5
    weekly = 120 * np.sin(np.arange(rows) * 2 * np.pi / 7)
    noise = rng.normal(0, 40, rows)
    revenue = np.round(base + weekly + noise, 2)
    spikes = rng.choice(rows, size=max(1, rows // 60), replace=False)
    revenue[spikes] *= 3
    return pd.DataFrame(
        {
            "date": dates.strftime("%Y-%m-%d"),
            "product": rng.choice(["Widget A", "Widget B", "Gadget X"], rows),
            "orders": rng.integers(10, 80, rows),
            "revenue": revenue,
        }
    )


def write_table(output_path: Path, rows: list[dict[str, Any]] | pd.DataFrame) -> None:
    df = rows if isinstance(rows, pd.DataFrame) else pd.DataFrame(rows)
    df.to_excel(output_path, index=False, engine="openpyxl")
    print(f"Created: {output_path} ({len(df)} rows)")


def write_grid(output_path: Path, grid: list[list[Any]]) -> None:
    width = max(len(r) for r in grid)
    padded = [list(r) + [None] * (width - len(r)) for r in grid]
    pd.DataFrame(padded).to_excel(output_path, header=False, index=False, engine="openpyxl")
    print(f"Created: {output_path} ({len(grid)} rows, report layout)")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate sample spreadsheets for the report engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Fixed samples into ./sample-data
  %(prog)s

  # Add a 365-row daily series
  %(prog)s --rows 365 --output-dir /tmp/sheets
        """,
    )
    parser.add_argument("--output-dir", type=Path, default=Path("sample-data"))
    parser.add_argument("--rows", type=int, default=0, help="Rows of the synthetic daily series (0 = skip)")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    if args.rows < 0:
        print("Error: --rows must not be negative", file=sys.stderr)
        return 1

    out = args.output_dir
    out.mkdir(parents=True, exist_ok=True)
    write_table(out / "sales.xlsx", SALES_ROWS)
    write_table(out / "marketing.xlsx", MARKETING_ROWS)
    write_table(out / "financial.xlsx", FINANCIAL_ROWS)
    write_grid(out / "platform_report.xlsx", PLATFORM_REPORT)
    if args.rows:
        write_table(out / f"daily_{args.rows}.xlsx", generate_daily_series(args.rows, args.seed))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
