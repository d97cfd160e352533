"""
Sales data loading.

Reads per-jurisdiction sales figures from CSV in either of two shapes:

Summary rows (one per jurisdiction):
    jurisdiction, direct_revenue, direct_transactions,
    marketplace_revenue, marketplace_transactions

Transaction rows (one per sale, aggregated here):
    state, amount[, channel]   # channel "marketplace" or anything else
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Union

import pandas as pd

from nexus_engine.engine import SalesRecord

logger = logging.getLogger(__name__)

_FIGURE_COLUMNS = [
    "direct_revenue",
    "direct_transactions",
    "marketplace_revenue",
    "marketplace_transactions",
]

_CODE_COLUMNS = ("jurisdiction", "jurisdiction_code", "state")


def sales_from_records(
    data: Mapping[str, Union[SalesRecord, Mapping[str, Any]]],
) -> dict[str, SalesRecord]:
    """Convert a mapping of plain dicts into ``SalesRecord`` objects."""
    records: dict[str, SalesRecord] = {}
    for code, raw in data.items():
        key = code.strip().upper()
        records[key] = (
            raw if isinstance(raw, SalesRecord) else SalesRecord.from_dict(raw)
        )
    return records


def _parse_money(value: Any, column: str) -> Decimal:
    if pd.isna(value) or str(value).strip() == "":
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip().replace(",", "").lstrip("$"))
    except InvalidOperation as e:
        raise ValueError(f"{column} value {value!r} is not a number") from e
    if not amount.is_finite():
        raise ValueError(f"{column} value {value!r} is not a number")
    return amount


def _parse_count(value: Any, column: str) -> int:
    amount = _parse_money(value, column)
    if amount != amount.to_integral_value():
        raise ValueError(f"{column} value {value!r} is not a whole number")
    return int(amount)


def _code_column(df: pd.DataFrame) -> str:
    for col in _CODE_COLUMNS:
        if col in df.columns:
            return col
    raise ValueError(
        "Sales CSV needs a jurisdiction column "
        f"(one of: {', '.join(_CODE_COLUMNS)})"
    )


def _aggregate(frame: pd.DataFrame) -> dict[str, SalesRecord]:
    """Sum parsed figures per code; revenue stays in exact Decimal."""
    records: dict[str, SalesRecord] = {}
    for code, group in frame.groupby("code", sort=True):
        records[code] = SalesRecord(
            direct_revenue=sum(group["direct_revenue"], Decimal("0")),
            direct_transactions=int(group["direct_transactions"].sum()),
            marketplace_revenue=sum(group["marketplace_revenue"], Decimal("0")),
            marketplace_transactions=int(
                group["marketplace_transactions"].sum()
            ),
        )
    return records


def _from_summary(df: pd.DataFrame, code_col: str) -> dict[str, SalesRecord]:
    frame = pd.DataFrame({"code": df[code_col]})
    for col in _FIGURE_COLUMNS:
        values = df[col] if col in df.columns else pd.Series("", index=df.index)
        parse = _parse_count if col.endswith("_transactions") else _parse_money
        frame[col] = values.map(lambda v, c=col, p=parse: p(v, c))
    return _aggregate(frame)


def _from_transactions(
    df: pd.DataFrame, code_col: str
) -> dict[str, SalesRecord]:
    amounts = df["amount"].map(lambda v: _parse_money(v, "amount"))
    if "channel" in df.columns:
        channel = df["channel"].fillna("").astype(str).str.strip().str.lower()
        is_marketplace = channel == "marketplace"
    else:
        is_marketplace = pd.Series(False, index=df.index)

    zero = Decimal("0")
    frame = pd.DataFrame(
        {
            "code": df[code_col],
            "direct_revenue": [
                zero if mkt else amt for amt, mkt in zip(amounts, is_marketplace)
            ],
            "direct_transactions": (~is_marketplace).astype(int),
            "marketplace_revenue": [
                amt if mkt else zero for amt, mkt in zip(amounts, is_marketplace)
            ],
            "marketplace_transactions": is_marketplace.astype(int),
        },
        index=df.index,
    )
    return _aggregate(frame)


def load_sales_csv(path: Union[str, Path]) -> dict[str, SalesRecord]:
    """
    Load per-jurisdiction sales from a CSV file.

    Jurisdiction codes are upper-cased and repeated codes are summed.
    Raises ``FileNotFoundError`` for a missing file and ``ValueError`` when
    the columns match neither supported shape or a figure is not numeric.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    df = pd.read_csv(csv_path, dtype=str)
    df.columns = [str(c).strip().lower() for c in df.columns]
    code_col = _code_column(df)

    df = df[df[code_col].notna()].copy()
    df[code_col] = df[code_col].astype(str).str.strip().str.upper()

    if any(col in df.columns for col in _FIGURE_COLUMNS):
        records = _from_summary(df, code_col)
    elif "amount" in df.columns:
        records = _from_transactions(df, code_col)
    else:
        raise ValueError(
            "Sales CSV must have sales figure columns "
            f"({', '.join(_FIGURE_COLUMNS)}) or an 'amount' column"
        )

    logger.debug("Loaded sales for %d jurisdictions from %s", len(records), csv_path)
    return records
