# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for TB Statements.

This module turns built statements into pandas DataFrames ready for
display or CSV export. Two levels of detail are available:

- summary:  section headers (level 0), classification items and equity
            subtotals (level 1), and the result lines (gross profit,
            total assets, ...),
- detailed: same as summary, with the mapped accounts of each item
            inserted under it (level 2) for drill-down.

All views share the same columns:

    display_order, level, section, name, current, prior, is_subtotal, is_total

The statements themselves are built by ``engine.build_financial_statements``.
This module only shapes them.
"""

from collections.abc import Iterable
from typing import Optional

import pandas as pd

from .models import ReconciliationResult, Statement, StatementLine
from .normalizer import SIGN_RULES
from .ratios import LEVEL_ORDER, RatioResult, assess_ratio

VIEWS = ("summary", "detailed")

STATEMENT_COLUMNS = [
    "display_order",
    "level",
    "section",
    "name",
    "current",
    "prior",
    "is_subtotal",
    "is_total",
]


def suppress_zero_lines(lines: Iterable[StatementLine]) -> list[StatementLine]:
    """Drop lines whose current and prior amounts are both zero.

    Subtotal and total lines are always kept.
    """
    return [
        line
        for line in lines
        if line.is_subtotal or line.is_total or not line.is_zero
    ]


def _row(
    level: int, section: str, name: str, current: float, prior: float,
    is_subtotal: bool = False, is_total: bool = False,
) -> dict[str, object]:
    return {
        "level": level,
        "section": section,
        "name": name,
        "current": current,
        "prior": prior,
        "is_subtotal": is_subtotal,
        "is_total": is_total,
    }


def _display_factor(display, raw_total: float) -> float:
    """+1.0 or -1.0: the sign the display rule gives the item's raw sum."""
    if raw_total == 0:
        return 1.0 if display(1.0) > 0 else -1.0
    return 1.0 if (display(raw_total) > 0) == (raw_total > 0) else -1.0


def _account_rows(section_key: str, line: StatementLine) -> list[dict[str, object]]:
    """Mapped accounts of an item line, shown with the item's display sign.

    Each account is scaled by the factor applied to the item as a whole,
    so the account rows always add up to the item line.
    """
    if line.role is None:
        return []
    display, _ = SIGN_RULES[line.role]
    current_factor = _display_factor(
        display, round(sum(r.balance for r in line.source_rows), 10)
    )
    prior_factor = _display_factor(
        display, round(sum(r.prior_year_balance for r in line.source_rows), 10)
    )
    accounts = sorted(line.source_rows, key=lambda r: str(r.account_code))
    return [
        _row(
            2,
            section_key,
            f"{r.account_code} {r.account_name}".strip(),
            current_factor * r.balance + 0.0,
            prior_factor * r.prior_year_balance + 0.0,
        )
        for r in accounts
    ]


def _renumber_display_order(
    df: pd.DataFrame, start: int = 10, step: int = 10
) -> pd.DataFrame:
    """Reassign display_order to be strictly sequential: start, start+step, ...
    Preserves the current order of the lines (as it appears in df).
    """
    df = df.copy()
    df = df.reset_index(drop=True)
    df["display_order"] = [start + i * step for i in range(len(df))]
    return df


def _finalize_view(df: pd.DataFrame) -> pd.DataFrame:
    """Sequential renumbering of display_order and column ordering."""
    df = _renumber_display_order(df, start=10, step=10)
    return df[STATEMENT_COLUMNS]


def statement_to_dataframe(
    statement: Statement,
    view: str = "summary",
    hide_zero: bool = True,
    decimals: Optional[int] = None,
) -> pd.DataFrame:
    """
    Convert a Statement into a long DataFrame.

    Args:
        statement: Balance sheet or income statement.
        view: "summary" or "detailed" (adds the mapped accounts under each
            classification item).
        hide_zero: Drop item lines whose amounts are zero for both years.
        decimals: Round amounts to this number of decimals, if given.

    Returns:
        A DataFrame with the columns listed in the module docstring, in
        presentation order, with display_order renumbered 10, 20, 30, ...

    Raises:
        ValueError: if ``view`` is unknown.
    """
    if view not in VIEWS:
        raise ValueError(f"Unknown view {view!r}. Expected one of: {', '.join(VIEWS)}.")

    results_after: dict[str, list[StatementLine]] = {}
    for section_key, line in statement.results:
        results_after.setdefault(section_key, []).append(line)

    rows: list[dict[str, object]] = []
    for section in statement.sections:
        rows.append(_row(0, section.key, section.title, section.total_current, section.total_prior))

        lines = suppress_zero_lines(section.lines) if hide_zero else list(section.lines)
        for line in lines:
            rows.append(
                _row(
                    1,
                    section.key,
                    line.label,
                    line.current_amount,
                    line.prior_amount,
                    is_subtotal=line.is_subtotal,
                    is_total=line.is_total,
                )
            )
            if view == "detailed":
                rows.extend(_account_rows(section.key, line))

        for line in results_after.get(section.key, []):
            rows.append(
                _row(0, section.key, line.label, line.current_amount, line.prior_amount, is_total=True)
            )

    df = pd.DataFrame(rows, columns=[c for c in STATEMENT_COLUMNS if c != "display_order"])
    if decimals is not None:
        df["current"] = df["current"].astype(float).round(decimals)
        df["prior"] = df["prior"].astype(float).round(decimals)
    return _finalize_view(df)


def reconciliation_to_dataframe(result: ReconciliationResult) -> pd.DataFrame:
    """One row per year: totals, delta and status of the identity check."""
    rows = [
        {
            "year": year,
            "total_assets": check.total_assets,
            "total_equity_and_liabilities": check.total_equity_and_liabilities,
            "delta": check.delta,
            "passed": check.passed,
            "tolerance": result.tolerance,
        }
        for year, check in (("current", result.current), ("prior", result.prior))
    ]
    return pd.DataFrame(rows)


def ratios_to_dataframe(ratios: list[RatioResult], decimals: int) -> pd.DataFrame:
    """
    Convert a list of RatioResult objects into a pandas DataFrame.

    The resulting DataFrame has the following columns:
        - key:        Internal ratio identifier (e.g. "current_ratio").
        - label:      Human-readable label to display.
        - value:      Numeric value, rounded to the requested number of
                      decimals, or NaN if the ratio could not be computed.
        - unit:       Unit hint ("percent", "ratio", "times", etc.).
        - assessment: EXCELLENT, GOOD, FAIR, POOR, or empty when the ratio
                      has no bands or no value.
        - level:      Logical level ("basic", "advanced", "full").
        - notes:      Optional description or comment.

    Rows are sorted first by level (basic, advanced, full) and then by key.
    """
    columns = ["key", "label", "value", "unit", "assessment", "level", "notes"]
    if not ratios:
        return pd.DataFrame(columns=columns)

    level_order = {lvl: i for i, lvl in enumerate(LEVEL_ORDER)}

    rows: list[dict[str, object]] = []
    for r in ratios:
        rows.append(
            {
                "key": r.key,
                "label": r.label,
                "value": float("nan") if r.value is None else round(r.value, decimals),
                "unit": r.unit,
                "assessment": assess_ratio(r) or "",
                "level": r.level,
                "notes": r.notes,
            }
        )

    df = pd.DataFrame(rows)
    df["__level_order__"] = df["level"].map(lambda lv: level_order.get(lv, 99))
    df = df.sort_values(["__level_order__", "key"], kind="stable").drop(
        columns=["__level_order__"]
    )
    return df[columns].reset_index(drop=True)
