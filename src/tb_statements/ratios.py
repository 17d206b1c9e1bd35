# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Computation of statement measures and financial ratios for TB Statements.

This module complements the statement engine (engine.py) by providing:

1. Statement measures
   -------------------
   Canonical measures are read from the totals of the built balance sheet
   and income statement (total_assets, current_liabilities, revenue,
   net_profit_before_tax, ...).

   The ratios_*.toml files may declare further measures under the
   `[measures.*]` sections, either as:
   - a list of classification items whose displayed amounts are summed
     (``items = ["Cash on hand", "Bank"]``), or
   - a formula referencing canonical or previously defined measures
     (``formula = "current_assets - inventory"``).

       build_statement_measures(statements, rules_file, prior=False)

   returns ``{measure_key -> float}``.

2. Financial ratios
   ------------------
   Ratios are defined in the TOML files under `[ratios.<level>.*]`.
   Each ratio specifies a label, a formula, a unit, optional notes and
   optional assessment bands:

       bands = [2.0, 1.5, 1.0]      # EXCELLENT / GOOD / FAIR thresholds
       direction = "higher"         # or "lower" (lower is better)

   Ratio levels follow a logical hierarchy:
       "full"     includes all ratios
       "advanced" includes "basic" + "advanced"
       "basic"    includes only basic ratios

       compute_ratios(measures, rules_file, level)

   returns a list of RatioResult objects. A ratio whose formula divides by
   zero or references a missing measure has ``value=None``.

3. Assessment
   -----------
   ``assess_ratio(result)`` maps a value to EXCELLENT, GOOD, FAIR or POOR
   using the bands of its definition.
"""

import ast
import operator
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .engine import FinancialStatements
from .log import get_logger

logger = get_logger(__name__)

# Logical ordering of ratio levels. Requesting "advanced" includes both
# "basic" and "advanced" ratios, and requesting "full" includes all levels.
LEVEL_ORDER: tuple[str, ...] = ("basic", "advanced", "full")

ASSESSMENTS: tuple[str, ...] = ("EXCELLENT", "GOOD", "FAIR", "POOR")

# Canonical measure -> (statement, total name)
CANONICAL_MEASURES: dict[str, tuple[str, str]] = {
    "total_assets": ("balance_sheet", "total_assets"),
    "non_current_assets": ("balance_sheet", "total_non_current_assets"),
    "current_assets": ("balance_sheet", "total_current_assets"),
    "total_equity": ("balance_sheet", "total_equity"),
    "total_liabilities": ("balance_sheet", "total_liabilities"),
    "non_current_liabilities": ("balance_sheet", "total_non_current_liabilities"),
    "current_liabilities": ("balance_sheet", "total_current_liabilities"),
    "total_equity_and_liabilities": ("balance_sheet", "total_equity_and_liabilities"),
    "revenue": ("income_statement", "total_income"),
    "cost_of_sales": ("income_statement", "cost_of_sales"),
    "gross_profit": ("income_statement", "gross_profit"),
    "other_income": ("income_statement", "other_income"),
    "expenses": ("income_statement", "expenses"),
    "net_profit_before_tax": ("income_statement", "net_profit_before_tax"),
}


@dataclass(frozen=True)
class RatioResult:
    """
    Computed ratio as returned by this module.

    Attributes:
        key: Internal identifier (e.g. 'current_ratio').
        label: Human-readable label for display (e.g. 'Current ratio').
        value: Numeric value (float) or None if not computable.
        unit: Unit hint ('percent', 'amount', 'ratio', 'times', etc.).
        notes: Optional human-readable notes or description.
        level: Logical level ('basic', 'advanced', 'full').
        bands: Optional (excellent, good, fair) thresholds.
        higher_is_better: Direction in which ``bands`` are read.
    """

    key: str
    label: str
    value: Optional[float]
    unit: str
    notes: str
    level: str
    bands: Optional[tuple[float, float, float]] = None
    higher_is_better: bool = True


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Ratio rules file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML ratio rules file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


_ALLOWED_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.USub: operator.neg,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
}


def _safe_eval_expr(expr: str, variables: Mapping[str, float]) -> float:
    """
    Safely evaluate a simple arithmetic expression using the given variables.

    Supported:
        - numeric literals
        - variable names (keys from `variables`)
        - binary operations: +, -, *, /, %, **
        - unary minus
        - parentheses

    Args:
        expr: Expression string (e.g. "current_assets / current_liabilities").
        variables: Mapping of variable names to float values.

    Returns:
        The evaluated float value.

    Raises:
        ValueError: if the expression contains unsupported constructs or
            unknown variables.
        ZeroDivisionError: if the expression divides by zero.
    """
    try:
        tree = ast.parse(expr, mode="eval")
    except SyntaxError as exc:
        raise ValueError(f"Invalid expression syntax: {expr!r}") from exc

    def _eval(node: ast.AST) -> float:
        if isinstance(node, ast.Expression):
            return _eval(node.body)

        if isinstance(node, ast.Constant):
            if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
                return float(node.value)
            raise ValueError(f"Unsupported constant in expression: {node.value!r}")

        if isinstance(node, ast.Name):
            name = node.id
            if name not in variables:
                raise ValueError(f"Unknown variable in expression: {name!r}")
            return float(variables[name])

        if isinstance(node, ast.BinOp):
            left = _eval(node.left)
            right = _eval(node.right)
            op_type = type(node.op)
            if op_type not in _ALLOWED_OPERATORS:
                raise ValueError(f"Unsupported operator in expression: {op_type}")
            op_func = _ALLOWED_OPERATORS[op_type]
            return float(op_func(left, right))

        if isinstance(node, ast.UnaryOp):
            if type(node.op) not in _ALLOWED_OPERATORS:
                raise ValueError(f"Unsupported unary operator: {node.op!r}")
            operand = _eval(node.operand)
            op_func = _ALLOWED_OPERATORS[type(node.op)]
            return float(op_func(operand))

        raise ValueError(f"Unsupported expression node: {type(node).__name__}")

    return _eval(tree)


def canonical_measures(
    statements: FinancialStatements, prior: bool = False
) -> dict[str, float]:
    """Return the canonical measures of one year of the built statements."""
    by_name = {
        "balance_sheet": statements.balance_sheet,
        "income_statement": statements.income_statement,
    }
    return {
        key: by_name[statement].total(total, prior=prior)
        for key, (statement, total) in CANONICAL_MEASURES.items()
    }


def _item_amounts(statements: FinancialStatements, prior: bool) -> dict[str, float]:
    """Displayed amount of every classification item, keyed by lowercase label."""
    amounts: dict[str, float] = {}
    for statement in (statements.balance_sheet, statements.income_statement):
        for section in statement.sections:
            for line in section.lines:
                if line.role is None:
                    continue
                key = line.label.strip().lower()
                value = line.prior_amount if prior else line.current_amount
                amounts[key] = amounts.get(key, 0.0) + value
    return amounts


def build_statement_measures(
    statements: FinancialStatements,
    rules_file: Optional[Path] = None,
    prior: bool = False,
) -> dict[str, float]:
    """
    Build the measures used by ratio formulas.

    Args:
        statements: Result of ``engine.build_financial_statements``.
        rules_file: Optional TOML file defining [measures.*] sections.
        prior: Use prior-year amounts instead of current-year amounts.

    Returns:
        Canonical measures plus every [measures.*] entry that could be
        evaluated. Item lists that match nothing evaluate to 0; formulas
        that cannot be evaluated are skipped.
    """
    all_measures = canonical_measures(statements, prior=prior)
    if rules_file is None:
        return all_measures

    data = _load_toml(rules_file)
    measures_section = data.get("measures") or {}
    if not isinstance(measures_section, Mapping):
        return all_measures

    amounts = _item_amounts(statements, prior)

    # Measures are evaluated in TOML order so that formulas may reference
    # previously defined measures.
    for key, cfg in measures_section.items():
        if not isinstance(cfg, Mapping):
            continue

        items = cfg.get("items")
        formula = cfg.get("formula")
        if items is not None:
            if not isinstance(items, list):
                raise ValueError(f"[measures.{key}].items must be a list of labels.")
            all_measures[str(key)] = sum(
                amounts.get(str(label).strip().lower(), 0.0) for label in items
            )
        elif formula:
            try:
                all_measures[str(key)] = _safe_eval_expr(str(formula), all_measures)
            except (ValueError, ZeroDivisionError, OverflowError) as exc:
                logger.debug("measure_skipped", measure=str(key), reason=str(exc))

    return all_measures


def _parse_bands(key: str, cfg: Mapping[str, Any]) -> tuple[Optional[tuple[float, float, float]], bool]:
    direction = str(cfg.get("direction", "higher")).lower()
    if direction not in ("higher", "lower"):
        raise ValueError(
            f"Invalid direction for ratio {key!r}: {direction!r}. "
            "Expected 'higher' or 'lower'."
        )
    higher_is_better = direction == "higher"

    raw = cfg.get("bands")
    if raw is None:
        return None, higher_is_better
    try:
        excellent, good, fair = (float(v) for v in raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid bands for ratio {key!r}: expected three numbers."
        ) from exc

    ordered = excellent >= good >= fair if higher_is_better else excellent <= good <= fair
    if not ordered:
        raise ValueError(
            f"Invalid bands for ratio {key!r}: thresholds must go from "
            "EXCELLENT to FAIR."
        )
    return (excellent, good, fair), higher_is_better


def compute_ratios(
    measures: Mapping[str, float],
    rules_file: Path,
    level: str,
) -> list[RatioResult]:
    """
    Compute ratios for a given level using measure values and a TOML rules file.

    Args:
        measures:
            Mapping of measure names to float values, as returned by
            build_statement_measures().
        rules_file:
            Path to a TOML file defining [ratios.<level>.*] sections.
        level:
            Ratios level to compute ('basic', 'advanced', 'full'). The level
            is interpreted cumulatively.

    Returns:
        A list of RatioResult instances for all included levels. Ratios whose
        formula cannot be evaluated (missing measures, division by zero,
        etc.) have value=None.

    Raises:
        ValueError: if a ratio declares invalid assessment bands.
    """
    data = _load_toml(rules_file)

    ratios_section = data.get("ratios") or {}
    if not isinstance(ratios_section, Mapping):
        return []

    if level in LEVEL_ORDER:
        max_index = LEVEL_ORDER.index(level)
        levels_to_include = [
            lvl for lvl in LEVEL_ORDER[: max_index + 1] if lvl in ratios_section
        ]
    else:
        levels_to_include = [level] if level in ratios_section else []

    results: list[RatioResult] = []

    for current_level in levels_to_include:
        level_section = ratios_section.get(current_level) or {}
        if not isinstance(level_section, Mapping):
            continue

        for key, cfg in level_section.items():
            if not isinstance(cfg, Mapping):
                continue

            label = str(cfg.get("label", key))
            formula = cfg.get("formula")
            unit = str(cfg.get("unit", "ratio"))
            notes = str(cfg.get("notes", ""))
            bands, higher_is_better = _parse_bands(str(key), cfg)

            value: Optional[float]
            if not formula:
                value = None
            else:
                formula_str = str(formula)
                try:
                    if formula_str in measures:
                        value = float(measures[formula_str])
                    else:
                        value = _safe_eval_expr(formula_str, measures)
                except (ValueError, ZeroDivisionError, OverflowError):
                    value = None

            results.append(
                RatioResult(
                    key=str(key),
                    label=label,
                    value=value,
                    unit=unit,
                    notes=notes,
                    level=current_level,
                    bands=bands,
                    higher_is_better=higher_is_better,
                )
            )

    return results


def assess_ratio(result: RatioResult) -> Optional[str]:
    """
    Return EXCELLENT, GOOD, FAIR or POOR for a ratio, or None.

    None is returned when the ratio has no value or declares no bands.
    """
    if result.value is None or result.bands is None:
        return None

    for threshold, assessment in zip(result.bands, ASSESSMENTS):
        if result.higher_is_better and result.value >= threshold:
            return assessment
        if not result.higher_is_better and result.value <= threshold:
            return assessment
    return "POOR"
