# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Tax adjustments and income tax computation.

1. Adjustment guide
   -----------------
   A TOML file lists adjustment definitions (``[[adjustments]]``). Each
   definition has a type (DEBIT, CREDIT, ALLOWANCE, RECOUPMENT), the
   section of the tax act it refers to, keywords, optional account
   criteria and a calculation type:

   - absolute_balance:    |balance|
   - excess:              |balance| - donation_limit * (profit before
                          this donation); skipped when <= 0
   - movement:            year-on-year movement of a balance-sheet
                          account, measured on its natural side;
                          ``direction`` selects increases or decreases,
                          movements below ``min_movement`` are skipped
   - thin_capitalisation: share of the interest attributable to debt in
                          excess of ``max_debt_to_equity`` times equity

   A ``[settings]`` table tunes the limits above.

2. Suggestions
   ------------
   ``suggest_adjustments(rows, guide)`` matches each mapped row against
   every definition (keyword on account name or classification item, then
   criteria) and returns rule-based suggestions.

3. Computation
   ------------
   ``compute_tax(net_profit_before_tax, adjustments, rate)``:

       taxable_income = profit + debits - credits - allowances + recoupments
       tax_liability  = max(0, taxable_income) * rate

   Only APPROVED and MODIFIED adjustments are counted, by absolute amount.
"""

import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .models import MappedAccountRow, Section, Subsection

DEFAULT_TAX_RATE = 0.27

CALCULATION_TYPES = ("absolute_balance", "excess", "movement", "thin_capitalisation")
BALANCE_SIGNS = ("positive", "negative", "any")

# Balance-sheet subsections whose natural balance is a credit.
_CREDIT_SUBSECTIONS = (
    Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES,
    Subsection.NON_CURRENT_LIABILITIES,
    Subsection.CURRENT_LIABILITIES,
)
_LIABILITY_SUBSECTIONS = (
    Subsection.NON_CURRENT_LIABILITIES,
    Subsection.CURRENT_LIABILITIES,
)
_EQUITY_SUBSECTIONS = (
    Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES,
    Subsection.CAPITAL_AND_RESERVES_DEBIT_BALANCES,
)


class AdjustmentType(Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
    ALLOWANCE = "ALLOWANCE"
    RECOUPMENT = "RECOUPMENT"


class AdjustmentStatus(Enum):
    SUGGESTED = "SUGGESTED"
    APPROVED = "APPROVED"
    MODIFIED = "MODIFIED"
    REJECTED = "REJECTED"


COUNTED_STATUSES = (AdjustmentStatus.APPROVED, AdjustmentStatus.MODIFIED)


@dataclass(frozen=True)
class AdjustmentCriteria:
    """Account filters of a definition. Empty tuples match everything."""

    sections: tuple[Section, ...] = ()
    subsections: tuple[Subsection, ...] = ()
    item_contains: tuple[str, ...] = ()
    balance_sign: str = "any"


@dataclass(frozen=True)
class AdjustmentDefinition:
    name: str
    type: AdjustmentType
    sars_section: str
    keywords: tuple[str, ...]
    description_template: str
    reasoning: str
    calculation: str = "absolute_balance"
    confidence: float = 0.5
    requires_manual_review: bool = False
    criteria: AdjustmentCriteria = AdjustmentCriteria()
    direction: Optional[str] = None


@dataclass(frozen=True)
class AdjustmentGuide:
    """Definitions plus the limits used by the special calculations."""

    definitions: tuple[AdjustmentDefinition, ...]
    donation_limit: float = 0.10
    max_debt_to_equity: float = 3.0
    debt_keywords: tuple[str, ...] = ("loan", "borrowing")
    min_movement: float = 1.0


@dataclass(frozen=True)
class TaxAdjustmentSuggestion:
    """A rule-based adjustment proposal for one mapped row."""

    type: AdjustmentType
    description: str
    amount: float
    sars_section: str
    confidence: float
    reasoning: str
    requires_manual_review: bool
    method: str
    row_id: Any
    inputs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TaxAdjustment:
    """An adjustment as reviewed by the user."""

    type: AdjustmentType
    description: str
    amount: float
    status: AdjustmentStatus = AdjustmentStatus.SUGGESTED
    sars_section: str = ""

    @classmethod
    def from_suggestion(
        cls,
        suggestion: TaxAdjustmentSuggestion,
        status: AdjustmentStatus = AdjustmentStatus.SUGGESTED,
        amount: Optional[float] = None,
    ) -> "TaxAdjustment":
        """Accept a suggestion, optionally overriding its amount (MODIFIED)."""
        if amount is not None and status is AdjustmentStatus.APPROVED:
            status = AdjustmentStatus.MODIFIED
        return cls(
            type=suggestion.type,
            description=suggestion.description,
            amount=suggestion.amount if amount is None else amount,
            status=status,
            sars_section=suggestion.sars_section,
        )


@dataclass(frozen=True)
class TaxComputation:
    net_profit_before_tax: float
    debit_adjustments: float
    credit_adjustments: float
    allowances: float
    recoupments: float
    taxable_income: float
    tax_rate: float
    tax_liability: float
    adjustments_counted: int


# ---------------------------------------------------------------------------
# Guide loading
# ---------------------------------------------------------------------------


def _str_tuple(value: Any, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, list):
        raise ValueError(f"{where} must be a list of strings.")
    return tuple(str(v) for v in value)


def _parse_criteria(raw: Any, where: str) -> AdjustmentCriteria:
    if raw is None:
        return AdjustmentCriteria()
    if not isinstance(raw, Mapping):
        raise ValueError(f"{where}.criteria must be a table.")

    balance_sign = str(raw.get("balance_sign", "any")).lower()
    if balance_sign not in BALANCE_SIGNS:
        raise ValueError(
            f"{where}.criteria.balance_sign must be one of: {', '.join(BALANCE_SIGNS)}."
        )
    return AdjustmentCriteria(
        sections=tuple(
            Section.parse(s) for s in _str_tuple(raw.get("sections"), f"{where}.criteria.sections")
        ),
        subsections=tuple(
            Subsection.parse(s)
            for s in _str_tuple(raw.get("subsections"), f"{where}.criteria.subsections")
        ),
        item_contains=tuple(
            s.lower() for s in _str_tuple(raw.get("item_contains"), f"{where}.criteria.item_contains")
        ),
        balance_sign=balance_sign,
    )


def _parse_definition(raw: Any, index: int) -> AdjustmentDefinition:
    where = f"adjustments[{index}]"
    if not isinstance(raw, Mapping):
        raise ValueError(f"{where} must be a table.")

    try:
        name = str(raw["name"])
        type_ = AdjustmentType(str(raw["type"]).upper())
    except KeyError as exc:
        raise ValueError(f"{where} is missing the {exc.args[0]!r} key.") from exc
    except ValueError as exc:
        raise ValueError(
            f"{where}.type must be one of: "
            + ", ".join(t.value for t in AdjustmentType)
            + "."
        ) from exc

    keywords = tuple(k.lower() for k in _str_tuple(raw.get("keywords"), f"{where}.keywords"))
    if not keywords:
        raise ValueError(f"{where}.keywords must not be empty.")

    calculation = str(raw.get("calculation", "absolute_balance"))
    if calculation not in CALCULATION_TYPES:
        raise ValueError(
            f"{where}.calculation must be one of: {', '.join(CALCULATION_TYPES)}."
        )

    direction = raw.get("direction")
    if calculation == "movement":
        if direction not in ("increase", "decrease"):
            raise ValueError(
                f"{where}.direction must be 'increase' or 'decrease' for a movement."
            )
    elif direction is not None:
        raise ValueError(f"{where}.direction is only valid for a movement.")

    return AdjustmentDefinition(
        name=name,
        type=type_,
        sars_section=str(raw.get("sars_section", "")),
        keywords=keywords,
        description_template=str(raw.get("description_template", name + " - {account_name}")),
        reasoning=str(raw.get("reasoning", "")),
        calculation=calculation,
        confidence=float(raw.get("confidence", 0.5)),
        requires_manual_review=bool(raw.get("requires_manual_review", False)),
        criteria=_parse_criteria(raw.get("criteria"), where),
        direction=direction,
    )


def load_adjustment_guide(path: Path) -> AdjustmentGuide:
    """
    Load a tax adjustment guide from a TOML file.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the file cannot be parsed or a definition is invalid.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Tax adjustment guide not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML tax adjustment guide: {path}") from exc

    raw_definitions = data.get("adjustments") or []
    if not isinstance(raw_definitions, list):
        raise ValueError("The tax adjustment guide must define [[adjustments]] tables.")

    settings = data.get("settings") or {}
    if not isinstance(settings, Mapping):
        raise ValueError("[settings] must be a table.")

    return AdjustmentGuide(
        definitions=tuple(_parse_definition(d, i) for i, d in enumerate(raw_definitions)),
        donation_limit=float(settings.get("donation_limit", 0.10)),
        max_debt_to_equity=float(settings.get("max_debt_to_equity", 3.0)),
        debt_keywords=tuple(
            k.lower()
            for k in _str_tuple(settings.get("debt_keywords", ["loan", "borrowing"]), "settings.debt_keywords")
        ),
        min_movement=float(settings.get("min_movement", 1.0)),
    )


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


def _matches(row: MappedAccountRow, definition: AdjustmentDefinition) -> bool:
    name = row.account_name.lower()
    item = row.classification_item.lower()
    if not any(k in name or k in item for k in definition.keywords):
        return False

    criteria = definition.criteria
    if criteria.sections and row.section not in criteria.sections:
        return False
    if criteria.subsections and row.subsection not in criteria.subsections:
        return False
    if criteria.item_contains and not any(s in item for s in criteria.item_contains):
        return False
    if criteria.balance_sign == "positive" and row.balance <= 0:
        return False
    if criteria.balance_sign == "negative" and row.balance >= 0:
        return False
    return True


def _profit(rows: list[MappedAccountRow]) -> float:
    """Accounting profit in statement convention (positive = profit)."""
    return -sum(r.balance for r in rows if r.section is Section.INCOME_STATEMENT)


def _thin_cap_excess(
    rows: list[MappedAccountRow], interest: MappedAccountRow, guide: AdjustmentGuide
) -> tuple[float, dict[str, Any]]:
    debt = sum(
        abs(r.balance)
        for r in rows
        if r.subsection in _LIABILITY_SUBSECTIONS
        and any(
            k in r.account_name.lower() or k in r.classification_item.lower()
            for k in guide.debt_keywords
        )
    )
    equity = -sum(r.balance for r in rows if r.subsection in _EQUITY_SUBSECTIONS)
    allowed = max(0.0, equity) * guide.max_debt_to_equity
    excess_debt = max(0.0, debt - allowed)
    inputs = {"total_debt": debt, "total_equity": equity, "allowed_debt": allowed}
    if debt <= 0 or excess_debt <= 0:
        return 0.0, inputs
    return abs(interest.balance) * excess_debt / debt, inputs


def _movement(row: MappedAccountRow) -> float:
    movement = row.balance - row.prior_year_balance
    return -movement if row.subsection in _CREDIT_SUBSECTIONS else movement


def suggest_adjustments(
    rows: Iterable[MappedAccountRow], guide: AdjustmentGuide
) -> list[TaxAdjustmentSuggestion]:
    """
    Return rule-based tax adjustment suggestions for mapped rows.

    A row may trigger several definitions. Suggestions come out in row
    order, then in guide order.
    """
    all_rows = list(rows)
    profit = _profit(all_rows)
    suggestions: list[TaxAdjustmentSuggestion] = []

    for row in all_rows:
        for definition in guide.definitions:
            if not _matches(row, definition):
                continue

            amount = abs(row.balance)
            inputs: dict[str, Any] = {
                "account_code": row.account_code,
                "account_name": row.account_name,
                "balance": row.balance,
                "prior_year_balance": row.prior_year_balance,
            }

            if definition.calculation == "excess":
                base = profit + abs(row.balance)
                limit = guide.donation_limit * base
                inputs.update(profit_before_donation=base, limit=limit)
                amount = abs(row.balance) - limit
                if amount <= 0:
                    continue
            elif definition.calculation == "movement":
                movement = _movement(row)
                inputs["movement"] = movement
                if definition.direction == "increase" and movement <= 0:
                    continue
                if definition.direction == "decrease" and movement >= 0:
                    continue
                amount = abs(movement)
                if amount < guide.min_movement:
                    continue
            elif definition.calculation == "thin_capitalisation":
                amount, thin_cap_inputs = _thin_cap_excess(all_rows, row, guide)
                inputs.update(thin_cap_inputs)
                if amount <= 0:
                    continue

            suggestions.append(
                TaxAdjustmentSuggestion(
                    type=definition.type,
                    description=definition.description_template.replace(
                        "{account_name}", row.account_name
                    ),
                    amount=amount,
                    sars_section=definition.sars_section,
                    confidence=definition.confidence,
                    reasoning=definition.reasoning,
                    requires_manual_review=definition.requires_manual_review,
                    method=definition.name.lower().replace(" ", "_"),
                    row_id=row.id,
                    inputs=inputs,
                )
            )

    return suggestions


# ---------------------------------------------------------------------------
# Computation
# ---------------------------------------------------------------------------


def compute_tax(
    net_profit_before_tax: float,
    adjustments: Iterable[TaxAdjustment],
    rate: float = DEFAULT_TAX_RATE,
) -> TaxComputation:
    """
    Compute taxable income and the tax liability.

    Args:
        net_profit_before_tax: Accounting profit (income statement).
        adjustments: Reviewed adjustments; only APPROVED and MODIFIED ones
            are counted.
        rate: Income tax rate, between 0 and 1.

    Returns:
        A TaxComputation. A tax loss yields a zero liability.
    """
    if not 0 <= rate <= 1:
        raise ValueError("Tax rate must be between 0 and 1.")

    totals = {t: 0.0 for t in AdjustmentType}
    counted = 0
    for adjustment in adjustments:
        if adjustment.status not in COUNTED_STATUSES:
            continue
        totals[adjustment.type] += abs(adjustment.amount)
        counted += 1

    taxable_income = (
        net_profit_before_tax
        + totals[AdjustmentType.DEBIT]
        - totals[AdjustmentType.CREDIT]
        - totals[AdjustmentType.ALLOWANCE]
        + totals[AdjustmentType.RECOUPMENT]
    )

    return TaxComputation(
        net_profit_before_tax=net_profit_before_tax,
        debit_adjustments=totals[AdjustmentType.DEBIT],
        credit_adjustments=totals[AdjustmentType.CREDIT],
        allowances=totals[AdjustmentType.ALLOWANCE],
        recoupments=totals[AdjustmentType.RECOUPMENT],
        taxable_income=taxable_income,
        tax_rate=rate,
        tax_liability=max(0.0, taxable_income) * rate,
        adjustments_counted=counted,
    )
