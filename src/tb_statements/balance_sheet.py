# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Balance sheet builder.

Distributes normalized balance-sheet items into five presentation sections:

    Non-Current Assets
    Current Assets
    Equity & Reserves      (credit balances, debit balances and the
                            current-year profit/loss plug line)
    Non-Current Liabilities
    Current Liabilities

and computes, independently for the current and the prior year:

    total_assets                 = Σ non-current assets + Σ current assets
    total_equity                 = Σ credit balances + Σ debit balances
                                   - current_year_profit_loss
    total_liabilities            = Σ non-current + Σ current liabilities
    total_equity_and_liabilities = total_equity + total_liabilities

``current_year_profit_loss`` is the income-statement result in ledger
convention (Σ raw income-statement balances, negative for a profit), so
subtracting it adds a profit to equity.
"""

from collections.abc import Iterable

from .models import (
    NormalizedItem,
    Section,
    Statement,
    StatementLine,
    StatementSection,
    Subsection,
)
from .reconciliation import DEFAULT_TOLERANCE, check_balance

PROFIT_LOSS_LABEL = "Current year profit/(loss)"

SECTION_LAYOUT: tuple[tuple[str, str, tuple[Subsection, ...]], ...] = (
    ("non_current_assets", "Non-Current Assets", (Subsection.NON_CURRENT_ASSETS,)),
    ("current_assets", "Current Assets", (Subsection.CURRENT_ASSETS,)),
    (
        "equity",
        "Equity & Reserves",
        (
            Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES,
            Subsection.CAPITAL_AND_RESERVES_DEBIT_BALANCES,
        ),
    ),
    (
        "non_current_liabilities",
        "Non-Current Liabilities",
        (Subsection.NON_CURRENT_LIABILITIES,),
    ),
    ("current_liabilities", "Current Liabilities", (Subsection.CURRENT_LIABILITIES,)),
)


def _item_line(n: NormalizedItem) -> StatementLine:
    return StatementLine(
        label=n.classification_item,
        current_amount=n.display_current,
        prior_amount=n.display_prior,
        subsection=n.subsection,
        role=n.role,
        source_rows=n.item.source_rows,
    )


def _signed_sum(items: Iterable[NormalizedItem]) -> tuple[float, float]:
    current = 0.0
    prior = 0.0
    for n in items:
        current += n.signed_current
        prior += n.signed_prior
    return current, prior


def build_balance_sheet(
    items: Iterable[NormalizedItem],
    current_year_profit_loss: tuple[float, float] = (0.0, 0.0),
    tolerance: float = DEFAULT_TOLERANCE,
) -> Statement:
    """Build the balance sheet from normalized items.

    Args:
        items: Normalized items; income-statement items are ignored.
        current_year_profit_loss: (current, prior) income-statement result
            in ledger convention, injected as the equity plug line.
        tolerance: Tolerance of the reconciliation check.

    Returns:
        A Statement with five sections, the named totals listed in the
        module docstring (as (current, prior) tuples) and the
        reconciliation result attached.
    """
    by_subsection: dict[Subsection, list[NormalizedItem]] = {
        s: [] for s in Subsection if s.section is Section.BALANCE_SHEET
    }
    for n in items:
        if n.subsection.section is Section.BALANCE_SHEET:
            by_subsection[n.subsection].append(n)

    pl_current, pl_prior = current_year_profit_loss
    totals: dict[str, tuple[float, float]] = {}
    sections: list[StatementSection] = []

    for key, title, subsections in SECTION_LAYOUT:
        lines: list[StatementLine] = []
        section_current = 0.0
        section_prior = 0.0

        for subsection in subsections:
            sub_items = by_subsection[subsection]
            sub_current, sub_prior = _signed_sum(sub_items)
            lines.extend(_item_line(n) for n in sub_items)
            if key == "equity":
                # Equity shows a subtotal per balance type.
                lines.append(
                    StatementLine(
                        label=f"Total {subsection.title.lower()}",
                        current_amount=sub_current,
                        prior_amount=sub_prior,
                        is_subtotal=True,
                        subsection=subsection,
                    )
                )
                short = (
                    "credit_balances"
                    if subsection is Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES
                    else "debit_balances"
                )
                totals[f"total_{short}"] = (sub_current, sub_prior)
            section_current += sub_current
            section_prior += sub_prior

        if key == "equity":
            lines.append(
                StatementLine(
                    label=PROFIT_LOSS_LABEL,
                    current_amount=-pl_current + 0.0,
                    prior_amount=-pl_prior + 0.0,
                )
            )
            totals["current_year_profit_loss"] = (-pl_current + 0.0, -pl_prior + 0.0)
            section_current -= pl_current
            section_prior -= pl_prior

        totals[f"total_{key}"] = (section_current, section_prior)
        sections.append(
            StatementSection(
                key=key,
                title=title,
                lines=tuple(lines),
                total_current=section_current,
                total_prior=section_prior,
            )
        )

    def _add(*names: str) -> tuple[float, float]:
        return (
            sum(totals[n][0] for n in names),
            sum(totals[n][1] for n in names),
        )

    totals["total_assets"] = _add("total_non_current_assets", "total_current_assets")
    totals["total_liabilities"] = _add(
        "total_non_current_liabilities", "total_current_liabilities"
    )
    totals["total_equity_and_liabilities"] = _add("total_equity", "total_liabilities")

    reconciliation = check_balance(
        totals["total_assets"],
        totals["total_equity_and_liabilities"],
        tolerance=tolerance,
    )

    def _result(name: str, label: str) -> StatementLine:
        current_value, prior_value = totals[name]
        return StatementLine(
            label=label,
            current_amount=current_value,
            prior_amount=prior_value,
            is_total=True,
        )

    results = (
        ("current_assets", _result("total_assets", "TOTAL ASSETS")),
        ("current_liabilities", _result("total_liabilities", "TOTAL LIABILITIES")),
        (
            "current_liabilities",
            _result("total_equity_and_liabilities", "TOTAL EQUITY & LIABILITIES"),
        ),
    )

    return Statement(
        title="Balance Sheet",
        sections=tuple(sections),
        totals=totals,
        reconciliation=reconciliation,
        results=results,
    )
