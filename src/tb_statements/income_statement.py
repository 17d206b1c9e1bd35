# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Income statement builder.

Distributes normalized income-statement items into four presentation
sections (sales revenue, cost of sales, other income, expenses) and
computes, for the current and the prior year:

    total_income          = Σ |raw| of revenue items
    cost_of_sales         = Σ raw of the other gross-profit-or-loss items
    gross_profit          = -Σ raw of all gross-profit-or-loss items
    other_income          = Σ |raw| of other-income items
    expenses              = Σ |raw| of expense items
    net_profit_before_tax = gross_profit + other_income - expenses

Whether a gross-profit-or-loss item is revenue, contra revenue or cost of
sales is read from its catalog role, never from its label.
"""

from collections.abc import Iterable

from .models import (
    ItemRole,
    NormalizedItem,
    Section,
    Statement,
    StatementLine,
    StatementSection,
    Subsection,
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


def _sum(values: Iterable[tuple[float, float]]) -> tuple[float, float]:
    current = 0.0
    prior = 0.0
    for c, p in values:
        current += c
        prior += p
    return current, prior


def ledger_profit_loss(items: Iterable[NormalizedItem]) -> tuple[float, float]:
    """Income-statement result in ledger convention (negative = profit).

    This is the value injected into the balance sheet's equity section.
    """
    return _sum(
        (n.item.current_sum, n.item.prior_sum)
        for n in items
        if n.subsection.section is Section.INCOME_STATEMENT
    )


def build_income_statement(items: Iterable[NormalizedItem]) -> Statement:
    """Build the income statement from normalized items.

    Args:
        items: Normalized items; balance-sheet items are ignored.

    Returns:
        A Statement with the sections 'sales_revenue', 'cost_of_sales',
        'other_income' and 'expenses', and the totals 'total_income',
        'cost_of_sales', 'gross_profit', 'other_income', 'expenses' and
        'net_profit_before_tax' as (current, prior) tuples.
    """
    gross: list[NormalizedItem] = []
    other_income: list[NormalizedItem] = []
    expenses: list[NormalizedItem] = []

    for n in items:
        if n.subsection is Subsection.GROSS_PROFIT_OR_LOSS:
            gross.append(n)
        elif n.subsection in (
            Subsection.INCOME_ITEMS_CREDIT_AMOUNTS,
            Subsection.INCOME_ITEMS_ONLY_CREDIT_AMOUNTS,
        ):
            other_income.append(n)
        elif n.subsection is Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS:
            expenses.append(n)

    revenue = [n for n in gross if n.role is ItemRole.REVENUE]
    costs = [n for n in gross if n.role is not ItemRole.REVENUE]

    total_income = _sum((n.display_current, n.display_prior) for n in revenue)
    cost_of_sales = _sum((n.signed_current, n.signed_prior) for n in costs)
    gross_raw = _sum((n.item.current_sum, n.item.prior_sum) for n in gross)
    gross_profit = (-gross_raw[0] + 0.0, -gross_raw[1] + 0.0)
    total_other_income = _sum(
        (n.display_current, n.display_prior) for n in other_income
    )
    total_expenses = _sum((n.display_current, n.display_prior) for n in expenses)
    net_profit_before_tax = (
        gross_profit[0] + total_other_income[0] - total_expenses[0],
        gross_profit[1] + total_other_income[1] - total_expenses[1],
    )

    totals = {
        "total_income": total_income,
        "cost_of_sales": cost_of_sales,
        "gross_profit": gross_profit,
        "other_income": total_other_income,
        "expenses": total_expenses,
        "net_profit_before_tax": net_profit_before_tax,
    }

    layout = (
        ("sales_revenue", "Sales Revenue", revenue, total_income),
        ("cost_of_sales", "Cost of Sales", costs, cost_of_sales),
        ("other_income", "Other Income", other_income, total_other_income),
        ("expenses", "Expenses", expenses, total_expenses),
    )
    sections = tuple(
        StatementSection(
            key=key,
            title=title,
            lines=tuple(_item_line(n) for n in section_items),
            total_current=total[0],
            total_prior=total[1],
        )
        for key, title, section_items, total in layout
    )

    results = (
        (
            "cost_of_sales",
            StatementLine(
                label="GROSS PROFIT",
                current_amount=gross_profit[0],
                prior_amount=gross_profit[1],
                is_total=True,
            ),
        ),
        (
            "expenses",
            StatementLine(
                label="NET PROFIT BEFORE TAX",
                current_amount=net_profit_before_tax[0],
                prior_amount=net_profit_before_tax[1],
                is_total=True,
            ),
        ),
    )

    return Statement(
        title="Income Statement",
        sections=sections,
        totals=totals,
        results=results,
    )
