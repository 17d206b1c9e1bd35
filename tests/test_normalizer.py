import math

import pytest

from tb_statements.aggregation import aggregate_rows
from tb_statements.catalog import CatalogEntry, ClassificationCatalog
from tb_statements.models import (
    AggregatedItem,
    ItemRole,
    MappedAccountRow,
    Section,
    Subsection,
    UnknownClassificationItemError,
)
from tb_statements.normalizer import normalize_item, normalize_items


def _item(subsection: Subsection, current: float, prior: float = 0.0) -> AggregatedItem:
    return AggregatedItem("Item", subsection, current, prior)


@pytest.mark.parametrize(
    "role, subsection, raw, display, signed",
    [
        (ItemRole.ASSET, Subsection.CURRENT_ASSETS, 100.0, 100.0, 100.0),
        (ItemRole.ASSET, Subsection.CURRENT_ASSETS, -20.0, -20.0, -20.0),
        (ItemRole.EQUITY, Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES, -300.0, 300.0, 300.0),
        (ItemRole.EQUITY, Subsection.CAPITAL_AND_RESERVES_DEBIT_BALANCES, 50.0, -50.0, -50.0),
        (ItemRole.LIABILITY, Subsection.CURRENT_LIABILITIES, -90.0, 90.0, 90.0),
        (ItemRole.REVENUE, Subsection.GROSS_PROFIT_OR_LOSS, -1000.0, 1000.0, -1000.0),
        (ItemRole.CONTRA_REVENUE, Subsection.GROSS_PROFIT_OR_LOSS, 20.0, 20.0, 20.0),
        (ItemRole.COST_OF_SALES, Subsection.GROSS_PROFIT_OR_LOSS, -80.0, -80.0, -80.0),
        (ItemRole.OTHER_INCOME, Subsection.INCOME_ITEMS_CREDIT_AMOUNTS, -5000.0, 5000.0, 5000.0),
        (ItemRole.EXPENSE, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, 200.0, 200.0, 200.0),
        (ItemRole.EXPENSE, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, -15.0, 15.0, -15.0),
    ],
)
def test_sign_rules(role, subsection, raw, display, signed) -> None:
    n = normalize_item(_item(subsection, raw, raw / 2), role)

    assert n.display_current == pytest.approx(display)
    assert n.signed_current == pytest.approx(signed)
    # The prior year follows the same rule.
    assert n.display_prior == pytest.approx(display / 2)
    assert n.signed_prior == pytest.approx(signed / 2)


@pytest.mark.parametrize("role", [ItemRole.EQUITY, ItemRole.LIABILITY, ItemRole.OTHER_INCOME])
def test_negated_zero_is_positive_zero(role: ItemRole) -> None:
    subsection = {
        ItemRole.EQUITY: Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES,
        ItemRole.LIABILITY: Subsection.CURRENT_LIABILITIES,
        ItemRole.OTHER_INCOME: Subsection.INCOME_ITEMS_CREDIT_AMOUNTS,
    }[role]
    n = normalize_item(_item(subsection, 0.0), role)

    for value in (n.display_current, n.signed_current, n.display_prior, n.signed_prior):
        assert value == 0.0
        assert math.copysign(1.0, value) == 1.0


def _row(row_id, subsection, item, balance):
    return MappedAccountRow(
        id=row_id,
        account_code=str(row_id),
        account_name=item,
        section=subsection.section,
        subsection=subsection,
        classification_item=item,
        balance=balance,
    )


def test_normalize_items_orders_by_subsection_then_catalog_rank() -> None:
    bs = Section.BALANCE_SHEET
    catalog = ClassificationCatalog(
        [
            CatalogEntry(bs, Subsection.CURRENT_ASSETS, "Inventory", ItemRole.ASSET, 1),
            CatalogEntry(bs, Subsection.CURRENT_ASSETS, "Cash", ItemRole.ASSET, 2),
        ]
    )
    rows = [
        _row(1, Subsection.CURRENT_LIABILITIES, "Trade payables", -10.0),
        _row(2, Subsection.CURRENT_ASSETS, "Zeta", 5.0),
        _row(3, Subsection.CURRENT_ASSETS, "Cash", 7.0),
        _row(4, Subsection.NON_CURRENT_ASSETS, "Land", 100.0),
        _row(5, Subsection.CURRENT_ASSETS, "Inventory", 3.0),
    ]

    normalized = normalize_items(aggregate_rows(rows), catalog)

    assert [n.classification_item for n in normalized] == [
        "Land",
        "Inventory",
        "Cash",
        "Zeta",
        "Trade payables",
    ]
    assert normalized[-1].role is ItemRole.LIABILITY


def test_normalize_items_role_comes_from_catalog() -> None:
    catalog = ClassificationCatalog(
        [
            CatalogEntry(
                Section.INCOME_STATEMENT,
                Subsection.GROSS_PROFIT_OR_LOSS,
                "Turnover",
                ItemRole.REVENUE,
            )
        ]
    )
    rows = [
        _row(1, Subsection.GROSS_PROFIT_OR_LOSS, "Turnover", -100.0),
        _row(2, Subsection.GROSS_PROFIT_OR_LOSS, "Freight in", 10.0),
    ]

    by_label = {n.classification_item: n for n in normalize_items(aggregate_rows(rows), catalog)}

    assert by_label["Turnover"].role is ItemRole.REVENUE
    assert by_label["Turnover"].display_current == pytest.approx(100.0)
    # Undeclared gross-profit items default to cost of sales.
    assert by_label["Freight in"].role is ItemRole.COST_OF_SALES


def test_normalize_items_strict_rejects_unknown_item() -> None:
    rows = [_row(1, Subsection.CURRENT_ASSETS, "Cash", 1.0)]

    with pytest.raises(UnknownClassificationItemError):
        normalize_items(aggregate_rows(rows), ClassificationCatalog([]), strict=True)
