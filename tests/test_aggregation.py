import itertools

import pytest

from tb_statements.aggregation import aggregate_rows, seed_catalog_items, select_section
from tb_statements.catalog import CatalogEntry, ClassificationCatalog
from tb_statements.models import (
    ItemKey,
    ItemRole,
    MappedAccountRow,
    Section,
    Subsection,
)

BS = Section.BALANCE_SHEET
IS = Section.INCOME_STATEMENT


def _row(row_id, subsection, item, balance, prior=0.0, name=None):
    return MappedAccountRow(
        id=row_id,
        account_code=str(1000 + row_id),
        account_name=name or item,
        section=subsection.section,
        subsection=subsection,
        classification_item=item,
        balance=balance,
        prior_year_balance=prior,
    )


ROWS = [
    _row(1, Subsection.CURRENT_ASSETS, "Cash", 100.0, 80.0, name="Bank"),
    _row(2, Subsection.CURRENT_ASSETS, "Cash", 25.0, 20.0, name="Petty cash"),
    _row(3, Subsection.GROSS_PROFIT_OR_LOSS, "Sales", -500.0, -400.0),
    _row(4, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, "Rent paid", 120.0, 120.0),
]


def test_aggregate_sums_per_item_and_keeps_sources() -> None:
    aggregated = aggregate_rows(ROWS)

    cash = aggregated[ItemKey("Cash", Subsection.CURRENT_ASSETS)]
    assert cash.current_sum == pytest.approx(125.0)
    assert cash.prior_sum == pytest.approx(100.0)
    assert [r.id for r in cash.source_rows] == [1, 2]

    assert len(aggregated) == 3


def test_aggregate_is_order_independent() -> None:
    reference = aggregate_rows(ROWS)

    for permutation in itertools.permutations(ROWS):
        aggregated = aggregate_rows(permutation)
        assert set(aggregated) == set(reference)
        for key, item in aggregated.items():
            assert item.current_sum == pytest.approx(reference[key].current_sum)
            assert item.prior_sum == pytest.approx(reference[key].prior_sum)


def test_zero_sum_item_is_kept() -> None:
    rows = [
        _row(1, Subsection.CURRENT_LIABILITIES, "Accruals", -50.0),
        _row(2, Subsection.CURRENT_LIABILITIES, "Accruals", 50.0),
    ]
    aggregated = aggregate_rows(rows)

    item = aggregated[ItemKey("Accruals", Subsection.CURRENT_LIABILITIES)]
    assert item.is_zero
    assert len(item.source_rows) == 2


def test_float_residue_is_rounded_to_zero() -> None:
    rows = [
        _row(1, Subsection.CURRENT_ASSETS, "Cash", 0.1, 0.3),
        _row(2, Subsection.CURRENT_ASSETS, "Cash", 0.2, -0.1),
        _row(3, Subsection.CURRENT_ASSETS, "Cash", -0.3, -0.2),
    ]
    aggregated = aggregate_rows(rows)

    item = aggregated[ItemKey("Cash", Subsection.CURRENT_ASSETS)]
    assert item.current_sum == 0.0
    assert item.prior_sum == 0.0
    assert item.is_zero


def test_same_label_in_two_subsections_stays_separate() -> None:
    rows = [
        _row(1, Subsection.NON_CURRENT_ASSETS, "Loans to directors", 300.0),
        _row(2, Subsection.CURRENT_ASSETS, "Loans to directors", 40.0),
    ]
    aggregated = aggregate_rows(rows)

    assert aggregated[ItemKey("Loans to directors", Subsection.NON_CURRENT_ASSETS)].current_sum == 300.0
    assert aggregated[ItemKey("Loans to directors", Subsection.CURRENT_ASSETS)].current_sum == 40.0


def test_empty_input() -> None:
    assert aggregate_rows([]) == {}


def test_select_section() -> None:
    aggregated = aggregate_rows(ROWS)

    bs = select_section(aggregated, BS)
    income = select_section(aggregated, IS)

    assert set(bs) == {ItemKey("Cash", Subsection.CURRENT_ASSETS)}
    assert len(income) == 2


def test_seed_catalog_items_adds_zero_lines_without_mutating_input() -> None:
    catalog = ClassificationCatalog(
        [
            CatalogEntry(BS, Subsection.CURRENT_ASSETS, "Cash", ItemRole.ASSET),
            CatalogEntry(BS, Subsection.CURRENT_ASSETS, "Inventory", ItemRole.ASSET),
            CatalogEntry(IS, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, "Depreciation", ItemRole.EXPENSE),
        ]
    )
    aggregated = aggregate_rows(ROWS)
    before = dict(aggregated)

    seeded = seed_catalog_items(aggregated, catalog, BS)

    assert aggregated == before
    inventory = seeded[ItemKey("Inventory", Subsection.CURRENT_ASSETS)]
    assert inventory.is_zero
    assert inventory.source_rows == ()
    # Existing items are untouched, other statement is not seeded.
    assert seeded[ItemKey("Cash", Subsection.CURRENT_ASSETS)].current_sum == pytest.approx(125.0)
    assert ItemKey("Depreciation", Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS) not in seeded
