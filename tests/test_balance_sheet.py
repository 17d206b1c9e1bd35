import pytest

from tb_statements.aggregation import aggregate_rows
from tb_statements.balance_sheet import PROFIT_LOSS_LABEL, build_balance_sheet
from tb_statements.catalog import CatalogEntry, ClassificationCatalog
from tb_statements.engine import EngineOptions, build_financial_statements
from tb_statements.models import ItemRole, MappedAccountRow, Section, Subsection
from tb_statements.normalizer import normalize_items

CATALOG = ClassificationCatalog(
    [
        CatalogEntry(
            Section.INCOME_STATEMENT,
            Subsection.GROSS_PROFIT_OR_LOSS,
            "Sales",
            ItemRole.REVENUE,
        ),
    ]
)

NO_SEEDING = EngineOptions(
    emit_catalog_items_balance_sheet=False,
    emit_catalog_items_income_statement=False,
)


def _row(row_id, subsection, item, balance, prior=0.0):
    return MappedAccountRow(
        id=row_id,
        account_code=str(row_id),
        account_name=item,
        section=subsection.section,
        subsection=subsection,
        classification_item=item,
        balance=balance,
        prior_year_balance=prior,
    )


BALANCED_ROWS = [
    _row(1, Subsection.NON_CURRENT_ASSETS, "Land", 500.0),
    _row(2, Subsection.CURRENT_ASSETS, "Cash", 100.0),
    _row(3, Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES, "Share capital", -300.0),
    _row(4, Subsection.CAPITAL_AND_RESERVES_DEBIT_BALANCES, "Drawings", 50.0),
    _row(5, Subsection.NON_CURRENT_LIABILITIES, "Loan", -200.0),
    _row(6, Subsection.CURRENT_LIABILITIES, "Payables", -100.0),
    _row(7, Subsection.GROSS_PROFIT_OR_LOSS, "Sales", -200.0),
    _row(8, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, "Salaries", 150.0),
]


def test_balanced_example_totals() -> None:
    bs = build_financial_statements(BALANCED_ROWS, CATALOG, NO_SEEDING).balance_sheet

    assert bs.total("total_non_current_assets") == pytest.approx(500.0)
    assert bs.total("total_current_assets") == pytest.approx(100.0)
    assert bs.total("total_assets") == pytest.approx(600.0)
    assert bs.total("total_credit_balances") == pytest.approx(300.0)
    assert bs.total("total_debit_balances") == pytest.approx(-50.0)
    assert bs.total("current_year_profit_loss") == pytest.approx(50.0)
    assert bs.total("total_equity") == pytest.approx(300.0)
    assert bs.total("total_liabilities") == pytest.approx(300.0)
    assert bs.total("total_equity_and_liabilities") == pytest.approx(600.0)
    assert bs.reconciliation is not None
    assert bs.reconciliation.passed


def test_equity_section_layout() -> None:
    bs = build_financial_statements(BALANCED_ROWS, CATALOG, NO_SEEDING).balance_sheet
    equity = bs.section("equity")

    labels = [line.label for line in equity.lines]
    assert labels == [
        "Share capital",
        "Total credit balances",
        "Drawings",
        "Total debit balances",
        PROFIT_LOSS_LABEL,
    ]
    drawings = equity.lines[2]
    # Debit-balance equity is shown negated.
    assert drawings.current_amount == pytest.approx(-50.0)
    assert equity.lines[1].is_subtotal and equity.lines[3].is_subtotal
    assert equity.total_current == pytest.approx(300.0)


def test_loss_reduces_equity() -> None:
    rows = [
        _row(1, Subsection.CURRENT_ASSETS, "Cash", 100.0),
        _row(2, Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES, "Share capital", -150.0),
        _row(3, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, "Rent", 50.0),
    ]
    bs = build_financial_statements(rows, CATALOG, NO_SEEDING).balance_sheet

    assert bs.total("current_year_profit_loss") == pytest.approx(-50.0)
    assert bs.total("total_equity") == pytest.approx(100.0)
    assert bs.reconciliation.passed


def test_years_are_independent() -> None:
    rows = [
        _row(1, Subsection.CURRENT_ASSETS, "Cash", 100.0, 70.0),
        _row(2, Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES, "Share capital", -100.0, -60.0),
    ]
    bs = build_financial_statements(rows, CATALOG, NO_SEEDING).balance_sheet

    assert bs.total("total_assets") == pytest.approx(100.0)
    assert bs.total("total_assets", prior=True) == pytest.approx(70.0)
    assert bs.reconciliation.current.passed
    assert not bs.reconciliation.prior.passed
    assert bs.reconciliation.prior.delta == pytest.approx(10.0)


def test_build_balance_sheet_ignores_income_statement_items() -> None:
    normalized = normalize_items(
        aggregate_rows(
            [
                _row(1, Subsection.CURRENT_ASSETS, "Cash", 10.0),
                _row(2, Subsection.GROSS_PROFIT_OR_LOSS, "Sales", -10.0),
            ]
        ),
        CATALOG,
    )
    bs = build_balance_sheet(normalized, current_year_profit_loss=(-10.0, 0.0))

    assert bs.total("total_assets") == pytest.approx(10.0)
    assert bs.total("total_equity") == pytest.approx(10.0)
    assert [s.key for s in bs.sections] == [
        "non_current_assets",
        "current_assets",
        "equity",
        "non_current_liabilities",
        "current_liabilities",
    ]
    result_labels = [line.label for _, line in bs.results]
    assert result_labels == ["TOTAL ASSETS", "TOTAL LIABILITIES", "TOTAL EQUITY & LIABILITIES"]
