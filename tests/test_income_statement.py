import pytest

from tb_statements.aggregation import aggregate_rows
from tb_statements.catalog import CatalogEntry, ClassificationCatalog
from tb_statements.income_statement import build_income_statement, ledger_profit_loss
from tb_statements.models import ItemRole, MappedAccountRow, Section, Subsection
from tb_statements.normalizer import normalize_items

IS = Section.INCOME_STATEMENT
GP = Subsection.GROSS_PROFIT_OR_LOSS

CATALOG = ClassificationCatalog(
    [
        CatalogEntry(IS, GP, "Sales", ItemRole.REVENUE),
        CatalogEntry(IS, GP, "Credit notes issued", ItemRole.CONTRA_REVENUE),
        CatalogEntry(IS, GP, "Cost of sales", ItemRole.COST_OF_SALES),
        CatalogEntry(IS, GP, "Purchases", ItemRole.COST_OF_SALES),
        CatalogEntry(IS, GP, "Closing stock", ItemRole.COST_OF_SALES),
        CatalogEntry(IS, Subsection.INCOME_ITEMS_CREDIT_AMOUNTS, "Interest received", ItemRole.OTHER_INCOME),
        CatalogEntry(IS, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, "Salaries and wages", ItemRole.EXPENSE),
    ]
)


def _row(row_id, subsection, item, balance, prior=0.0):
    return MappedAccountRow(
        id=row_id,
        account_code=str(6000 + row_id),
        account_name=item,
        section=subsection.section,
        subsection=subsection,
        classification_item=item,
        balance=balance,
        prior_year_balance=prior,
    )


def _build(rows):
    return build_income_statement(normalize_items(aggregate_rows(rows), CATALOG))


def test_worked_example_totals() -> None:
    statement = _build(
        [
            _row(1, GP, "Sales", -100000.0),
            _row(2, GP, "Cost of sales", 60000.0),
            _row(3, Subsection.INCOME_ITEMS_CREDIT_AMOUNTS, "Interest received", -5000.0),
            _row(4, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, "Salaries and wages", 20000.0),
        ]
    )

    assert statement.total("total_income") == pytest.approx(100000.0)
    assert statement.total("cost_of_sales") == pytest.approx(60000.0)
    assert statement.total("gross_profit") == pytest.approx(40000.0)
    assert statement.total("other_income") == pytest.approx(5000.0)
    assert statement.total("expenses") == pytest.approx(20000.0)
    assert statement.total("net_profit_before_tax") == pytest.approx(25000.0)


def test_prior_year_is_computed_independently() -> None:
    statement = _build(
        [
            _row(1, GP, "Sales", -100000.0, -80000.0),
            _row(2, GP, "Cost of sales", 60000.0, 50000.0),
            _row(3, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, "Salaries and wages", 20000.0, 0.0),
        ]
    )

    assert statement.total("gross_profit", prior=True) == pytest.approx(30000.0)
    assert statement.total("expenses", prior=True) == 0.0
    assert statement.total("net_profit_before_tax", prior=True) == pytest.approx(30000.0)
    assert statement.total("net_profit_before_tax") == pytest.approx(20000.0)


def test_contra_revenue_and_stock_reduce_cost_of_sales_by_role() -> None:
    statement = _build(
        [
            _row(1, GP, "Sales", -1000.0),
            _row(2, GP, "Credit notes issued", 20.0),
            _row(3, GP, "Purchases", 550.0),
            _row(4, GP, "Closing stock", -80.0),
        ]
    )

    assert statement.total("total_income") == pytest.approx(1000.0)
    assert statement.total("cost_of_sales") == pytest.approx(490.0)
    assert statement.total("gross_profit") == pytest.approx(510.0)
    assert statement.total("total_income") - statement.total("cost_of_sales") == pytest.approx(
        statement.total("gross_profit")
    )

    revenue = statement.section("sales_revenue")
    assert [line.label for line in revenue.lines] == ["Sales"]
    costs = statement.section("cost_of_sales")
    closing = next(line for line in costs.lines if line.label == "Closing stock")
    assert closing.current_amount == pytest.approx(-80.0)


def test_loss_is_negative_net_profit() -> None:
    statement = _build(
        [
            _row(1, GP, "Sales", -100.0),
            _row(2, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, "Salaries and wages", 300.0),
        ]
    )

    assert statement.total("net_profit_before_tax") == pytest.approx(-200.0)


def test_sections_and_result_lines() -> None:
    statement = _build([_row(1, GP, "Sales", -10.0)])

    assert [s.key for s in statement.sections] == [
        "sales_revenue",
        "cost_of_sales",
        "other_income",
        "expenses",
    ]
    labels = {key: line.label for key, line in statement.results}
    assert labels == {"cost_of_sales": "GROSS PROFIT", "expenses": "NET PROFIT BEFORE TAX"}
    assert all(line.is_total for _, line in statement.results)


def test_empty_input_yields_zero_totals() -> None:
    statement = build_income_statement([])

    assert all(value == (0.0, 0.0) for value in statement.totals.values())


def test_ledger_profit_loss_is_sum_of_raw_balances() -> None:
    normalized = normalize_items(
        aggregate_rows(
            [
                _row(1, GP, "Sales", -100000.0, -90000.0),
                _row(2, GP, "Cost of sales", 60000.0, 50000.0),
                _row(3, Subsection.INCOME_ITEMS_CREDIT_AMOUNTS, "Interest received", -5000.0),
                _row(4, Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS, "Salaries and wages", 20000.0),
            ]
        ),
        CATALOG,
    )

    current, prior = ledger_profit_loss(normalized)
    assert current == pytest.approx(-25000.0)
    assert prior == pytest.approx(-40000.0)
