# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Statement derivation engine for TB Statements.

This module wires the individual transformation steps into a single pure
function, ``build_financial_statements()``:

1. Row classification
   -------------------
   Every input row is validated against the subsection vocabulary (and,
   in strict-catalog mode, against the catalog). The result is a tagged
   value, ``ClassifiedRow`` or ``UnclassifiedRow``. Depending on
   ``EngineOptions.unknown_subsection``:
   - "raise":      the first invalid row raises its error,
   - "quarantine": invalid rows are excluded from every total and
                   reported in ``FinancialStatements.unclassified``.

2. Aggregation
   ------------
   Valid rows are summed per (classification item, subsection). When
   configured, every catalog item absent from the data is seeded with a
   zero value, so that statements show their complete set of standard
   lines.

3. Normalization
   --------------
   Ledger sums are converted to statement convention (display and signed
   amounts) according to the role declared in the catalog.

4. Statements and reconciliation
   ------------------------------
   The income statement is built first; its ledger-convention result is
   injected into the balance sheet's equity section. The balance sheet
   carries the reconciliation check (assets == equity + liabilities).

The engine performs no I/O, keeps no state between calls and never mutates
its inputs: identical rows always yield identical statements.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal, Union

from .aggregation import aggregate_rows, seed_catalog_items, select_section
from .balance_sheet import build_balance_sheet
from .catalog import ClassificationCatalog
from .income_statement import build_income_statement, ledger_profit_loss
from .log import get_logger
from .models import (
    AggregatedItem,
    ClassifiedRow,
    ItemKey,
    MappedAccountRow,
    RawMappedRow,
    ReconciliationResult,
    RowClassification,
    Section,
    Statement,
    Subsection,
    TbStatementsError,
    UnclassifiedRow,
    UnknownClassificationItemError,
)
from .normalizer import normalize_items
from .reconciliation import DEFAULT_TOLERANCE

UnknownSubsectionPolicy = Literal["raise", "quarantine"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineOptions:
    """
    Options driving the statement derivation.

    Attributes
    ----------
    tolerance :
        Maximum absolute delta for the balance-sheet identity check.
    unknown_subsection :
        What to do with rows that cannot be classified: "raise" or
        "quarantine".
    strict_catalog :
        When True, a classification item absent from the catalog makes
        its row unclassified instead of falling back to the subsection's
        default role.
    emit_catalog_items_balance_sheet :
        Seed zero-valued lines for every balance-sheet catalog item.
    emit_catalog_items_income_statement :
        Seed zero-valued lines for every income-statement catalog item.
    """

    tolerance: float = DEFAULT_TOLERANCE
    unknown_subsection: UnknownSubsectionPolicy = "raise"
    strict_catalog: bool = False
    emit_catalog_items_balance_sheet: bool = True
    emit_catalog_items_income_statement: bool = True

    def __post_init__(self) -> None:
        if self.unknown_subsection not in ("raise", "quarantine"):
            raise ValueError(
                "unknown_subsection must be 'raise' or 'quarantine', got "
                f"{self.unknown_subsection!r}."
            )
        if self.tolerance <= 0:
            raise ValueError("tolerance must be strictly positive.")


@dataclass(frozen=True)
class FinancialStatements:
    """
    Result of one engine run.

    Attributes
    ----------
    balance_sheet :
        Balance sheet, with the reconciliation result attached.
    income_statement :
        Income statement.
    aggregated :
        Aggregated items (including seeded catalog items), for drill-down.
    unclassified :
        Rows excluded from every total (quarantine policy only).
    rows :
        Validated rows that entered the totals, in input order.
    """

    balance_sheet: Statement
    income_statement: Statement
    aggregated: dict[ItemKey, AggregatedItem]
    unclassified: tuple[UnclassifiedRow, ...] = ()
    rows: tuple[MappedAccountRow, ...] = ()

    @property
    def reconciliation(self) -> ReconciliationResult:
        if self.balance_sheet.reconciliation is None:
            raise ValueError("Balance sheet was built without a reconciliation.")
        return self.balance_sheet.reconciliation


def classify_row(
    row: Union[MappedAccountRow, RawMappedRow],
    catalog: ClassificationCatalog,
    strict_catalog: bool = False,
) -> RowClassification:
    """Validate one row and return a tagged classification result.

    Args:
        row: A validated MappedAccountRow or a RawMappedRow from the I/O
            helpers, whose section/subsection are still raw values.
        catalog: Catalog used in strict mode.
        strict_catalog: Require the row's item to be declared in the catalog.

    Returns:
        ClassifiedRow on success, UnclassifiedRow carrying the error
        otherwise. This function never raises for data-quality problems.
    """
    try:
        if isinstance(row, MappedAccountRow):
            mapped = row
        else:
            section = Section.parse(row.section, row_id=row.id)
            subsection = Subsection.parse(
                row.subsection, section=section, row_id=row.id
            )
            mapped = MappedAccountRow(
                id=row.id,
                account_code=row.account_code,
                account_name=row.account_name,
                section=section,
                subsection=subsection,
                classification_item=row.classification_item,
                balance=float(row.balance),
                prior_year_balance=float(row.prior_year_balance),
            )
        if strict_catalog and catalog.get(
            mapped.classification_item, mapped.subsection
        ) is None:
            raise UnknownClassificationItemError(
                mapped.classification_item, mapped.subsection
            )
    except TbStatementsError as exc:
        return UnclassifiedRow(row=row, error=exc)
    return ClassifiedRow(row=mapped)


def build_financial_statements(
    rows: Iterable[Union[MappedAccountRow, RawMappedRow]],
    catalog: ClassificationCatalog,
    options: EngineOptions = EngineOptions(),
) -> FinancialStatements:
    """Derive the balance sheet and income statement from mapped rows.

    Args:
        rows: Mapped trial-balance rows (any order).
        catalog: Classification catalog (roles, standard lines, ordering).
        options: Engine options.

    Returns:
        A FinancialStatements instance. An empty input yields all-zero
        totals and a passing reconciliation.

    Raises:
        UnknownSubsectionError, UnknownSectionError,
        UnknownClassificationItemError: with the "raise" policy, for the
            first row that cannot be classified.
    """
    # 1) Classify rows.
    valid: list[MappedAccountRow] = []
    unclassified: list[UnclassifiedRow] = []
    for row in rows:
        result = classify_row(row, catalog, strict_catalog=options.strict_catalog)
        if isinstance(result, ClassifiedRow):
            valid.append(result.row)
        elif options.unknown_subsection == "raise":
            raise result.error
        else:
            unclassified.append(result)

    if unclassified:
        logger.warning(
            "rows_quarantined",
            count=len(unclassified),
            row_ids=[u.row.id for u in unclassified],
        )

    # 2) Aggregate, then seed standard catalog lines where configured.
    aggregated = aggregate_rows(valid)
    if options.emit_catalog_items_balance_sheet:
        aggregated = seed_catalog_items(aggregated, catalog, Section.BALANCE_SHEET)
    if options.emit_catalog_items_income_statement:
        aggregated = seed_catalog_items(aggregated, catalog, Section.INCOME_STATEMENT)

    # 3) Normalize signs, one statement at a time.
    bs_items = normalize_items(
        select_section(aggregated, Section.BALANCE_SHEET),
        catalog,
        strict=options.strict_catalog,
    )
    is_items = normalize_items(
        select_section(aggregated, Section.INCOME_STATEMENT),
        catalog,
        strict=options.strict_catalog,
    )

    # 4) Statements. The income statement result feeds the equity plug.
    income_statement = build_income_statement(is_items)
    balance_sheet = build_balance_sheet(
        bs_items,
        current_year_profit_loss=ledger_profit_loss(is_items),
        tolerance=options.tolerance,
    )

    logger.debug(
        "statements_built",
        rows=len(valid),
        items=len(aggregated),
        balance_sheet_items=len(bs_items),
        catalog_items=len(catalog),
        reconciled=balance_sheet.reconciliation.passed
        if balance_sheet.reconciliation
        else None,
    )

    return FinancialStatements(
        balance_sheet=balance_sheet,
        income_statement=income_statement,
        aggregated=aggregated,
        unclassified=tuple(unclassified),
        rows=tuple(valid),
    )
