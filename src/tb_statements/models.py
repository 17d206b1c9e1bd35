# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core data model for TB Statements.

This module defines the value objects exchanged between the aggregation,
normalization and statement-building steps:

- Section / Subsection / ItemRole: the fixed vocabularies of the engine,
- MappedAccountRow:  one ledger account mapped to a classification item,
- ItemKey / AggregatedItem / NormalizedItem: intermediate, derived values,
- StatementLine / StatementSection / Statement: renderable output,
- ReconciliationResult / YearCheck: balance-sheet identity diagnostics,
- ClassifiedRow / UnclassifiedRow: tagged result of row validation.

It also defines the error taxonomy raised by the engine.

All dataclasses are frozen: every structure is rebuilt from the input rows
on each call and never mutated afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TbStatementsError(Exception):
    """Base class for all errors raised by TB Statements."""

    kind: str = "error"


class UnknownSubsectionError(TbStatementsError, ValueError):
    """Raised when a subsection is not part of the catalog vocabulary.

    This is a data-quality error: the row cannot be placed on a statement
    without guessing, so the caller decides whether to reject it or to
    quarantine it (see ``engine.build_financial_statements``).

    Attributes:
        value: The raw subsection value that could not be resolved.
        row_id: Identifier of the offending row, when known.
        section: Section of the offending row, when known.
    """

    kind = "validation"

    def __init__(
        self,
        value: Any,
        row_id: Any = None,
        section: Optional["Section"] = None,
    ) -> None:
        self.value = value
        self.row_id = row_id
        self.section = section
        msg = f"Unknown subsection {value!r}"
        if section is not None:
            msg += f" for section '{section.label}'"
        if row_id is not None:
            msg += f" (row id {row_id!r})"
        super().__init__(msg)


class UnknownSectionError(TbStatementsError, ValueError):
    """Raised when a row's section is neither balance sheet nor income statement."""

    kind = "validation"

    def __init__(self, value: Any, row_id: Any = None) -> None:
        self.value = value
        self.row_id = row_id
        msg = f"Unknown section {value!r}"
        if row_id is not None:
            msg += f" (row id {row_id!r})"
        super().__init__(msg)


class UnknownClassificationItemError(TbStatementsError, ValueError):
    """Raised in strict-catalog mode for items absent from the catalog."""

    kind = "validation"

    def __init__(self, classification_item: str, subsection: "Subsection") -> None:
        self.classification_item = classification_item
        self.subsection = subsection
        super().__init__(
            f"Classification item {classification_item!r} is not declared in "
            f"the catalog for subsection '{subsection.value}'."
        )


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------


def _squash(value: Any) -> str:
    """Lowercase a label and drop spaces, underscores and dashes."""
    return "".join(ch for ch in str(value).strip().lower() if ch not in " _-")


class Section(Enum):
    """Top-level statement a row belongs to."""

    BALANCE_SHEET = "Balance Sheet"
    INCOME_STATEMENT = "Income Statement"

    @property
    def label(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Any, row_id: Any = None) -> "Section":
        """Parse 'Balance Sheet', 'balance_sheet', 'BALANCE_SHEET', etc.

        Raises:
            UnknownSectionError: if the value is not a known section.
        """
        if isinstance(value, Section):
            return value
        squashed = _squash(value)
        for member in cls:
            if squashed in (_squash(member.value), _squash(member.name)):
                return member
        raise UnknownSectionError(value, row_id=row_id)


class Subsection(Enum):
    """Fixed bucket that drives statement placement and sign convention."""

    NON_CURRENT_ASSETS = "nonCurrentAssets"
    CURRENT_ASSETS = "currentAssets"
    CAPITAL_AND_RESERVES_CREDIT_BALANCES = "capitalAndReservesCreditBalances"
    CAPITAL_AND_RESERVES_DEBIT_BALANCES = "capitalAndReservesDebitBalances"
    NON_CURRENT_LIABILITIES = "nonCurrentLiabilities"
    CURRENT_LIABILITIES = "currentLiabilities"

    GROSS_PROFIT_OR_LOSS = "grossProfitOrLoss"
    INCOME_ITEMS_CREDIT_AMOUNTS = "incomeItemsCreditAmounts"
    EXPENSE_ITEMS_DEBIT_AMOUNTS = "expenseItemsDebitAmounts"
    INCOME_ITEMS_ONLY_CREDIT_AMOUNTS = "incomeItemsOnlyCreditAmounts"

    @property
    def section(self) -> Section:
        return SUBSECTION_SECTION[self]

    @property
    def title(self) -> str:
        return SUBSECTION_TITLES[self]

    @classmethod
    def parse(
        cls,
        value: Any,
        section: Optional[Section] = None,
        row_id: Any = None,
    ) -> "Subsection":
        """Resolve a raw subsection value, case-insensitively.

        Both the camelCase value ('currentAssets') and the enum name
        ('CURRENT_ASSETS', 'current_assets') are accepted.

        Raises:
            UnknownSubsectionError: if the value is not a known subsection,
                or if it does not belong to ``section`` when one is given.
        """
        if isinstance(value, Subsection):
            member: Optional[Subsection] = value
        else:
            squashed = _squash(value)
            member = None
            for candidate in cls:
                if squashed in (_squash(candidate.value), _squash(candidate.name)):
                    member = candidate
                    break
        if member is None:
            raise UnknownSubsectionError(value, row_id=row_id, section=section)
        if section is not None and member.section is not section:
            raise UnknownSubsectionError(value, row_id=row_id, section=section)
        return member


SUBSECTION_SECTION: dict[Subsection, Section] = {
    Subsection.NON_CURRENT_ASSETS: Section.BALANCE_SHEET,
    Subsection.CURRENT_ASSETS: Section.BALANCE_SHEET,
    Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES: Section.BALANCE_SHEET,
    Subsection.CAPITAL_AND_RESERVES_DEBIT_BALANCES: Section.BALANCE_SHEET,
    Subsection.NON_CURRENT_LIABILITIES: Section.BALANCE_SHEET,
    Subsection.CURRENT_LIABILITIES: Section.BALANCE_SHEET,
    Subsection.GROSS_PROFIT_OR_LOSS: Section.INCOME_STATEMENT,
    Subsection.INCOME_ITEMS_CREDIT_AMOUNTS: Section.INCOME_STATEMENT,
    Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS: Section.INCOME_STATEMENT,
    Subsection.INCOME_ITEMS_ONLY_CREDIT_AMOUNTS: Section.INCOME_STATEMENT,
}

SUBSECTION_TITLES: dict[Subsection, str] = {
    Subsection.NON_CURRENT_ASSETS: "Non-Current Assets",
    Subsection.CURRENT_ASSETS: "Current Assets",
    Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES: "Credit Balances",
    Subsection.CAPITAL_AND_RESERVES_DEBIT_BALANCES: "Debit Balances",
    Subsection.NON_CURRENT_LIABILITIES: "Non-Current Liabilities",
    Subsection.CURRENT_LIABILITIES: "Current Liabilities",
    Subsection.GROSS_PROFIT_OR_LOSS: "Gross Profit/Loss",
    Subsection.INCOME_ITEMS_CREDIT_AMOUNTS: "Income Items (Credit)",
    Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS: "Expense Items (Debit)",
    Subsection.INCOME_ITEMS_ONLY_CREDIT_AMOUNTS: "Income Items (Credit Only)",
}


class ItemRole(Enum):
    """Arithmetic role of a classification item, declared by the catalog."""

    ASSET = "asset"
    EQUITY = "equity"
    LIABILITY = "liability"
    REVENUE = "revenue"
    CONTRA_REVENUE = "contra_revenue"
    COST_OF_SALES = "cost_of_sales"
    OTHER_INCOME = "other_income"
    EXPENSE = "expense"

    @classmethod
    def parse(cls, value: Any) -> "ItemRole":
        if isinstance(value, ItemRole):
            return value
        squashed = _squash(value)
        for member in cls:
            if squashed in (_squash(member.value), _squash(member.name)):
                return member
        raise ValueError(f"Unknown item role {value!r}")


# Roles a catalog entry may declare for each subsection. The first role of
# each tuple is the default used when the catalog is silent.
ALLOWED_ROLES: dict[Subsection, tuple[ItemRole, ...]] = {
    Subsection.NON_CURRENT_ASSETS: (ItemRole.ASSET,),
    Subsection.CURRENT_ASSETS: (ItemRole.ASSET,),
    Subsection.CAPITAL_AND_RESERVES_CREDIT_BALANCES: (ItemRole.EQUITY,),
    Subsection.CAPITAL_AND_RESERVES_DEBIT_BALANCES: (ItemRole.EQUITY,),
    Subsection.NON_CURRENT_LIABILITIES: (ItemRole.LIABILITY,),
    Subsection.CURRENT_LIABILITIES: (ItemRole.LIABILITY,),
    Subsection.GROSS_PROFIT_OR_LOSS: (
        ItemRole.COST_OF_SALES,
        ItemRole.REVENUE,
        ItemRole.CONTRA_REVENUE,
    ),
    Subsection.INCOME_ITEMS_CREDIT_AMOUNTS: (ItemRole.OTHER_INCOME,),
    Subsection.EXPENSE_ITEMS_DEBIT_AMOUNTS: (ItemRole.EXPENSE,),
    Subsection.INCOME_ITEMS_ONLY_CREDIT_AMOUNTS: (ItemRole.OTHER_INCOME,),
}


def default_role(subsection: Subsection) -> ItemRole:
    """Return the role assumed for an item the catalog does not declare."""
    return ALLOWED_ROLES[subsection][0]


# ---------------------------------------------------------------------------
# Input rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MappedAccountRow:
    """One ledger account mapped to a classification item.

    Attributes:
        id: Opaque unique identifier (database id, CSV row number...).
        account_code: Account code as displayed in the trial balance.
        account_name: Account label as displayed in the trial balance.
        section: Balance sheet or income statement.
        subsection: One of the subsections of ``section``.
        classification_item: Catalog label (formerly "SARS item") that all
            rows sharing it are summed under.
        balance: Current-year balance, ledger convention (debit-positive).
        prior_year_balance: Prior-year balance, ledger convention.
    """

    id: Any
    account_code: str
    account_name: str
    section: Section
    subsection: Subsection
    classification_item: str
    balance: float
    prior_year_balance: float = 0.0

    def __post_init__(self) -> None:
        if self.subsection.section is not self.section:
            raise UnknownSubsectionError(
                self.subsection.value, row_id=self.id, section=self.section
            )


@dataclass(frozen=True)
class RawMappedRow:
    """A mapped row whose section/subsection have not been validated yet.

    Produced by the I/O helpers so that validation errors can be handled
    per row by the engine (reject or quarantine).
    """

    id: Any
    account_code: str
    account_name: str
    section: Any
    subsection: Any
    classification_item: str
    balance: float
    prior_year_balance: float = 0.0


@dataclass(frozen=True)
class ClassifiedRow:
    """Successful classification: the row can be placed on a statement."""

    row: MappedAccountRow


@dataclass(frozen=True)
class UnclassifiedRow:
    """Failed classification: the row is kept aside with the reason."""

    row: Union[MappedAccountRow, RawMappedRow]
    error: TbStatementsError

    @property
    def reason(self) -> str:
        return str(self.error)


RowClassification = Union[ClassifiedRow, UnclassifiedRow]


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemKey:
    """Grouping key of the aggregator.

    The same catalog label may exist under several subsections (e.g.
    'Licenses' as a non-current and as a current asset), so the key carries
    both.
    """

    classification_item: str
    subsection: Subsection


@dataclass(frozen=True)
class AggregatedItem:
    """Sum of every row sharing a classification item in one subsection."""

    classification_item: str
    subsection: Subsection
    current_sum: float
    prior_sum: float
    source_rows: tuple[MappedAccountRow, ...] = ()

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.classification_item, self.subsection)

    @property
    def is_zero(self) -> bool:
        return self.current_sum == 0 and self.prior_sum == 0


@dataclass(frozen=True)
class NormalizedItem:
    """An aggregated item in statement convention.

    ``display_*`` is what a statement shows for the item; ``signed_*`` is
    the value that enters totals. Both are computed once, from the ledger
    sums, and never re-derived from each other.
    """

    item: AggregatedItem
    role: ItemRole
    display_current: float
    display_prior: float
    signed_current: float
    signed_prior: float

    @property
    def classification_item(self) -> str:
        return self.item.classification_item

    @property
    def subsection(self) -> Subsection:
        return self.item.subsection


# ---------------------------------------------------------------------------
# Output structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatementLine:
    """One renderable statement row after sign normalization."""

    label: str
    current_amount: float
    prior_amount: float
    is_subtotal: bool = False
    is_total: bool = False
    subsection: Optional[Subsection] = None
    role: Optional[ItemRole] = None
    source_rows: tuple[MappedAccountRow, ...] = ()

    @property
    def is_zero(self) -> bool:
        return self.current_amount == 0 and self.prior_amount == 0


@dataclass(frozen=True)
class StatementSection:
    """A titled group of lines with its own total (current, prior)."""

    key: str
    title: str
    lines: tuple[StatementLine, ...]
    total_current: float
    total_prior: float


@dataclass(frozen=True)
class YearCheck:
    """Balance-sheet identity check for a single year."""

    total_assets: float
    total_equity_and_liabilities: float
    delta: float
    passed: bool


@dataclass(frozen=True)
class ReconciliationResult:
    """Balance-sheet identity check for current and prior year.

    A failing check is a diagnostic, not an error: the statement remains
    usable and the failure is rendered as a warning.
    """

    current: YearCheck
    prior: YearCheck
    tolerance: float

    @property
    def passed(self) -> bool:
        return self.current.passed and self.prior.passed

    @property
    def delta(self) -> float:
        return self.current.delta


@dataclass(frozen=True)
class Statement:
    """Ordered sections plus named totals (``{name: (current, prior)}``).

    ``results`` holds the computed total lines of the statement (gross
    profit, total assets...) as ``(section_key, line)`` pairs: each line is
    rendered right after the section it follows.
    """

    title: str
    sections: tuple[StatementSection, ...]
    totals: dict[str, tuple[float, float]]
    reconciliation: Optional[ReconciliationResult] = None
    results: tuple[tuple[str, StatementLine], ...] = ()

    def section(self, key: str) -> StatementSection:
        for s in self.sections:
            if s.key == key:
                return s
        raise KeyError(f"No section {key!r} in statement '{self.title}'")

    def total(self, name: str, prior: bool = False) -> float:
        current_value, prior_value = self.totals[name]
        return prior_value if prior else current_value
