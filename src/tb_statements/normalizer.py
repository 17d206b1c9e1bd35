# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Sign-convention normalization for TB Statements.

Trial balances are stored in ledger convention (debit-positive): income,
equity and liabilities carry negative balances. Statements present them as
positive magnitudes while totals still need the arithmetic sign.

Each aggregated item is therefore converted into two amount pairs:

    display_*  what the statement shows for the item,
    signed_*   what enters the statement's totals.

Rule table (by role; the role comes from the catalog):

    role                          display     signed
    ----------------------------  ----------  --------
    asset                         raw         raw
    equity (credit and debit)     -raw        -raw
    liability                     -raw        -raw
    revenue                       |raw|       raw
    contra_revenue, cost_of_sales raw         raw
    other_income                  |raw|       -raw
    expense                       |raw|       raw
"""

from collections.abc import Callable, Mapping

from .catalog import ClassificationCatalog
from .models import AggregatedItem, ItemKey, ItemRole, NormalizedItem, Subsection


def _identity(x: float) -> float:
    return x


def _negate(x: float) -> float:
    return -x


# role -> (display transform, signed transform)
SIGN_RULES: dict[ItemRole, tuple[Callable[[float], float], Callable[[float], float]]] = {
    ItemRole.ASSET: (_identity, _identity),
    ItemRole.EQUITY: (_negate, _negate),
    ItemRole.LIABILITY: (_negate, _negate),
    ItemRole.REVENUE: (abs, _identity),
    ItemRole.CONTRA_REVENUE: (_identity, _identity),
    ItemRole.COST_OF_SALES: (_identity, _identity),
    ItemRole.OTHER_INCOME: (abs, _negate),
    ItemRole.EXPENSE: (abs, _identity),
}


def _clean(x: float) -> float:
    # Negating 0.0 yields -0.0, which prints as "-0.0" in tables.
    return x + 0.0


def normalize_item(item: AggregatedItem, role: ItemRole) -> NormalizedItem:
    """Convert an aggregated item from ledger to statement convention.

    Args:
        item: Aggregated ledger sums for one classification item.
        role: Role declared by the catalog for this item.

    Returns:
        A NormalizedItem carrying both the display and the signed amounts
        for the current and the prior year.
    """
    display, signed = SIGN_RULES[role]
    return NormalizedItem(
        item=item,
        role=role,
        display_current=_clean(display(item.current_sum)),
        display_prior=_clean(display(item.prior_sum)),
        signed_current=_clean(signed(item.current_sum)),
        signed_prior=_clean(signed(item.prior_sum)),
    )


def normalize_items(
    aggregated: Mapping[ItemKey, AggregatedItem],
    catalog: ClassificationCatalog,
    strict: bool = False,
) -> list[NormalizedItem]:
    """Normalize every aggregated item, ordered for presentation.

    Items are ordered by subsection, then by catalog rank, then by label,
    so the result does not depend on the order of the input rows.

    Raises:
        UnknownClassificationItemError: in strict mode, for an item the
            catalog does not declare.
    """
    subsection_order = {s: i for i, s in enumerate(Subsection)}
    keys = sorted(
        aggregated,
        key=lambda k: (
            subsection_order[k.subsection],
            catalog.display_rank(k.classification_item, k.subsection),
            k.classification_item,
        ),
    )
    return [
        normalize_item(
            aggregated[k],
            catalog.role_for(k.classification_item, k.subsection, strict=strict),
        )
        for k in keys
    ]
