# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Mapping aggregation for TB Statements.

Collapses a flat list of mapped account rows into one AggregatedItem per
(classification item, subsection):

    current_sum = Σ balance
    prior_sum   = Σ prior_year_balance

The constituent rows are retained (in input order) for drill-down display.
Items whose sums are zero are kept: hiding them is a presentation decision
taken by ``views.suppress_zero_lines``, never by the aggregator.
"""

from collections.abc import Iterable, Mapping

from .catalog import ClassificationCatalog
from .models import AggregatedItem, ItemKey, MappedAccountRow, Section


def aggregate_rows(
    rows: Iterable[MappedAccountRow],
) -> dict[ItemKey, AggregatedItem]:
    """Group mapped rows by classification item and sum their balances.

    Args:
        rows: Validated mapped rows (order is irrelevant to the sums).

    Returns:
        A dict {ItemKey -> AggregatedItem}. Keys appear in order of first
        occurrence; consumers that need a stable presentation order sort
        by catalog rank.
    """
    # 1) Accumulators per key.
    current: dict[ItemKey, float] = {}
    prior: dict[ItemKey, float] = {}
    sources: dict[ItemKey, list[MappedAccountRow]] = {}

    # 2) Add each row to its bucket.
    for row in rows:
        key = ItemKey(row.classification_item, row.subsection)
        if key not in sources:
            current[key] = 0.0
            prior[key] = 0.0
            sources[key] = []
        current[key] += float(row.balance)
        prior[key] += float(row.prior_year_balance)
        sources[key].append(row)

    # 3) Freeze into AggregatedItem values. Float residue is rounded away
    # so that items netting to zero compare equal to zero.
    return {
        key: AggregatedItem(
            classification_item=key.classification_item,
            subsection=key.subsection,
            current_sum=round(current[key], 10) + 0.0,
            prior_sum=round(prior[key], 10) + 0.0,
            source_rows=tuple(sources[key]),
        )
        for key in sources
    }


def select_section(
    aggregated: Mapping[ItemKey, AggregatedItem], section: Section
) -> dict[ItemKey, AggregatedItem]:
    """Return the aggregated items belonging to one statement."""
    return {k: v for k, v in aggregated.items() if k.subsection.section is section}


def seed_catalog_items(
    aggregated: Mapping[ItemKey, AggregatedItem],
    catalog: ClassificationCatalog,
    section: Section,
) -> dict[ItemKey, AggregatedItem]:
    """Add a zero-valued item for every catalog entry absent from the data.

    This lets a statement show its complete set of standard lines even when
    nothing is mapped to some of them. The input mapping is not modified.

    Args:
        aggregated: Result of :func:`aggregate_rows`.
        catalog: Catalog providing the standard lines.
        section: Only catalog entries of this statement are seeded.

    Returns:
        A new dict containing the original items plus the seeded ones.
    """
    out = dict(aggregated)
    for entry in catalog.entries_for_section(section):
        if entry.key not in out:
            out[entry.key] = AggregatedItem(
                classification_item=entry.classification_item,
                subsection=entry.subsection,
                current_sum=0.0,
                prior_sum=0.0,
            )
    return out
