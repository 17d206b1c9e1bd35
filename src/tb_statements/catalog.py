# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Classification catalog for TB Statements.

The catalog (the "mapping guide") is a static CSV listing, for every
(section, subsection), the classification items accounts may be mapped to.
Each entry also declares the arithmetic role of the item (revenue, cost of
sales, contra revenue...), so that statement builders never have to infer
a role from the wording of a label.

A catalog file has the following columns:

    section, subsection, classification_item, role, display_order

- ``section``:             'Balance Sheet' or 'Income Statement'
- ``subsection``:          one of the ten subsections (camelCase value)
- ``classification_item``: the label rows are summed under
- ``role``:                optional; defaults to the subsection's role
- ``display_order``:       optional ordering hint within the subsection

This module exposes:
- CatalogEntry:          one catalog line,
- ClassificationCatalog: the read-only container, with lookup helpers.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .models import (
    ALLOWED_ROLES,
    ItemKey,
    ItemRole,
    Section,
    Subsection,
    UnknownClassificationItemError,
    default_role,
)


@dataclass(frozen=True)
class CatalogEntry:
    """Definition of a single catalog line.

    Attributes:
        section: Statement the item belongs to.
        subsection: Subsection the item belongs to.
        classification_item: Label rows are summed under.
        role: Arithmetic role of the item on its statement.
        display_order: Ordering hint within the subsection.
    """

    section: Section
    subsection: Subsection
    classification_item: str
    role: ItemRole
    display_order: int = 0

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.classification_item, self.subsection)


def _cell(r: pd.Series, column: str) -> str:
    """Return a CSV cell as a stripped string ('' for missing/NaN)."""
    value = r.get(column, "")
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


class ClassificationCatalog:
    """In-memory, read-only representation of the mapping guide.

    The catalog is responsible for:
      - storing CatalogEntry instances in display order,
      - resolving the role of a classification item,
      - listing the items of a subsection (to seed zero-valued lines).
    """

    def __init__(self, entries: Iterable[CatalogEntry] = ()):
        ordered = sorted(
            enumerate(entries),
            key=lambda pair: (pair[1].display_order, pair[0]),
        )
        self._entries: tuple[CatalogEntry, ...] = tuple(e for _, e in ordered)

        # Fast lookup by (item, subsection). The first declaration wins so
        # that a duplicated line in the guide does not change the role.
        self._by_key: dict[ItemKey, CatalogEntry] = {}
        for entry in self._entries:
            allowed = ALLOWED_ROLES[entry.subsection]
            if entry.role not in allowed:
                raise ValueError(
                    f"Role '{entry.role.value}' is not allowed for catalog item "
                    f"{entry.classification_item!r} in subsection "
                    f"'{entry.subsection.value}'. Allowed: "
                    + ", ".join(r.value for r in allowed)
                )
            self._by_key.setdefault(entry.key, entry)

        # Rank of each item within its subsection, used to order lines.
        self._rank: dict[ItemKey, int] = {}
        counters: dict[Subsection, int] = {}
        for entry in self._entries:
            if entry.key in self._rank:
                continue
            self._rank[entry.key] = counters.get(entry.subsection, 0)
            counters[entry.subsection] = self._rank[entry.key] + 1

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "ClassificationCatalog":
        """Build a catalog from a DataFrame with the catalog columns.

        Raises:
            ValueError: if a required column is missing, or if a section,
                subsection or role cannot be parsed.
        """
        df = df.copy()
        df.columns = [str(c).strip().lower() for c in df.columns]
        if "sars_item" in df.columns and "classification_item" not in df.columns:
            df = df.rename(columns={"sars_item": "classification_item"})

        required = {"section", "subsection", "classification_item"}
        missing = required - set(df.columns)
        if missing:
            raise ValueError(
                "Invalid catalog structure, missing column(s): "
                + ", ".join(sorted(missing))
            )

        entries: list[CatalogEntry] = []
        for idx, r in df.iterrows():
            section = Section.parse(_cell(r, "section"))
            subsection = Subsection.parse(_cell(r, "subsection"), section=section)
            label = _cell(r, "classification_item")
            if not label:
                raise ValueError(f"Empty classification_item in catalog line {idx}.")

            role_raw = _cell(r, "role")
            role = ItemRole.parse(role_raw) if role_raw else default_role(subsection)

            order_raw = _cell(r, "display_order")
            display_order = int(float(order_raw)) if order_raw else int(idx)

            entries.append(
                CatalogEntry(
                    section=section,
                    subsection=subsection,
                    classification_item=label,
                    role=role,
                    display_order=display_order,
                )
            )
        return cls(entries)

    @staticmethod
    def from_csv(path: str) -> "ClassificationCatalog":
        """Load a catalog directly from a CSV file.

        Args:
            path: Path to the catalog CSV file.

        Returns:
            A ClassificationCatalog populated with the file's entries.
        """
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        return ClassificationCatalog.from_dataframe(df)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, classification_item: str, subsection: Subsection) -> Optional[CatalogEntry]:
        return self._by_key.get(ItemKey(classification_item, subsection))

    def entries_for(self, subsection: Subsection) -> list[CatalogEntry]:
        """Return the catalog entries of a subsection, in display order."""
        seen: set[ItemKey] = set()
        out: list[CatalogEntry] = []
        for e in self._entries:
            if e.subsection is subsection and e.key not in seen:
                seen.add(e.key)
                out.append(e)
        return out

    def entries_for_section(self, section: Section) -> list[CatalogEntry]:
        out: list[CatalogEntry] = []
        for subsection in Subsection:
            if subsection.section is section:
                out.extend(self.entries_for(subsection))
        return out

    def display_rank(self, classification_item: str, subsection: Subsection) -> int:
        """Position of an item within its subsection (unknown items last)."""
        return self._rank.get(
            ItemKey(classification_item, subsection), len(self._entries)
        )

    def role_for(
        self,
        classification_item: str,
        subsection: Subsection,
        strict: bool = False,
    ) -> ItemRole:
        """Return the declared role of an item.

        Items absent from the catalog get the subsection's default role,
        unless ``strict`` is set.

        Raises:
            UnknownClassificationItemError: in strict mode, for an item the
                catalog does not declare in this subsection.
        """
        entry = self.get(classification_item, subsection)
        if entry is not None:
            return entry.role
        if strict:
            raise UnknownClassificationItemError(classification_item, subsection)
        return default_role(subsection)
