# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for TB Statements.

This module reads mapped trial-balance rows from a CSV file (or from an
already loaded DataFrame) and turns them into RawMappedRow values that the
engine validates row by row.

Expected input format
---------------------

    id, account_code, account_name, section, subsection,
    classification_item, balance, prior_year_balance

- ``id``:                  optional; the 1-based line number is used when absent
- ``account_code``:        account code as displayed in the trial balance
- ``account_name``:        account label
- ``section``:             'Balance Sheet' or 'Income Statement'
- ``subsection``:          e.g. 'currentAssets', 'grossProfitOrLoss'
- ``classification_item``: catalog label the account is mapped to
- ``balance``:             current-year balance, ledger convention (debit-positive)
- ``prior_year_balance``:  optional, defaults to 0

Aliases
-------
Column names are matched case-insensitively and the camelCase names used by
the mapping screens are accepted: ``accountCode``, ``accountName``,
``priorYearBalance``, ``sarsItem`` / ``sars_item`` (for
``classification_item``).

Section and subsection values are *not* validated here: an unknown
subsection is a data-quality problem handled by the engine's policy
(reject or quarantine), not a file-format problem.
"""

import os
from typing import Union

import pandas as pd

from .models import RawMappedRow

_ALIASES = {
    "accountcode": "account_code",
    "accountname": "account_name",
    "prioryearbalance": "prior_year_balance",
    "sarsitem": "classification_item",
    "sars_item": "classification_item",
    "classificationitem": "classification_item",
}

ROW_COLUMNS = [
    "id",
    "account_code",
    "account_name",
    "section",
    "subsection",
    "classification_item",
    "balance",
    "prior_year_balance",
]

REQUIRED_COLUMNS = {
    "account_code",
    "account_name",
    "section",
    "subsection",
    "classification_item",
    "balance",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lowercase/strip column names and apply the known aliases."""
    d = df.copy()
    cols = [str(c).strip().lower() for c in d.columns]
    d.columns = [_ALIASES.get(c, c) for c in cols]
    return d


def rows_from_frame(df: pd.DataFrame) -> list[RawMappedRow]:
    """
    Convert a DataFrame of mapped rows into RawMappedRow values.

    Raises
    ------
    ValueError
        If a required column is missing, if a column appears twice once
        aliases are applied, or if balances are not numeric.
    """
    d = _normalize_columns(df)
    duplicated = sorted(set(d.columns[d.columns.duplicated()]))
    if duplicated:
        raise ValueError(
            "Invalid mapped rows structure, duplicate column(s): "
            + ", ".join(duplicated)
        )
    cols = set(d.columns)

    missing = REQUIRED_COLUMNS - cols
    if missing:
        raise ValueError(
            "Invalid mapped rows structure, missing column(s): "
            + ", ".join(sorted(missing))
            + ".\nExpected: id, account_code, account_name, section, subsection, "
            "classification_item, balance, prior_year_balance "
            "(column names are case-insensitive; 'sarsItem' is accepted as an "
            "alias for 'classification_item')."
        )

    if "prior_year_balance" not in cols:
        d["prior_year_balance"] = 0.0
    if "id" not in cols:
        d["id"] = range(1, len(d) + 1)

    # Numeric conversion: empty prior-year cells mean "no prior year".
    d["balance"] = pd.to_numeric(d["balance"], errors="coerce")
    if d["balance"].isna().any():
        raise ValueError("Invalid numeric values in 'balance' column.")

    raw_prior = d["prior_year_balance"]
    blank = raw_prior.isna() | (raw_prior.astype(str).str.strip() == "")
    d["prior_year_balance"] = pd.to_numeric(raw_prior.where(~blank, 0.0), errors="coerce")
    if d["prior_year_balance"].isna().any():
        raise ValueError("Invalid numeric values in 'prior_year_balance' column.")

    for col in ("account_code", "account_name", "section", "subsection", "classification_item"):
        d[col] = d[col].fillna("").astype(str).str.strip()

    return [
        RawMappedRow(
            id=r.id,
            account_code=r.account_code,
            account_name=r.account_name,
            section=r.section,
            subsection=r.subsection,
            classification_item=r.classification_item,
            balance=float(r.balance),
            prior_year_balance=float(r.prior_year_balance),
        )
        for r in d.itertuples(index=False)
    ]


def read_mapped_rows(path: Union[str, "os.PathLike[str]"]) -> list[RawMappedRow]:
    """
    Read mapped trial-balance rows from a CSV file.

    Parameters
    ----------
    path:
        Path to the CSV file.

    Returns
    -------
    list[RawMappedRow]
        One value per CSV line, in file order.

    Raises
    ------
    ValueError
        If the CSV does not contain the required columns or if numeric
        parsing fails.
    """
    # Everything is read as text so that account codes keep leading zeros;
    # numeric columns are converted by rows_from_frame.
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return rows_from_frame(df)


def rows_to_frame(rows) -> pd.DataFrame:
    """Inverse of :func:`rows_from_frame`, for exports and debugging."""
    records = []
    for r in rows:
        section = getattr(r.section, "value", r.section)
        subsection = getattr(r.subsection, "value", r.subsection)
        records.append(
            {
                "id": r.id,
                "account_code": r.account_code,
                "account_name": r.account_name,
                "section": section,
                "subsection": subsection,
                "classification_item": r.classification_item,
                "balance": r.balance,
                "prior_year_balance": r.prior_year_balance,
            }
        )
    return pd.DataFrame(records, columns=ROW_COLUMNS)
