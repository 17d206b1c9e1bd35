# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
TB Statements
-------------

A Python engine that derives a balance sheet and an income statement from
a mapped trial balance: ledger accounts tagged with a section, a
subsection and a classification item from a fixed catalog (the "mapping
guide").

Main capabilities:
- aggregation of mapped rows per classification item (current and prior year),
- sign-convention normalization driven by catalog-declared roles,
- balance sheet with the current-year profit/(loss) injected into equity,
- income statement (gross profit, other income, expenses, net profit),
- balance-sheet reconciliation (assets = equity + liabilities),
- configurable ratios with EXCELLENT / GOOD / FAIR / POOR assessment,
- rule-based tax adjustment suggestions and income tax computation.

TB Statements separates computation (engine), configuration (TOML) and
presentation (CLI), making it suitable for scripting and automation.


Version: 0.1.0

Usage:
    tb-statements --rows mapped_rows.csv
    python -m tb_statements.cli --help
"""

__all__ = ["catalog", "engine", "io", "models", "ratios", "tax", "views"]

__version__ = "0.1.0"
