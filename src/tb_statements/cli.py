# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for TB Statements.

This module wires together the main building blocks of TB Statements:

- configuration (engine options, catalog, ratios, tax, display, logging),
- mapped trial-balance rows read from CSV,
- the statement engine (balance sheet, income statement, reconciliation),
- the ratios engine,
- the tax adjustment rules,
- view helpers (DataFrames for tables and CSV export).

The CLI is intentionally thin: it does not implement accounting logic
itself.


High-level pipeline
-------------------

1) Load the TOML configuration (tb_statements_config.toml by default).
2) Configure logging.
3) Load the classification catalog (``--catalog`` overrides the config).
4) Read the mapped rows CSV (``--rows``).
5) Build the financial statements.
6) Depending on ``--scope``, compute ratios and tax suggestions.
7) Render console tables and/or CSV files depending on the display mode.


Scopes
------

- ``statements`` (default): balance sheet and income statement,
- ``balance_sheet`` / ``income_statement``: a single statement,
- ``ratios``: ratios only,
- ``tax``: tax adjustment suggestions and the tax computation,
- ``all``: everything above.

The reconciliation status is always printed. A failing reconciliation is
reported as a warning and does not change the exit code. Data errors
(unknown subsection with the "raise" policy, malformed CSV, invalid
configuration) stop the CLI with a message.
"""

import argparse
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .catalog import ClassificationCatalog
from .config import RATIO_LEVELS, load_app_config
from .engine import build_financial_statements
from .io import read_mapped_rows, rows_to_frame
from .log import configure_logging, get_logger
from .models import TbStatementsError
from .ratios import build_statement_measures, compute_ratios
from .tax import (
    AdjustmentStatus,
    TaxAdjustment,
    compute_tax,
    load_adjustment_guide,
    suggest_adjustments,
)
from .views import (
    VIEWS,
    ratios_to_dataframe,
    reconciliation_to_dataframe,
    statement_to_dataframe,
)

SCOPES = ("statements", "balance_sheet", "income_statement", "ratios", "tax", "all")

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="tb-statements",
        description=(
            "TB Statements - derives a balance sheet and an income statement "
            "from mapped trial-balance rows, checks that the balance sheet "
            "balances, and computes ratios and tax adjustments."
        ),
    )

    ap.add_argument(
        "--version",
        action="version",
        version=f"tb_statements version {__version__}",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'tb_statements_config.toml' in the current directory is used."
        ),
    )
    ap.add_argument(
        "--rows",
        dest="rows_path",
        required=True,
        metavar="CSV_PATH",
        help="Mapped trial-balance rows (CSV).",
    )
    ap.add_argument(
        "--catalog",
        dest="catalog_path",
        help="Override the classification catalog CSV path from the configuration.",
    )
    ap.add_argument(
        "--scope",
        choices=SCOPES,
        default="statements",
        help=(
            "Select what to render: 'statements' = both statements; "
            "'balance_sheet' / 'income_statement' = one statement; "
            "'ratios'; 'tax'; 'all' = everything."
        ),
    )
    ap.add_argument(
        "--view",
        choices=VIEWS,
        default="summary",
        help="summary: items only; detailed: items and their mapped accounts.",
    )
    ap.add_argument(
        "--ratios-level",
        dest="ratios_level",
        choices=RATIO_LEVELS,
        help="Override the default ratios level defined in the configuration.",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting. 'table' prints results to "
            "stdout, 'csv' writes CSV files only, 'both' does both."
        ),
    )
    ap.add_argument(
        "--output-dir",
        dest="output_dir",
        help=(
            "Directory where CSV files are written when the display mode "
            "includes 'csv'. Defaults to 'data/output'."
        ),
    )
    ap.add_argument(
        "--show-zero",
        dest="show_zero",
        action="store_true",
        help="Show catalog lines whose amounts are zero for both years.",
    )
    return ap


def _print_reconciliation(statements) -> pd.DataFrame:
    result = statements.reconciliation
    df = reconciliation_to_dataframe(result)
    print()
    print("=== Reconciliation ===")
    if result.passed:
        print("Balance sheet balances (assets = equity + liabilities).")
    else:
        for year, check in (("current", result.current), ("prior", result.prior)):
            if not check.passed:
                print(
                    f"WARNING: balance sheet does not balance for the {year} year "
                    f"(difference {check.delta:,.2f})."
                )
    return df


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the TB Statements CLI.

    Args:
        argv: Command-line arguments (defaults to ``sys.argv[1:]``).

    Raises:
        SystemExit: on invalid arguments, configuration or input data.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # 1) Configuration and logging
    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc

    configure_logging(config.logging.level, json=config.logging.json)

    # 2) Catalog: CLI override or configuration
    catalog_path = Path(args.catalog_path) if args.catalog_path else config.catalog_path
    if catalog_path is None:
        parser.error(
            "No classification catalog configured. Either set [catalog].path "
            "in the configuration or provide --catalog."
        )

    # 3) Rows and statements
    try:
        catalog = ClassificationCatalog.from_csv(catalog_path)
        rows = read_mapped_rows(args.rows_path)
        statements = build_financial_statements(rows, catalog, config.engine)
    except FileNotFoundError as exc:
        raise SystemExit(f"File not found: {exc}") from exc
    except (TbStatementsError, ValueError) as exc:
        raise SystemExit(f"Data error: {exc}") from exc

    print(f"Rows read: {len(rows)} | classified: {len(statements.rows)}")
    if statements.unclassified:
        print(
            f"Warning: {len(statements.unclassified)} row(s) excluded from the "
            "statements (see 'Rows excluded from the statements')."
        )

    scope = args.scope
    want_bs = scope in {"statements", "balance_sheet", "all"}
    want_is = scope in {"statements", "income_statement", "all"}
    want_ratios = scope in {"ratios", "all"} and config.ratios.enabled
    want_tax = scope in {"tax", "all"}

    if scope in {"ratios", "all"} and not config.ratios.enabled:
        print(
            "Ratios have been requested in scope, but ratios are disabled in the "
            "configuration (ratios.enabled = false). Skipping ratio computation."
        )

    hide_zero = config.display.hide_zero_lines and not args.show_zero
    decimals = config.display.decimals
    outputs: dict[str, pd.DataFrame] = {}

    if statements.unclassified:
        unclassified_df = rows_to_frame(u.row for u in statements.unclassified)
        unclassified_df["reason"] = [u.reason for u in statements.unclassified]
        outputs["unclassified_rows"] = unclassified_df

    if want_bs:
        outputs["balance_sheet"] = statement_to_dataframe(
            statements.balance_sheet, view=args.view, hide_zero=hide_zero, decimals=decimals
        )
    if want_is:
        outputs["income_statement"] = statement_to_dataframe(
            statements.income_statement, view=args.view, hide_zero=hide_zero, decimals=decimals
        )

    # 4) Ratios
    if want_ratios:
        if config.ratios.rules_file is None:
            print("Ratios have been requested but no ratios.rules_file is configured.")
        else:
            try:
                measures = build_statement_measures(statements, config.ratios.rules_file)
                ratios_list = compute_ratios(
                    measures=measures,
                    rules_file=config.ratios.rules_file,
                    level=args.ratios_level or config.ratios.default_level,
                )
            except (FileNotFoundError, ValueError) as exc:
                raise SystemExit(f"Ratios error: {exc}") from exc
            outputs["ratios"] = ratios_to_dataframe(ratios_list, decimals=decimals)

    # 5) Tax: suggestions are shown, and counted as if approved, for a
    #    first estimate of the liability.
    if want_tax:
        if config.tax.guide_file is None:
            print("Tax has been requested but no tax.guide_file is configured.")
        else:
            try:
                guide = load_adjustment_guide(config.tax.guide_file)
            except (FileNotFoundError, ValueError) as exc:
                raise SystemExit(f"Tax guide error: {exc}") from exc
            suggestions = suggest_adjustments(statements.rows, guide)
            outputs["tax_adjustments"] = pd.DataFrame(
                [
                    {
                        "type": s.type.value,
                        "description": s.description,
                        "amount": round(s.amount, decimals),
                        "section": s.sars_section,
                        "confidence": s.confidence,
                        "manual_review": s.requires_manual_review,
                    }
                    for s in suggestions
                ],
                columns=["type", "description", "amount", "section", "confidence", "manual_review"],
            )
            computation = compute_tax(
                statements.income_statement.total("net_profit_before_tax"),
                [TaxAdjustment.from_suggestion(s, AdjustmentStatus.APPROVED) for s in suggestions],
                rate=config.tax.rate,
            )
            outputs["tax_computation"] = pd.DataFrame(
                [
                    ("Net profit before tax", computation.net_profit_before_tax),
                    ("Add: debit adjustments", computation.debit_adjustments),
                    ("Less: credit adjustments", computation.credit_adjustments),
                    ("Less: allowances", computation.allowances),
                    ("Add: recoupments", computation.recoupments),
                    ("Taxable income", computation.taxable_income),
                    (f"Tax liability ({computation.tax_rate:.0%})", computation.tax_liability),
                ],
                columns=["name", "amount"],
            ).round({"amount": decimals})

    titles = {
        "unclassified_rows": "Rows excluded from the statements",
        "balance_sheet": "Balance Sheet",
        "income_statement": "Income Statement",
        "ratios": "Ratios",
        "tax_adjustments": "Suggested tax adjustments",
        "tax_computation": "Tax computation (all suggestions approved)",
    }

    # 6) Render
    display_mode = args.display_mode or config.display.mode

    if display_mode in {"table", "both"}:
        for key, df in outputs.items():
            print()
            print(f"=== {titles[key]} ===")
            if df.empty:
                print("(nothing to show)")
            else:
                print(df.to_string(index=False))

    reconciliation_df = _print_reconciliation(statements)

    if display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

        for key, df in {**outputs, "reconciliation": reconciliation_df}.items():
            path = output_dir / f"{key}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")

    logger.debug("cli_done", scope=scope, outputs=list(outputs))


if __name__ == "__main__":
    main()
