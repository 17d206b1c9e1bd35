from pathlib import Path

import pandas as pd
import pytest

from tb_statements.cli import main

ROOT = Path(__file__).resolve().parents[1]
REPO_CONFIG = ROOT / "tb_statements_config.toml"
CATALOG_CSV = ROOT / "data" / "catalogs" / "sars_catalog.csv"
SAMPLE_ROWS = ROOT / "data" / "input" / "sample_mapped_rows.csv"

pytestmark = pytest.mark.skipif(
    not (REPO_CONFIG.exists() and CATALOG_CSV.exists() and SAMPLE_ROWS.exists()),
    reason="repository configuration or sample data not found",
)

HEADER = "id,account_code,account_name,section,subsection,classification_item,balance,prior_year_balance\n"


def _write_rows(tmp_path: Path, lines: list[str]) -> Path:
    path = tmp_path / "rows.csv"
    path.write_text(HEADER + "".join(line + "\n" for line in lines), encoding="utf-8")
    return path


def _write_config(tmp_path: Path, engine: str = "") -> Path:
    path = tmp_path / "config.toml"
    path.write_text(
        f"[engine]\n{engine}\n\n[catalog]\npath = \"{CATALOG_CSV.as_posix()}\"\n",
        encoding="utf-8",
    )
    return path


def test_statements_scope_prints_tables(capsys) -> None:
    main(["--config", str(REPO_CONFIG), "--rows", str(SAMPLE_ROWS)])

    out = capsys.readouterr().out
    assert "Rows read: 29 | classified: 29" in out
    assert "=== Balance Sheet ===" in out
    assert "=== Income Statement ===" in out
    assert "NET PROFIT BEFORE TAX" in out
    assert "Balance sheet balances" in out
    assert "=== Ratios ===" not in out


def test_all_scope_writes_csv_files(tmp_path: Path, capsys) -> None:
    main(
        [
            "--config",
            str(REPO_CONFIG),
            "--rows",
            str(SAMPLE_ROWS),
            "--scope",
            "all",
            "--view",
            "detailed",
            "--display-mode",
            "csv",
            "--output-dir",
            str(tmp_path),
        ]
    )

    out = capsys.readouterr().out
    assert "=== Balance Sheet ===" not in out

    written = {p.name.rsplit("_", 1)[0] for p in tmp_path.glob("*.csv")}
    assert written == {
        "balance_sheet",
        "income_statement",
        "ratios",
        "tax_adjustments",
        "tax_computation",
        "reconciliation",
    }

    (reconciliation_csv,) = tmp_path.glob("reconciliation_*.csv")
    reconciliation = pd.read_csv(reconciliation_csv)
    assert reconciliation["passed"].tolist() == [True, True]

    (tax_csv,) = tmp_path.glob("tax_computation_*.csv")
    tax = pd.read_csv(tax_csv)
    liability = tax.loc[tax["name"].str.startswith("Tax liability"), "amount"].iloc[0]
    assert liability == pytest.approx(32_616.0)

    (bs_csv,) = tmp_path.glob("balance_sheet_*.csv")
    bs = pd.read_csv(bs_csv)
    # The detailed view lists mapped accounts under their item.
    assert "2200 Bank - current account" in bs["name"].tolist()


def test_unbalanced_rows_warn_without_failing(tmp_path: Path, capsys) -> None:
    rows = _write_rows(
        tmp_path,
        [
            "1,2200,Bank,Balance Sheet,currentAssets,Cash and cash equivalents,100,0",
            "2,3000,Share capital,Balance Sheet,capitalAndReservesCreditBalances,Share capital,-60,0",
        ],
    )

    main(["--config", str(_write_config(tmp_path)), "--rows", str(rows)])

    out = capsys.readouterr().out
    assert "WARNING: balance sheet does not balance for the current year" in out
    assert "prior year" not in out


def test_unknown_subsection_stops_with_data_error(tmp_path: Path) -> None:
    rows = _write_rows(
        tmp_path,
        ["1,2200,Bank,Balance Sheet,otherAssets,Cash and cash equivalents,100,0"],
    )

    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(_write_config(tmp_path)), "--rows", str(rows)])

    assert "Data error" in str(exc_info.value)
    assert "otherAssets" in str(exc_info.value)


def test_quarantine_lists_excluded_rows(tmp_path: Path, capsys) -> None:
    rows = _write_rows(
        tmp_path,
        [
            "1,2200,Bank,Balance Sheet,currentAssets,Cash and cash equivalents,100,0",
            "2,3000,Share capital,Balance Sheet,capitalAndReservesCreditBalances,Share capital,-100,0",
            "3,2900,Suspense,Balance Sheet,otherAssets,Suspense,5,0",
        ],
    )
    config = _write_config(tmp_path, engine='unknown_subsection = "quarantine"')

    main(["--config", str(config), "--rows", str(rows)])

    out = capsys.readouterr().out
    assert "Rows read: 3 | classified: 2" in out
    assert "=== Rows excluded from the statements ===" in out
    assert "Suspense" in out
    assert "Balance sheet balances" in out


def test_missing_catalog_is_a_usage_error(tmp_path: Path) -> None:
    config = tmp_path / "config.toml"
    config.write_text("[engine]\n", encoding="utf-8")

    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(config), "--rows", str(SAMPLE_ROWS)])

    assert exc_info.value.code == 2


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(tmp_path / "missing.toml"), "--rows", str(SAMPLE_ROWS)])

    assert "Configuration error" in str(exc_info.value)


def test_missing_rows_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(REPO_CONFIG), "--rows", str(tmp_path / "missing.csv")])

    assert "File not found" in str(exc_info.value)
