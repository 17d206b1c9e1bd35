# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for TB Statements.

This module is responsible for:
- loading the application configuration from a TOML file,
- turning the [engine] table into EngineOptions,
- exposing typed dataclasses used by the CLI.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .engine import EngineOptions
from .reconciliation import DEFAULT_TOLERANCE

DEFAULT_CONFIG_FILE = "tb_statements_config.toml"

RATIO_LEVELS = ("basic", "advanced", "full")
DISPLAY_MODES = ("table", "csv", "both")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class RatiosConfig:
    """Ratio options: on/off switch, rules file and default level."""

    enabled: bool
    rules_file: Optional[Path]
    default_level: str


@dataclass(frozen=True)
class TaxConfig:
    """Tax options: income tax rate and adjustment guide file."""

    rate: float
    guide_file: Optional[Path]


@dataclass(frozen=True)
class DisplayConfig:
    mode: str
    decimals: int
    hide_zero_lines: bool


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    json: bool


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for TB Statements.

    This aggregates:
    - the engine options (tolerance, unknown-subsection policy, catalog
      strictness, zero-line emission),
    - the classification catalog location,
    - ratio, tax, display and logging options.
    """

    engine: EngineOptions
    catalog_path: Optional[Path]
    ratios: RatiosConfig
    tax: TaxConfig
    display: DisplayConfig
    logging: LoggingConfig


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _table(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Invalid [{name}] section in the configuration, expected a table.")
    return section


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid value for '{key}' in the configuration. Expected a boolean.")


def _as_float(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Invalid value for '{key}' in the configuration. Expected a number.")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{key}' in the configuration. Expected a number."
        ) from exc


def _as_choice(value: Any, key: str, choices: tuple[str, ...]) -> str:
    text = str(value)
    if text not in choices:
        raise ValueError(
            f"Invalid value for '{key}' in the configuration: {text!r}. "
            f"Expected one of: {', '.join(choices)}."
        )
    return text


def _parse_engine(section: Mapping[str, Any]) -> EngineOptions:
    tolerance = _as_float(section.get("tolerance", DEFAULT_TOLERANCE), "engine.tolerance")
    if tolerance <= 0:
        raise ValueError(
            "Invalid value for 'engine.tolerance' in the configuration. "
            "Expected a strictly positive number."
        )

    policy = _as_choice(
        section.get("unknown_subsection", "raise"),
        "engine.unknown_subsection",
        ("raise", "quarantine"),
    )
    strict_catalog = _as_bool(section.get("strict_catalog", False), "engine.strict_catalog")

    emit = section.get("emit_catalog_items", {})
    # A single boolean applies to both statements.
    if isinstance(emit, bool):
        emit = {"balance_sheet": emit, "income_statement": emit}
    if not isinstance(emit, Mapping):
        raise ValueError(
            "Invalid value for 'engine.emit_catalog_items' in the configuration. "
            "Expected a boolean or a table."
        )

    return EngineOptions(
        tolerance=tolerance,
        unknown_subsection=policy,
        strict_catalog=strict_catalog,
        emit_catalog_items_balance_sheet=_as_bool(
            emit.get("balance_sheet", True), "engine.emit_catalog_items.balance_sheet"
        ),
        emit_catalog_items_income_statement=_as_bool(
            emit.get("income_statement", True),
            "engine.emit_catalog_items.income_statement",
        ),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the TB Statements application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [engine]
        Reconciliation tolerance, unknown-subsection policy ("raise" or
        "quarantine"), catalog strictness and zero-line emission.

    [catalog]
        Path to the classification catalog CSV.

    [ratios]
        Global ratio options (enable/disable, rules file, default level).

    [tax]
        Income tax rate and tax adjustment guide.

    [display]
        Display options for the CLI table formatting.

    [logging]
        Log level (and JSON rendering) for the structlog configuration.

    All sections are optional. All file paths in the TOML are resolved
    relative to the directory of the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``tb_statements_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If a value is invalid; the message names the offending key.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    def _resolve_optional(rel: Any) -> Optional[Path]:
        if not rel:
            return None
        return (base_dir / str(rel)).resolve()

    # 1) Engine
    engine = _parse_engine(_table(raw, "engine"))

    # 2) Catalog
    catalog_path = _resolve_optional(_table(raw, "catalog").get("path"))

    # 3) Ratios
    ratios_section = _table(raw, "ratios")
    ratios = RatiosConfig(
        enabled=_as_bool(ratios_section.get("enabled", True), "ratios.enabled"),
        rules_file=_resolve_optional(ratios_section.get("rules_file")),
        default_level=_as_choice(
            ratios_section.get("default_level", "basic"),
            "ratios.default_level",
            RATIO_LEVELS,
        ),
    )

    # 4) Tax
    tax_section = _table(raw, "tax")
    rate = _as_float(tax_section.get("rate", 0.27), "tax.rate")
    if not 0 <= rate <= 1:
        raise ValueError(
            "Invalid value for 'tax.rate' in the configuration. "
            "Expected a number between 0 and 1."
        )
    tax = TaxConfig(rate=rate, guide_file=_resolve_optional(tax_section.get("guide_file")))

    # 5) Display
    display_section = _table(raw, "display")
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'display.decimals' in the configuration. "
            "Expected an integer."
        ) from exc
    display = DisplayConfig(
        mode=_as_choice(display_section.get("mode", "table"), "display.mode", DISPLAY_MODES),
        decimals=decimals,
        hide_zero_lines=_as_bool(
            display_section.get("hide_zero_lines", True), "display.hide_zero_lines"
        ),
    )

    # 6) Logging
    logging_section = _table(raw, "logging")
    logging_config = LoggingConfig(
        level=_as_choice(
            str(logging_section.get("level", "INFO")).upper(), "logging.level", LOG_LEVELS
        ),
        json=_as_bool(logging_section.get("json", False), "logging.json"),
    )

    return AppConfig(
        engine=engine,
        catalog_path=catalog_path,
        ratios=ratios,
        tax=tax,
        display=display,
        logging=logging_config,
    )
