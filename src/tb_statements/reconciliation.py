# TB Statements - Trial-balance mapping & financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Balance-sheet identity check.

    delta  = total assets - (total equity + total liabilities)
    passed = |delta| < tolerance

A failing check never raises: a mapping may be temporarily incomplete, and
the statement stays usable. The failure is logged and rendered as a
warning by the presentation layer.
"""

from .log import get_logger
from .models import ReconciliationResult, YearCheck

DEFAULT_TOLERANCE = 0.01

logger = get_logger(__name__)


def check_year(
    total_assets: float,
    total_equity_and_liabilities: float,
    tolerance: float = DEFAULT_TOLERANCE,
) -> YearCheck:
    """Check the balance-sheet identity for one year."""
    delta = round(total_assets - total_equity_and_liabilities, 10) + 0.0
    return YearCheck(
        total_assets=total_assets,
        total_equity_and_liabilities=total_equity_and_liabilities,
        delta=delta,
        passed=abs(delta) < tolerance,
    )


def check_balance(
    total_assets: tuple[float, float],
    total_equity_and_liabilities: tuple[float, float],
    tolerance: float = DEFAULT_TOLERANCE,
) -> ReconciliationResult:
    """Check the balance-sheet identity for the current and prior year.

    Args:
        total_assets: (current, prior) total assets.
        total_equity_and_liabilities: (current, prior) total equity and
            liabilities.
        tolerance: Maximum absolute delta considered balanced (exclusive).

    Returns:
        A ReconciliationResult holding one YearCheck per year.
    """
    if tolerance <= 0:
        raise ValueError("Reconciliation tolerance must be strictly positive.")

    result = ReconciliationResult(
        current=check_year(total_assets[0], total_equity_and_liabilities[0], tolerance),
        prior=check_year(total_assets[1], total_equity_and_liabilities[1], tolerance),
        tolerance=tolerance,
    )

    for year, check in (("current", result.current), ("prior", result.prior)):
        if not check.passed:
            logger.warning(
                "reconciliation_failed",
                year=year,
                delta=check.delta,
                total_assets=check.total_assets,
                total_equity_and_liabilities=check.total_equity_and_liabilities,
            )
    return result
