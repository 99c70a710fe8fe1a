from __future__ import annotations

import math
import numbers
from typing import Any, Optional, Tuple

from .schemas import EstimatedRates, InvestmentConfiguration, RateSet

DEFAULT_PROPERTY_TAX_RATE = 0.012
DEFAULT_APPRECIATION_RATE = 0.05
DEFAULT_STOCK_CAGR = 0.08

OVERRIDE = "override"
ESTIMATE = "estimate"
DEFAULT = "default"


def _first_rate(*candidates: Tuple[str, Optional[float]]) -> Tuple[float, str]:
    for source, value in candidates:
        if value is not None and math.isfinite(value):
            return float(value), source
    raise LookupError("no rate candidate available")


def _estimate(value: Any) -> Optional[float]:
    """Return a usable estimate, or None for missing or malformed values."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def _tax_rate(value: Any) -> Optional[float]:
    rate = _estimate(value)
    if rate is None or rate < 0:
        return None
    return rate


def _growth_rate(value: Any) -> Optional[float]:
    # compounding needs 1 + r > 0
    rate = _estimate(value)
    if rate is None or rate <= -1:
        return None
    return rate


def resolve(
    config: InvestmentConfiguration,
    estimated_rates: Optional[EstimatedRates] = None,
) -> RateSet:
    """
    Merge overrides, collaborator estimates and defaults into one RateSet.

    Precedence per rate is override > estimate > default; the default is
    always present, so resolution cannot fail.
    """
    estimates = estimated_rates or EstimatedRates()

    tax, tax_source = _first_rate(
        (OVERRIDE, config.property_tax_rate_annual),
        (ESTIMATE, _tax_rate(estimates.property_tax_rate_annual)),
        (DEFAULT, DEFAULT_PROPERTY_TAX_RATE),
    )
    appreciation, appreciation_source = _first_rate(
        (OVERRIDE, config.property_appreciation_rate_annual),
        (ESTIMATE, _growth_rate(estimates.property_appreciation_rate_annual)),
        (DEFAULT, DEFAULT_APPRECIATION_RATE),
    )
    stock, stock_source = _first_rate(
        (OVERRIDE, config.benchmark_stock_cagr_annual),
        (ESTIMATE, _growth_rate(estimates.stock_cagr_annual)),
        (DEFAULT, DEFAULT_STOCK_CAGR),
    )

    return RateSet(
        property_tax_rate_annual=tax,
        property_appreciation_rate_annual=appreciation,
        stock_cagr_annual=stock,
        annual_interest_rate_percent=config.annual_interest_rate_percent,
        location_label=estimates.location_label or config.address or None,
        narrative=estimates.narrative,
        stock_start_price=estimates.stock_start_price,
        stock_end_price=estimates.stock_end_price,
        stock_start_date=estimates.stock_start_date,
        stock_end_date=estimates.stock_end_date,
        stock_data_source=estimates.stock_data_source,
        sources={
            "property_tax_rate_annual": tax_source,
            "property_appreciation_rate_annual": appreciation_source,
            "stock_cagr_annual": stock_source,
        },
    )
