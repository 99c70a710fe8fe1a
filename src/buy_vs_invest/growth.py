from __future__ import annotations

from typing import Tuple


def annual_to_monthly_growth(annual_rate: float) -> float:
    if annual_rate <= -1:
        raise ValueError("annual rate must be greater than -100%")
    return (1 + annual_rate) ** (1 / 12.0) - 1


def advance_assets(
    stock_value: float,
    property_asset_value: float,
    monthly_stock_rate: float,
    monthly_property_rate: float,
) -> Tuple[float, float]:
    """Compound both asset tracks by one month."""
    return (
        stock_value * (1 + monthly_stock_rate),
        property_asset_value * (1 + monthly_property_rate),
    )
