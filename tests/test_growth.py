import math

import pytest

from buy_vs_invest.growth import advance_assets, annual_to_monthly_growth


def test_monthly_growth_compounds_to_annual():
    monthly = annual_to_monthly_growth(0.08)
    assert math.isclose((1 + monthly) ** 12, 1.08, rel_tol=1e-12)
    # compounding equivalent, not a simple division
    assert monthly < 0.08 / 12


def test_zero_growth():
    assert annual_to_monthly_growth(0.0) == 0.0


def test_total_loss_rejected():
    with pytest.raises(ValueError):
        annual_to_monthly_growth(-1.0)


def test_advance_assets_moves_tracks_independently():
    stock, prop = advance_assets(100.0, 1000.0, 0.01, 0.0)
    assert math.isclose(stock, 101.0)
    assert prop == 1000.0
