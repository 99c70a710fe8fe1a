from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

from .schemas import InvestmentConfiguration, RateSet, SimulationState


@dataclass(frozen=True)
class MonthlyCosts:
    property_tax: float
    insurance: float
    maintenance: float
    hoa: float
    mortgage_interest: float

    @property
    def total(self) -> float:
        return (
            self.property_tax
            + self.insurance
            + self.maintenance
            + self.hoa
            + self.mortgage_interest
        )


def monthly_carrying_costs(
    property_asset_value: float,
    rates: RateSet,
    config: InvestmentConfiguration,
    mortgage_interest: float = 0.0,
) -> MonthlyCosts:
    return MonthlyCosts(
        property_tax=property_asset_value * rates.property_tax_rate_annual / 12.0,
        insurance=config.insurance_annual / 12.0,
        maintenance=config.maintenance_rate_annual * property_asset_value / 12.0,
        hoa=config.hoa_monthly,
        mortgage_interest=mortgage_interest,
    )


def accrue(state: SimulationState, costs: MonthlyCosts) -> SimulationState:
    return replace(
        state,
        cumulative_property_tax=state.cumulative_property_tax + costs.property_tax,
        cumulative_carrying_costs=state.cumulative_carrying_costs + costs.total,
        cumulative_mortgage_interest=(
            state.cumulative_mortgage_interest + costs.mortgage_interest
        ),
    )


def capital_gains_tax(value: float, basis: float, rate: float) -> float:
    return max(value - basis, 0.0) * rate


def net_values(
    state: SimulationState, initial_capital: float, capital_gains_tax_rate: float
) -> Tuple[float, float]:
    """
    Liquidation value of both tracks after capital-gains tax.

    The stock track only pays tax on its gain. The property track pays tax on
    its equity gain and is also charged every carrying cost paid so far,
    mortgage interest included. Interest is thus counted both as a cost and
    against the equity gain; this is a modeling choice, not a
    tax-accounting rule.
    """
    stock_net = state.stock_value - capital_gains_tax(
        state.stock_value, initial_capital, capital_gains_tax_rate
    )
    equity = state.property_equity
    property_net = (
        equity
        - capital_gains_tax(equity, initial_capital, capital_gains_tax_rate)
        - state.cumulative_carrying_costs
    )
    return stock_net, property_net
