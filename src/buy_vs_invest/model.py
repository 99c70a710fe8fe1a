from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, replace
from typing import List, Optional

from .costs import accrue, monthly_carrying_costs, net_values
from .growth import advance_assets, annual_to_monthly_growth
from .mortgage import advance_loan, annual_to_monthly_rate, compute_monthly_payment
from .rates import resolve
from .schemas import (
    EstimatedRates,
    InvestmentConfiguration,
    ProjectionResult,
    RateSet,
    SimulationState,
    Snapshot,
    TaxView,
)

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class MonthlyParameters:
    """Per-run constants derived once from the configuration and rates."""

    config: InvestmentConfiguration
    rates: RateSet
    monthly_payment: float
    mortgage_rate_monthly: float
    stock_growth_monthly: float
    appreciation_monthly: float
    term_months: int

    @classmethod
    def build(
        cls, config: InvestmentConfiguration, rates: RateSet
    ) -> "MonthlyParameters":
        return cls(
            config=config,
            rates=rates,
            monthly_payment=compute_monthly_payment(
                config.loan_principal,
                rates.annual_interest_rate_percent,
                config.loan_term_years,
            ),
            mortgage_rate_monthly=annual_to_monthly_rate(
                rates.annual_interest_rate_percent
            ),
            stock_growth_monthly=annual_to_monthly_growth(rates.stock_cagr_annual),
            appreciation_monthly=annual_to_monthly_growth(
                rates.property_appreciation_rate_annual
            ),
            term_months=config.term_months,
        )


def initial_state(config: InvestmentConfiguration) -> SimulationState:
    # Both tracks start from the same capital: the down payment.
    return SimulationState(
        month_index=0,
        stock_value=config.down_payment,
        property_asset_value=config.purchase_price,
        loan_balance=config.loan_principal,
    )


def advance_month(state: SimulationState, params: MonthlyParameters) -> SimulationState:
    stock_value, property_asset_value = advance_assets(
        state.stock_value,
        state.property_asset_value,
        params.stock_growth_monthly,
        params.appreciation_monthly,
    )

    loan_balance, interest = state.loan_balance, 0.0
    if state.loan_balance > 0 and state.month_index < params.term_months:
        loan_balance, interest = advance_loan(
            state.loan_balance,
            params.mortgage_rate_monthly,
            params.monthly_payment,
            state.month_index,
            params.term_months,
        )

    costs = monthly_carrying_costs(
        property_asset_value, params.rates, params.config, interest
    )
    advanced = replace(
        state,
        stock_value=stock_value,
        property_asset_value=property_asset_value,
        loan_balance=loan_balance,
    )
    return replace(accrue(advanced, costs), month_index=state.month_index + 1)


def take_snapshot(
    state: SimulationState, params: MonthlyParameters, start_year: int
) -> Snapshot:
    config = params.config
    year_index = state.month_index // MONTHS_PER_YEAR
    stock_net, property_net = net_values(
        state, config.down_payment, config.capital_gains_tax_rate
    )
    return Snapshot(
        year_index=year_index,
        year_label=str(start_year + year_index),
        month_index=state.month_index,
        stock_value_pre_tax=state.stock_value,
        property_value_pre_tax=state.property_equity,
        stock_value_after_tax=stock_net,
        property_value_after_tax=property_net,
        annual_property_tax=(
            state.property_asset_value * params.rates.property_tax_rate_annual
        ),
        cumulative_property_tax=state.cumulative_property_tax,
        property_asset_value=state.property_asset_value,
        cumulative_carrying_costs=state.cumulative_carrying_costs,
        loan_balance=state.loan_balance,
        cumulative_mortgage_interest=state.cumulative_mortgage_interest,
    )


def project_rates(
    config: InvestmentConfiguration,
    rates: RateSet,
    view: TaxView = TaxView.PRE_TAX,
    start_year: Optional[int] = None,
) -> ProjectionResult:
    """Run the monthly simulation against an already resolved RateSet."""
    if start_year is None:
        start_year = datetime.date.today().year
    params = MonthlyParameters.build(config, rates)
    total_months = config.total_months

    state = initial_state(config)
    snapshots: List[Snapshot] = []
    while True:
        if state.month_index % MONTHS_PER_YEAR == 0:
            snapshots.append(take_snapshot(state, params, start_year))
        if state.month_index >= total_months:
            break
        state = advance_month(state, params)

    logger.debug(
        "Projected %d months for %s: stock %.2f, property equity %.2f",
        total_months,
        rates.location_label or "property",
        state.stock_value,
        state.property_equity,
    )
    return ProjectionResult(
        configuration=config,
        rates=rates,
        monthly_payment=params.monthly_payment,
        snapshots=snapshots,
        view=TaxView(view),
    )


def project(
    config: InvestmentConfiguration,
    estimated_rates: Optional[EstimatedRates] = None,
    view: TaxView = TaxView.PRE_TAX,
    start_year: Optional[int] = None,
) -> ProjectionResult:
    return project_rates(config, resolve(config, estimated_rates), view, start_year)
