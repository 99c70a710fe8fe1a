from __future__ import annotations

import datetime
import json
import logging
import os
from typing import Optional

import typer

from .data_sources import (
    DEFAULT_PRICE_HISTORY_URL,
    BenchmarkHistoryClient,
    CensusACSClient,
    LocalMarketEstimator,
    MarketDataAssembler,
)
from .model import project
from .mortgage import amortization_schedule
from .schemas import InvestmentConfiguration, TaxView

app = typer.Typer(help="Compare buying a mortgaged property with investing the down payment.")


def _default_census_key() -> Optional[str]:
    return os.environ.get("CENSUS_API_KEY")


def _default_price_history_url() -> str:
    return os.environ.get("PRICE_HISTORY_URL", DEFAULT_PRICE_HISTORY_URL)


def _pct(rate: float) -> str:
    return f"{rate * 100:.2f}%"


@app.command()
def run(
    purchase_price: float = typer.Option(450_000, help="Property purchase price."),
    down_payment: float = typer.Option(20.0, help="Down payment as a percent of price."),
    interest_rate: float = typer.Option(6.5, help="Annual mortgage rate in percent."),
    loan_term_years: int = typer.Option(30, help="Mortgage term in years."),
    hoa_monthly: float = typer.Option(0.0, help="Monthly association fees."),
    insurance_annual: float = typer.Option(1200.0, help="Annual homeowner insurance."),
    maintenance_rate: float = typer.Option(
        0.01, help="Annual maintenance as a fraction of property value."
    ),
    property_tax_rate: Optional[float] = typer.Option(
        None, help="Override the annual property tax rate (e.g., 0.012)."
    ),
    appreciation_rate: Optional[float] = typer.Option(
        None, help="Override annual property appreciation (e.g., 0.05)."
    ),
    stock_cagr: Optional[float] = typer.Option(
        None, help="Override the benchmark CAGR (e.g., 0.08)."
    ),
    horizon_years: int = typer.Option(15, help="Projection horizon in years."),
    capital_gains_rate: float = typer.Option(0.15, help="Capital gains tax rate."),
    address: str = typer.Option("", help="Property location, e.g., 'Austin, TX'."),
    benchmark: str = typer.Option("SPY", help="Benchmark index ticker (SPY, QQQ, DIA)."),
    cbsa: Optional[str] = typer.Option(
        None, help="CBSA code; if set, the ACS effective tax rate is used."
    ),
    acs_year: int = typer.Option(2023, help="ACS vintage to query."),
    census_api_key: Optional[str] = typer.Option(
        default_factory=_default_census_key,
        help="Census API key (env CENSUS_API_KEY if omitted).",
    ),
    live_benchmark: bool = typer.Option(
        False, help="Derive the benchmark CAGR from historical closing prices."
    ),
    start_date: str = typer.Option(
        "2014-01-02", help="First day of the benchmark history window (YYYY-MM-DD)."
    ),
    price_history_url: str = typer.Option(
        default_factory=_default_price_history_url,
        help="CSV price history endpoint (env PRICE_HISTORY_URL if omitted).",
    ),
    tax_view: TaxView = typer.Option(TaxView.PRE_TAX, help="Display values pre or after tax."),
    start_year: Optional[int] = typer.Option(
        None, help="Calendar year labelling the first snapshot (defaults to this year)."
    ),
    show_snapshots: bool = typer.Option(
        False, help="If set, dump the yearly snapshots as JSON."
    ),
    show_schedule: bool = typer.Option(
        False, help="If set, dump the monthly amortization schedule as JSON."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log data source activity."),
) -> None:
    """
    Estimate market rates, project both tracks, and print the comparison.
    """
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)

    try:
        config = InvestmentConfiguration(
            purchase_price=purchase_price,
            down_payment_percent=down_payment,
            annual_interest_rate_percent=interest_rate,
            loan_term_years=loan_term_years,
            hoa_monthly=hoa_monthly,
            insurance_annual=insurance_annual,
            maintenance_rate_annual=maintenance_rate,
            property_tax_rate_annual=property_tax_rate,
            property_appreciation_rate_annual=appreciation_rate,
            benchmark_stock_cagr_annual=stock_cagr,
            horizon_years=horizon_years,
            capital_gains_tax_rate=capital_gains_rate,
            address=address,
            benchmark=benchmark,
        )
        history_start = datetime.date.fromisoformat(start_date)
    except ValueError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2)

    assembler = MarketDataAssembler(
        estimator=LocalMarketEstimator(),
        acs_client=CensusACSClient(api_key=census_api_key) if cbsa else None,
        benchmark_client=(
            BenchmarkHistoryClient(base_url=price_history_url) if live_benchmark else None
        ),
    )
    estimates = assembler.build_estimates(
        config.address,
        config.benchmark,
        cbsa=cbsa,
        acs_year=acs_year,
        start_date=history_start,
    )
    result = project(config, estimates, view=tax_view, start_year=start_year)
    rates = result.rates

    typer.echo(f"Location: {rates.location_label or 'Property'} vs. {config.benchmark}")
    if rates.narrative:
        typer.echo(rates.narrative)
    for label, name in (
        ("Property tax rate", "property_tax_rate_annual"),
        ("Appreciation rate", "property_appreciation_rate_annual"),
        ("Benchmark CAGR", "stock_cagr_annual"),
    ):
        typer.echo(f"{label}: {_pct(getattr(rates, name))} ({rates.sources[name]})")
    if rates.stock_data_source:
        typer.echo(
            f"Benchmark history: {rates.stock_start_date} ${rates.stock_start_price:,.2f}"
            f" -> {rates.stock_end_date} ${rates.stock_end_price:,.2f}"
        )
    typer.echo("")
    typer.echo(f"Initial capital: ${config.down_payment:,.0f}")
    typer.echo(f"Loan principal: ${config.loan_principal:,.0f}")
    typer.echo(f"Monthly mortgage payment: ${result.monthly_payment:,.2f}")
    typer.echo("")
    heading = "Net liquidation value" if result.view is TaxView.AFTER_TAX else "Total equity value"
    typer.echo(f"{heading} after {len(result.snapshots) - 1} years:")
    typer.echo(f"  {config.benchmark}: ${result.final_stock:,.0f}")
    typer.echo(f"  Property: ${result.final_property:,.0f}")
    winner = config.benchmark if result.winner == "stock" else "Property"
    if result.outperformance_percent is None:
        typer.echo(f"Winner: {winner}")
    else:
        typer.echo(f"Winner: {winner} (+{result.outperformance_percent:.1f}% outperformance)")
    typer.echo("")
    typer.echo(f"Est. annual property tax (year 1): ${result.first_year_property_tax:,.0f}")
    typer.echo(f"Total property tax paid: ${result.total_property_tax:,.0f}")
    typer.echo(f"Total mortgage interest: ${result.total_mortgage_interest:,.0f}")
    typer.echo(f"Total carrying costs: ${result.total_carrying_costs:,.0f}")
    if result.tax_drag_percent is not None:
        typer.echo(f"Tax drag: {result.tax_drag_percent:.1f}% of equity")

    if show_snapshots:
        payload = [snap.as_dict(result.view) for snap in result.snapshots]
        typer.echo(json.dumps(payload, indent=2))

    if show_schedule:
        schedule = [
            vars(row)
            for row in amortization_schedule(
                config.loan_principal,
                config.annual_interest_rate_percent,
                config.loan_term_years,
            )
        ]
        typer.echo(json.dumps(schedule, indent=2))


if __name__ == "__main__":
    app()
