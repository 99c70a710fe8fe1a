from __future__ import annotations

import csv
import datetime
import io
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import requests

from .schemas import EstimatedRates

logger = logging.getLogger(__name__)

DEFAULT_PRICE_HISTORY_URL = "https://stooq.com/q/d/l/"


class LocalMarketEstimator:
    """Offline heuristics used when no live data source is configured."""

    NARRATIVE = "Local estimate based on defaults"
    FALLBACK_LOCATION = "United States"

    KNOWN_LOCATIONS: Tuple[str, ...] = (
        "Austin, TX",
        "Seattle, WA",
        "San Francisco, CA",
        "New York, NY",
        "Miami, FL",
        "Chicago, IL",
        "Denver, CO",
        "Phoenix, AZ",
        "Atlanta, GA",
        "Boston, MA",
    )

    # Effective annual property tax rate by state
    STATE_TAX_RATES: Dict[str, float] = {
        "AL": 0.0041,
        "AZ": 0.0058,
        "CA": 0.0076,
        "CO": 0.0051,
        "FL": 0.0091,
        "GA": 0.0098,
        "IL": 0.0189,
        "MA": 0.0103,
        "NY": 0.0147,
        "TX": 0.016,
        "WA": 0.0084,
    }
    DEFAULT_TAX_RATE = 0.012

    HIGH_GROWTH_MARKETS: Tuple[str, ...] = ("austin", "phoenix", "miami", "denver", "seattle")
    HIGH_GROWTH_APPRECIATION = 0.055
    DEFAULT_APPRECIATION = 0.04

    BENCHMARK_CAGR: Dict[str, float] = {"QQQ": 0.11, "DIA": 0.075, "SPY": 0.09}
    DEFAULT_BENCHMARK = "SPY"

    def analyze(self, location: str, benchmark: str) -> EstimatedRates:
        return EstimatedRates(
            property_tax_rate_annual=self.estimate_property_tax_rate(location),
            property_appreciation_rate_annual=self.estimate_appreciation_rate(location),
            stock_cagr_annual=self.estimate_stock_cagr(benchmark),
            location_label=self.normalize_location(location),
            narrative=self.NARRATIVE,
        )

    def normalize_location(self, location: str) -> str:
        trimmed = (location or "").strip()
        if not trimmed:
            return self.FALLBACK_LOCATION
        lowered = trimmed.lower()
        for known in self.KNOWN_LOCATIONS:
            if lowered in known.lower():
                return known
        return trimmed

    def estimate_property_tax_rate(self, location: str) -> float:
        state = _extract_state_code(location)
        if state and state in self.STATE_TAX_RATES:
            return self.STATE_TAX_RATES[state]
        return self.DEFAULT_TAX_RATE

    def estimate_appreciation_rate(self, location: str) -> float:
        lowered = (location or "").lower()
        if any(market in lowered for market in self.HIGH_GROWTH_MARKETS):
            return self.HIGH_GROWTH_APPRECIATION
        return self.DEFAULT_APPRECIATION

    def estimate_stock_cagr(self, benchmark: str) -> float:
        symbol = (benchmark or "").strip().upper()
        return self.BENCHMARK_CAGR.get(symbol, self.BENCHMARK_CAGR[self.DEFAULT_BENCHMARK])


class CensusACSClient:
    """Thin wrapper around the Census API for effective property tax rates."""

    BASE_URL = "https://api.census.gov/data"
    GEO_KEY = "metropolitan statistical area/micropolitan statistical area"

    MEDIAN_TAXES = "B25103_001E"  # median real estate taxes paid, annual dollars
    MEDIAN_HOME_VALUE = "B25077_001E"  # median value, owner-occupied units

    def __init__(
        self,
        api_key: Optional[str],
        dataset: str = "acs/acs5",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.dataset = dataset
        self.session = session or requests.Session()

    def fetch_property_tax_rate(self, cbsa: str, *, year: int = 2023) -> Tuple[str, float]:
        """Return ``(area name, effective annual tax rate)`` for a CBSA."""
        params = {
            "get": ",".join(["NAME", self.MEDIAN_TAXES, self.MEDIAN_HOME_VALUE]),
            "for": f"{self.GEO_KEY}:{cbsa}",
        }
        if self.api_key:
            params["key"] = self.api_key

        url = f"{self.BASE_URL}/{year}/{self.dataset}"
        response = self.session.get(url, params=params, timeout=30)
        response.raise_for_status()
        data = response.json()
        if len(data) < 2:
            raise RuntimeError(f"ACS query returned no rows for CBSA {cbsa}")

        row = dict(zip(data[0], data[1]))
        taxes = _to_float(row.get(self.MEDIAN_TAXES))
        home_value = _to_float(row.get(self.MEDIAN_HOME_VALUE))
        if taxes is None or taxes < 0 or not home_value or home_value <= 0:
            raise RuntimeError(f"ACS returned no tax or home value for CBSA {cbsa}")
        return row.get("NAME") or f"CBSA {cbsa}", taxes / home_value


class BenchmarkHistoryClient:
    """Derive a benchmark CAGR from daily closing prices served as CSV."""

    def __init__(
        self,
        base_url: str = DEFAULT_PRICE_HISTORY_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url
        self.session = session or requests.Session()

    def fetch_closes(
        self,
        symbol: str,
        start_date: datetime.date,
        end_date: datetime.date,
    ) -> List[Tuple[datetime.date, float]]:
        params = {
            "s": f"{symbol.strip().lower()}.us",
            "i": "d",
            "d1": start_date.strftime("%Y%m%d"),
            "d2": end_date.strftime("%Y%m%d"),
        }
        response = self.session.get(self.base_url, params=params, timeout=30)
        response.raise_for_status()

        closes = []
        for row in csv.DictReader(io.StringIO(response.text)):
            try:
                close = _to_float(row.get("Close"))
            except ValueError:
                continue
            if close is None or close <= 0 or not row.get("Date"):
                continue
            closes.append((datetime.date.fromisoformat(row["Date"]), close))
        closes.sort()
        if len(closes) < 2:
            raise RuntimeError(f"No price history returned for {symbol}")
        return closes

    def fetch_cagr(
        self,
        symbol: str,
        start_date: datetime.date,
        end_date: Optional[datetime.date] = None,
    ) -> EstimatedRates:
        end_date = end_date or datetime.date.today()
        closes = self.fetch_closes(symbol, start_date, end_date)
        (first_day, first_close), (last_day, last_close) = closes[0], closes[-1]

        years = (last_day - first_day).days / 365.25
        if years <= 0:
            raise RuntimeError(f"Price history for {symbol} spans no time")
        cagr = (last_close / first_close) ** (1 / years) - 1

        return EstimatedRates(
            stock_cagr_annual=cagr,
            stock_start_price=first_close,
            stock_end_price=last_close,
            stock_start_date=first_day.isoformat(),
            stock_end_date=last_day.isoformat(),
            stock_data_source=self.base_url,
        )


@dataclass
class MarketDataAssembler:
    """Layer live data sources over the offline heuristics."""

    estimator: LocalMarketEstimator
    acs_client: Optional[CensusACSClient] = None
    benchmark_client: Optional[BenchmarkHistoryClient] = None

    def build_estimates(
        self,
        location: str,
        benchmark: str,
        *,
        cbsa: Optional[str] = None,
        acs_year: int = 2023,
        start_date: Optional[datetime.date] = None,
        end_date: Optional[datetime.date] = None,
    ) -> EstimatedRates:
        estimates = self.estimator.analyze(location, benchmark)

        if cbsa and self.acs_client is not None:
            try:
                name, tax_rate = self.acs_client.fetch_property_tax_rate(cbsa, year=acs_year)
            except (requests.RequestException, RuntimeError, ValueError) as exc:
                logger.warning("ACS property tax lookup failed for CBSA %s: %s", cbsa, exc)
            else:
                logger.info("Using ACS tax rate %.4f for %s", tax_rate, name)
                estimates = estimates.merged_with(
                    EstimatedRates(property_tax_rate_annual=tax_rate, location_label=name)
                )

        if start_date and self.benchmark_client is not None:
            try:
                history = self.benchmark_client.fetch_cagr(benchmark, start_date, end_date)
            except (requests.RequestException, RuntimeError, ValueError) as exc:
                logger.warning("Benchmark history lookup failed for %s: %s", benchmark, exc)
            else:
                logger.info(
                    "Using historical CAGR %.4f for %s", history.stock_cagr_annual, benchmark
                )
                estimates = estimates.merged_with(history)

        return estimates


def _extract_state_code(location: str) -> Optional[str]:
    match = re.search(r"\b([A-Z]{2})\b", (location or "").upper())
    return match.group(1) if match else None


def _to_float(value: Optional[str]) -> Optional[float]:
    if value in (None, "", "null"):
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Could not convert value '{value}' to float") from exc
