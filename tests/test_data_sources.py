import datetime
import logging
import math

import pytest
import requests

from buy_vs_invest.data_sources import (
    BenchmarkHistoryClient,
    CensusACSClient,
    LocalMarketEstimator,
    MarketDataAssembler,
)


class FakeResponse:
    def __init__(self, payload=None, text="", status_code=200):
        self.payload = payload
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if self.error is not None:
            raise self.error
        return self.response


ACS_HEADER = [
    "NAME",
    "B25103_001E",
    "B25077_001E",
    "metropolitan statistical area/micropolitan statistical area",
]

PRICE_CSV = (
    "Date,Open,High,Low,Close,Volume\n"
    "2024-01-02,0,0,0,200.0,10\n"
    "2014-01-02,0,0,0,100.0,10\n"
    "2019-01-02,0,0,0,150.0,10\n"
)


@pytest.mark.parametrize(
    "location, label, tax, appreciation",
    [
        ("Austin, TX", "Austin, TX", 0.016, 0.055),
        ("austin", "Austin, TX", 0.012, 0.055),
        ("Boston, MA", "Boston, MA", 0.0103, 0.04),
        ("Portland, OR", "Portland, OR", 0.012, 0.04),
        ("", "United States", 0.012, 0.04),
    ],
)
def test_local_estimator(location, label, tax, appreciation):
    estimates = LocalMarketEstimator().analyze(location, "SPY")
    assert estimates.location_label == label
    assert estimates.property_tax_rate_annual == tax
    assert estimates.property_appreciation_rate_annual == appreciation
    assert estimates.narrative == "Local estimate based on defaults"


@pytest.mark.parametrize(
    "benchmark, cagr", [("SPY", 0.09), ("qqq", 0.11), ("DIA", 0.075), ("VTI", 0.09)]
)
def test_local_benchmark_cagr(benchmark, cagr):
    assert LocalMarketEstimator().estimate_stock_cagr(benchmark) == cagr


def test_acs_effective_tax_rate():
    session = FakeSession(
        FakeResponse([ACS_HEADER, ["Austin-Round Rock, TX", "4000", "400000", "12420"]])
    )
    client = CensusACSClient(api_key="secret", session=session)
    name, rate = client.fetch_property_tax_rate("12420", year=2022)
    assert name == "Austin-Round Rock, TX"
    assert math.isclose(rate, 0.01)

    url, params = session.calls[0]
    assert url == "https://api.census.gov/data/2022/acs/acs5"
    assert params["key"] == "secret"
    assert params["for"].endswith(":12420")


def test_acs_missing_rows():
    client = CensusACSClient(api_key=None, session=FakeSession(FakeResponse([ACS_HEADER])))
    with pytest.raises(RuntimeError):
        client.fetch_property_tax_rate("99999")


def test_acs_missing_home_value():
    session = FakeSession(FakeResponse([ACS_HEADER, ["Nowhere", "4000", "", "99999"]]))
    with pytest.raises(RuntimeError):
        CensusACSClient(api_key=None, session=session).fetch_property_tax_rate("99999")


def test_benchmark_cagr_from_closes():
    session = FakeSession(FakeResponse(text=PRICE_CSV))
    client = BenchmarkHistoryClient(base_url="https://prices.test/q", session=session)
    estimates = client.fetch_cagr(
        "SPY", datetime.date(2014, 1, 2), datetime.date(2024, 1, 2)
    )
    years = (datetime.date(2024, 1, 2) - datetime.date(2014, 1, 2)).days / 365.25
    assert math.isclose(estimates.stock_cagr_annual, 2 ** (1 / years) - 1)
    assert estimates.stock_start_price == 100.0
    assert estimates.stock_end_price == 200.0
    assert estimates.stock_start_date == "2014-01-02"
    assert estimates.stock_end_date == "2024-01-02"
    assert estimates.stock_data_source == "https://prices.test/q"

    _, params = session.calls[0]
    assert params == {"s": "spy.us", "i": "d", "d1": "20140102", "d2": "20240102"}


def test_benchmark_skips_unparseable_closes():
    csv_text = PRICE_CSV + "2016-01-04,0,0,0,N/A,10\n"
    session = FakeSession(FakeResponse(text=csv_text))
    closes = BenchmarkHistoryClient(session=session).fetch_closes(
        "SPY", datetime.date(2014, 1, 2), datetime.date(2024, 1, 2)
    )
    assert [day.year for day, _ in closes] == [2014, 2019, 2024]


def test_benchmark_without_data():
    session = FakeSession(FakeResponse(text="No data"))
    client = BenchmarkHistoryClient(session=session)
    with pytest.raises(RuntimeError):
        client.fetch_cagr("SPY", datetime.date(2014, 1, 2), datetime.date(2024, 1, 2))


def test_assembler_uses_heuristics_only_by_default():
    estimates = MarketDataAssembler(estimator=LocalMarketEstimator()).build_estimates(
        "Miami, FL", "QQQ", cbsa="33100", start_date=datetime.date(2014, 1, 2)
    )
    assert estimates.property_tax_rate_annual == 0.0091
    assert estimates.stock_cagr_annual == 0.11
    assert estimates.stock_data_source is None


def test_assembler_overlays_live_sources():
    acs = CensusACSClient(
        api_key=None,
        session=FakeSession(FakeResponse([ACS_HEADER, ["Austin-Round Rock, TX", "3000", "300000", "12420"]])),
    )
    history = BenchmarkHistoryClient(session=FakeSession(FakeResponse(text=PRICE_CSV)))
    assembler = MarketDataAssembler(
        estimator=LocalMarketEstimator(), acs_client=acs, benchmark_client=history
    )
    estimates = assembler.build_estimates(
        "Austin, TX",
        "SPY",
        cbsa="12420",
        start_date=datetime.date(2014, 1, 2),
        end_date=datetime.date(2024, 1, 2),
    )
    assert math.isclose(estimates.property_tax_rate_annual, 0.01)
    assert estimates.location_label == "Austin-Round Rock, TX"
    assert estimates.property_appreciation_rate_annual == 0.055
    assert estimates.stock_start_price == 100.0
    assert estimates.stock_cagr_annual != 0.09


def test_assembler_falls_back_when_sources_fail(caplog):
    assembler = MarketDataAssembler(
        estimator=LocalMarketEstimator(),
        acs_client=CensusACSClient(
            api_key=None, session=FakeSession(FakeResponse(status_code=503))
        ),
        benchmark_client=BenchmarkHistoryClient(
            session=FakeSession(error=requests.ConnectionError("offline"))
        ),
    )
    with caplog.at_level(logging.WARNING, logger="buy_vs_invest.data_sources"):
        estimates = assembler.build_estimates(
            "Austin, TX", "SPY", cbsa="12420", start_date=datetime.date(2014, 1, 2)
        )
    assert estimates.property_tax_rate_annual == 0.016
    assert estimates.stock_cagr_annual == 0.09
    assert estimates.location_label == "Austin, TX"
    assert "ACS property tax lookup failed" in caplog.text
    assert "Benchmark history lookup failed" in caplog.text
