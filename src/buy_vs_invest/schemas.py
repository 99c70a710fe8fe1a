from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class InvalidConfiguration(ValueError):
    """Raised when an investment configuration cannot be projected."""


class TaxView(str, Enum):
    PRE_TAX = "pre"
    AFTER_TAX = "after"


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise InvalidConfiguration(message)


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


@dataclass(frozen=True)
class InvestmentConfiguration:
    """User-entered financial parameters for one buy-vs-invest run."""

    purchase_price: float
    down_payment_percent: float = 20.0
    annual_interest_rate_percent: float = 6.5  # annual percentage, e.g., 6.5
    loan_term_years: int = 30
    hoa_monthly: float = 0.0
    insurance_annual: float = 1200.0
    maintenance_rate_annual: float = 0.01  # fraction of asset value
    # Overrides; None falls through to estimated then default rates
    property_tax_rate_annual: Optional[float] = None
    property_appreciation_rate_annual: Optional[float] = None
    benchmark_stock_cagr_annual: Optional[float] = None
    horizon_years: int = 15
    capital_gains_tax_rate: float = 0.15
    address: str = ""
    benchmark: str = "SPY"

    def __post_init__(self) -> None:
        for name in (
            "purchase_price",
            "down_payment_percent",
            "annual_interest_rate_percent",
            "hoa_monthly",
            "insurance_annual",
            "maintenance_rate_annual",
            "capital_gains_tax_rate",
        ):
            _require(_finite(getattr(self, name)), f"{name} must be a finite number")
        for name in (
            "property_tax_rate_annual",
            "property_appreciation_rate_annual",
            "benchmark_stock_cagr_annual",
        ):
            value = getattr(self, name)
            _require(
                value is None or _finite(value),
                f"{name} must be a finite number when given",
            )

        _require(self.purchase_price > 0, "purchase_price must be positive")
        _require(
            0 <= self.down_payment_percent <= 100,
            "down_payment_percent must be between 0 and 100",
        )
        _require(
            self.annual_interest_rate_percent >= 0,
            "annual_interest_rate_percent cannot be negative",
        )
        _require(
            isinstance(self.loan_term_years, int) and self.loan_term_years > 0,
            "loan_term_years must be a positive integer",
        )
        _require(
            isinstance(self.horizon_years, int) and self.horizon_years > 0,
            "horizon_years must be a positive integer",
        )
        _require(self.hoa_monthly >= 0, "hoa_monthly cannot be negative")
        _require(self.insurance_annual >= 0, "insurance_annual cannot be negative")
        _require(
            self.maintenance_rate_annual >= 0,
            "maintenance_rate_annual cannot be negative",
        )
        _require(
            0 <= self.capital_gains_tax_rate <= 1,
            "capital_gains_tax_rate must be between 0 and 1",
        )
        if self.property_tax_rate_annual is not None:
            _require(
                self.property_tax_rate_annual >= 0,
                "property_tax_rate_annual cannot be negative",
            )
        if self.property_appreciation_rate_annual is not None:
            _require(
                self.property_appreciation_rate_annual > -1,
                "property_appreciation_rate_annual must be greater than -100%",
            )
        if self.benchmark_stock_cagr_annual is not None:
            _require(
                self.benchmark_stock_cagr_annual > -1,
                "benchmark_stock_cagr_annual must be greater than -100%",
            )

    @property
    def down_payment(self) -> float:
        """Initial capital committed to either track."""
        return self.purchase_price * (self.down_payment_percent / 100.0)

    @property
    def loan_principal(self) -> float:
        return max(self.purchase_price - self.down_payment, 0.0)

    @property
    def term_months(self) -> int:
        return max(1, self.loan_term_years * 12)

    @property
    def total_months(self) -> int:
        return max(1, self.horizon_years) * 12


def _optional_rate(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    return rate if math.isfinite(rate) else None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class EstimatedRates:
    """Output of a rate-estimation collaborator; every field may be missing."""

    property_tax_rate_annual: Optional[float] = None
    property_appreciation_rate_annual: Optional[float] = None
    stock_cagr_annual: Optional[float] = None
    location_label: Optional[str] = None
    narrative: Optional[str] = None
    stock_start_price: Optional[float] = None
    stock_end_price: Optional[float] = None
    stock_start_date: Optional[str] = None
    stock_end_date: Optional[str] = None
    stock_data_source: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "EstimatedRates":
        """Build estimates from loosely-typed data, dropping malformed fields."""
        if not payload:
            return cls()
        return cls(
            property_tax_rate_annual=_optional_rate(payload.get("property_tax_rate_annual")),
            property_appreciation_rate_annual=_optional_rate(
                payload.get("property_appreciation_rate_annual")
            ),
            stock_cagr_annual=_optional_rate(payload.get("stock_cagr_annual")),
            location_label=_optional_text(payload.get("location_label")),
            narrative=_optional_text(payload.get("narrative")),
            stock_start_price=_optional_rate(payload.get("stock_start_price")),
            stock_end_price=_optional_rate(payload.get("stock_end_price")),
            stock_start_date=_optional_text(payload.get("stock_start_date")),
            stock_end_date=_optional_text(payload.get("stock_end_date")),
            stock_data_source=_optional_text(payload.get("stock_data_source")),
        )

    def merged_with(self, other: "EstimatedRates") -> "EstimatedRates":
        """Return a copy where fields present in ``other`` win."""
        updates = {
            name: value
            for name, value in vars(other).items()
            if value is not None
        }
        return replace(self, **updates)


@dataclass(frozen=True)
class RateSet:
    """Resolved annual rates for one run plus pass-through metadata."""

    property_tax_rate_annual: float
    property_appreciation_rate_annual: float
    stock_cagr_annual: float
    annual_interest_rate_percent: float
    location_label: Optional[str] = None
    narrative: Optional[str] = None
    stock_start_price: Optional[float] = None
    stock_end_price: Optional[float] = None
    stock_start_date: Optional[str] = None
    stock_end_date: Optional[str] = None
    stock_data_source: Optional[str] = None
    sources: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SimulationState:
    month_index: int
    stock_value: float
    property_asset_value: float
    loan_balance: float
    cumulative_property_tax: float = 0.0
    cumulative_carrying_costs: float = 0.0
    cumulative_mortgage_interest: float = 0.0

    @property
    def property_equity(self) -> float:
        return self.property_asset_value - self.loan_balance


@dataclass(frozen=True)
class Snapshot:
    year_index: int
    year_label: str
    month_index: int
    stock_value_pre_tax: float
    property_value_pre_tax: float
    stock_value_after_tax: float
    property_value_after_tax: float
    annual_property_tax: float
    cumulative_property_tax: float
    property_asset_value: float
    cumulative_carrying_costs: float
    loan_balance: float
    cumulative_mortgage_interest: float

    def stock_value_display(self, view: TaxView = TaxView.PRE_TAX) -> float:
        if TaxView(view) is TaxView.AFTER_TAX:
            return self.stock_value_after_tax
        return self.stock_value_pre_tax

    def property_value_display(self, view: TaxView = TaxView.PRE_TAX) -> float:
        if TaxView(view) is TaxView.AFTER_TAX:
            return self.property_value_after_tax
        return self.property_value_pre_tax

    def as_dict(self, view: TaxView = TaxView.PRE_TAX) -> Dict[str, Any]:
        payload = dict(vars(self))
        payload["stock_value_display"] = self.stock_value_display(view)
        payload["property_value_display"] = self.property_value_display(view)
        return payload


@dataclass(frozen=True)
class ProjectionResult:
    """Year-sampled projection; every summary figure derives from ``snapshots``."""

    configuration: InvestmentConfiguration
    rates: RateSet
    monthly_payment: float
    snapshots: List[Snapshot] = field(default_factory=list)
    view: TaxView = TaxView.PRE_TAX

    def with_view(self, view: TaxView) -> "ProjectionResult":
        return replace(self, view=TaxView(view))

    @property
    def final_snapshot(self) -> Snapshot:
        return self.snapshots[-1]

    @property
    def final_stock(self) -> float:
        return self.final_snapshot.stock_value_display(self.view)

    @property
    def final_property(self) -> float:
        return self.final_snapshot.property_value_display(self.view)

    @property
    def winner(self) -> str:
        if self.final_stock > self.final_property:
            return "stock"
        return "property"

    @property
    def outperformance_percent(self) -> Optional[float]:
        """Winner's margin relative to the loser; None when the loser is not positive."""
        smaller = min(self.final_stock, self.final_property)
        if smaller <= 0:
            return None
        return abs(self.final_stock - self.final_property) / smaller * 100.0

    @property
    def total_property_tax(self) -> float:
        return self.final_snapshot.cumulative_property_tax

    @property
    def total_carrying_costs(self) -> float:
        return self.final_snapshot.cumulative_carrying_costs

    @property
    def total_mortgage_interest(self) -> float:
        return self.final_snapshot.cumulative_mortgage_interest

    @property
    def first_year_property_tax(self) -> float:
        if len(self.snapshots) > 1:
            return self.snapshots[1].annual_property_tax
        return 0.0

    @property
    def tax_drag_percent(self) -> Optional[float]:
        if self.final_property <= 0:
            return None
        return self.total_property_tax / self.final_property * 100.0
