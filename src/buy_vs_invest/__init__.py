"""
Buy vs. invest comparison toolkit.

Projects, month by month, the outcome of buying a mortgaged property versus
investing the same down payment in a market index, and samples the result
once per year for display. Rate estimates from outside collaborators are
merged with user overrides and defaults before the projection runs.
"""

from .schemas import (
    EstimatedRates,
    InvalidConfiguration,
    InvestmentConfiguration,
    ProjectionResult,
    RateSet,
    SimulationState,
    Snapshot,
    TaxView,
)
from .model import project
from .rates import resolve

__all__ = [
    "EstimatedRates",
    "InvalidConfiguration",
    "InvestmentConfiguration",
    "ProjectionResult",
    "RateSet",
    "SimulationState",
    "Snapshot",
    "TaxView",
    "project",
    "resolve",
]
