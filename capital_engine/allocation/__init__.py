"""Capital Allocation.

Weight-construction policies (equal weight, score weighted, approximate
ERC, volatility targeting, hybrid) with a shared bounding step and a
constant-correlation portfolio risk estimate.
"""

from capital_engine.allocation.config import (
    ALLOCATION_METHODS,
    DEFAULT_ALLOCATION_CONFIG,
    AllocationConfig,
    AllocationMethod,
)
from capital_engine.allocation.engine import (
    AllocationEngine,
    capital_recommendations,
    compute_portfolio_risk,
    drawdown_estimate,
    resolve_method,
)
from capital_engine.allocation.models import (
    MarginalRisk,
    PortfolioAllocation,
    PortfolioRiskEstimate,
)
from capital_engine.allocation.weights import clip_and_normalize

__all__ = [
    # Config
    "ALLOCATION_METHODS",
    "DEFAULT_ALLOCATION_CONFIG",
    "AllocationConfig",
    "AllocationMethod",
    # Engine
    "AllocationEngine",
    "capital_recommendations",
    "clip_and_normalize",
    "compute_portfolio_risk",
    "drawdown_estimate",
    "resolve_method",
    # Models
    "MarginalRisk",
    "PortfolioAllocation",
    "PortfolioRiskEstimate",
]
