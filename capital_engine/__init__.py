"""capital-engine: allocation, portfolio risk and adaptive governance.

Three stateless engines turn scored, price-bearing assets into a capital
allocation, an estimate of its risk and a regime-aware set of limits.

Example:
    from capital_engine import AllocationEngine, Asset, RiskEngine

    allocation = AllocationEngine().allocate(assets, "hybrid", capital=100_000)
    report = RiskEngine().generate_risk_report(allocation, capital=100_000)
"""

from capital_engine.allocation import (
    AllocationConfig,
    AllocationEngine,
    AllocationMethod,
    PortfolioAllocation,
    PortfolioRiskEstimate,
    compute_portfolio_risk,
)
from capital_engine.correlation import CorrelationEstimator, CorrelationResult
from capital_engine.errors import (
    CapitalEngineError,
    ConfigurationError,
    DataValidationError,
    DegradedResultWarning,
    InsufficientDataError,
)
from capital_engine.governance import (
    DynamicGovernanceEngine,
    DynamicLimits,
    InvestmentRules,
    MarketConditions,
    MarketObservation,
    apply_compliance_corrections,
    generate_governance_report,
    validate_compliance,
)
from capital_engine.models import AllocatedPosition, Asset
from capital_engine.risk import RiskEngine, RiskReport, VaRResult, CVaRResult

__version__ = "1.0.0"

__all__ = [
    "AllocatedPosition",
    "AllocationConfig",
    "AllocationEngine",
    "AllocationMethod",
    "Asset",
    "CVaRResult",
    "CapitalEngineError",
    "ConfigurationError",
    "CorrelationEstimator",
    "CorrelationResult",
    "DataValidationError",
    "DegradedResultWarning",
    "DynamicGovernanceEngine",
    "DynamicLimits",
    "InsufficientDataError",
    "InvestmentRules",
    "MarketConditions",
    "MarketObservation",
    "PortfolioAllocation",
    "PortfolioRiskEstimate",
    "RiskEngine",
    "RiskReport",
    "VaRResult",
    "apply_compliance_corrections",
    "generate_governance_report",
    "compute_portfolio_risk",
    "validate_compliance",
]
