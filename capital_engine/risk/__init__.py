"""Portfolio Risk.

Parametric VaR / CVaR on a shrinkage covariance, uniform-drop stress
tests and the composite risk report.
"""

from capital_engine.risk.config import (
    DEFAULT_RISK_ENGINE_CONFIG,
    STRESS_SCENARIOS,
    ConcentrationRisk,
    RiskEngineConfig,
    StressScenario,
)
from capital_engine.risk.engine import RiskEngine
from capital_engine.risk.models import (
    AssetImpact,
    CVaRResult,
    HistoricalVaR,
    PortfolioMetrics,
    RiskiestAsset,
    RiskReport,
    StressTestResult,
    VaRResult,
)
from capital_engine.risk.var import (
    annualization_factor,
    expected_shortfall,
    historical_var,
    lag_autocorrelation,
    parametric_var,
)

__all__ = [
    # Config
    "DEFAULT_RISK_ENGINE_CONFIG",
    "STRESS_SCENARIOS",
    "ConcentrationRisk",
    "RiskEngineConfig",
    "StressScenario",
    # Engine
    "RiskEngine",
    # Models
    "AssetImpact",
    "CVaRResult",
    "HistoricalVaR",
    "PortfolioMetrics",
    "RiskiestAsset",
    "RiskReport",
    "StressTestResult",
    "VaRResult",
    # Calculations
    "annualization_factor",
    "expected_shortfall",
    "historical_var",
    "lag_autocorrelation",
    "parametric_var",
]
