"""Risk Engine Configuration.

Monetary values are in the caller's currency; volatilities in the
allocation layer are annualized percent, while VaR internals work on
daily decimal returns.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from capital_engine.correlation.config import (
    TRADING_DAYS_PER_YEAR,
    CorrelationConfig,
)


class ConcentrationRisk(str, Enum):
    """Label for the weight of the largest position."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NA = "N/A"


@dataclass(frozen=True)
class StressScenario:
    """Uniform market drop applied through per-asset beta."""
    name: str
    description: str
    market_drop: float  # Decimal, negative for a decline


# Ordered by increasing severity
STRESS_SCENARIOS = (
    StressScenario(
        name="Minor Correction",
        description="Routine pullback of 5%",
        market_drop=-0.05,
    ),
    StressScenario(
        name="Moderate Correction",
        description="Correction of 10%, typical once a year",
        market_drop=-0.10,
    ),
    StressScenario(
        name="Market Crash",
        description="Bear market drop of 20%",
        market_drop=-0.20,
    ),
    StressScenario(
        name="Systemic Crisis",
        description="2008-style crisis with a 40% drop",
        market_drop=-0.40,
    ),
)


@dataclass
class RiskEngineConfig:
    """Configuration for VaR, CVaR, stress tests and the risk report."""

    # ==========================================================================
    # VaR / CVaR
    # ==========================================================================
    confidence: float = 0.95
    min_assets: int = 2
    trading_days: int = TRADING_DAYS_PER_YEAR
    autocorrelation_threshold: float = 0.1  # |rho_1| above this adjusts annualization
    min_autocorrelation_obs: int = 10

    # ==========================================================================
    # Stress Testing
    # ==========================================================================
    market_volatility: float = 15.0  # Beta denominator, annualized %
    default_volatility: float = 20.0
    top_impacts: int = 3

    # ==========================================================================
    # Report
    # ==========================================================================
    concentration_high: float = 0.20
    concentration_medium: float = 0.10
    neutral_diversification_score: float = 50.0  # When correlation is unavailable

    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)

    def validate(self) -> list[str]:
        """Validate configuration settings.

        Returns:
            List of validation error messages.
        """
        errors = list(self.correlation.validate())
        if not 0.5 < self.confidence < 1:
            errors.append("confidence must be between 0.5 and 1")
        if self.min_assets < 2:
            errors.append("min_assets must be at least 2")
        if self.market_volatility <= 0:
            errors.append("market_volatility must be positive")
        if self.default_volatility <= 0:
            errors.append("default_volatility must be positive")
        if self.concentration_medium > self.concentration_high:
            errors.append("concentration_medium cannot exceed concentration_high")
        return errors

    @classmethod
    def from_settings(cls, settings, confidence: Optional[float] = None) -> "RiskEngineConfig":
        """Build a config from process settings, keeping other defaults.

        ``confidence`` overrides ``settings.var_confidence`` when given.
        """
        return cls(
            confidence=settings.var_confidence if confidence is None else confidence,
            correlation=CorrelationConfig(min_observations=settings.min_observations),
        )


DEFAULT_RISK_ENGINE_CONFIG = RiskEngineConfig()
