"""Risk Engine Data Models.

Result values for VaR, CVaR, stress tests and the composite risk report.
VaR and CVaR results carry an ``error`` string instead of raising so that
batch callers can run many portfolios without aborting.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import pandas as pd

from capital_engine.correlation.models import CorrelationResult
from capital_engine.errors import DegradedResultWarning
from capital_engine.risk.config import ConcentrationRisk


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VaRResult:
    """Parametric portfolio Value at Risk.

    Monetary fields are positive losses. Volatilities are percent.
    """

    confidence: float = 0.95
    capital: float = 0.0
    diversified_var: float = 0.0
    undiversified_var: float = 0.0
    diversification_benefit: float = 0.0  # % of undiversified VaR removed
    daily_volatility: float = 0.0
    portfolio_volatility: float = 0.0  # Annualized
    autocorrelation: float = 0.0  # Lag-1, portfolio returns
    z_score: float = 0.0
    n_observations: int = 0
    method: str = "parametric"
    warnings: tuple[DegradedResultWarning, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def var_pct(self) -> float:
        """Diversified VaR as percentage of capital."""
        return self.diversified_var / self.capital * 100 if self.capital > 0 else 0.0

    @classmethod
    def failed(cls, message: str, confidence: float = 0.95, capital: float = 0.0) -> "VaRResult":
        return cls(confidence=confidence, capital=capital, error=message)

    def to_dict(self) -> dict:
        result = {
            "diversified_var": round(self.diversified_var, 2),
            "undiversified_var": round(self.undiversified_var, 2),
            "diversification_benefit": round(self.diversification_benefit, 2),
            "portfolio_volatility": round(self.portfolio_volatility, 2),
            "daily_volatility": round(self.daily_volatility, 4),
            "autocorrelation": round(self.autocorrelation, 3),
            "confidence": self.confidence,
            "observations": self.n_observations,
            "method": self.method,
            "warnings": [w.to_dict() for w in self.warnings],
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class CVaRResult:
    """Expected shortfall beyond the VaR quantile.

    ``cvar`` is the larger of the parametric and historical estimates.
    """

    confidence: float = 0.95
    capital: float = 0.0
    cvar: float = 0.0
    parametric_cvar: float = 0.0
    historical_cvar: float = 0.0
    tail_observations: int = 0
    warnings: tuple[DegradedResultWarning, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def cvar_pct(self) -> float:
        return self.cvar / self.capital * 100 if self.capital > 0 else 0.0

    @classmethod
    def failed(cls, message: str, confidence: float = 0.95, capital: float = 0.0) -> "CVaRResult":
        return cls(confidence=confidence, capital=capital, error=message)

    def to_dict(self) -> dict:
        result = {
            "cvar": round(self.cvar, 2),
            "cvar_pct": round(self.cvar_pct, 2),
            "parametric_cvar": round(self.parametric_cvar, 2),
            "historical_cvar": round(self.historical_cvar, 2),
            "confidence": self.confidence,
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class HistoricalVaR:
    """Single-asset historical VaR from the empirical return quantile."""
    ticker: str
    confidence: float
    var_pct: float = 0.0  # Quantile return in percent (negative = loss)
    var_value: float = 0.0  # Quantile return times capital


@dataclass(frozen=True)
class PortfolioMetrics:
    """VaR, CVaR and correlation computed together."""
    var: VaRResult
    cvar: CVaRResult
    correlation: Optional[CorrelationResult] = None
    correlation_error: Optional[str] = None


@dataclass(frozen=True)
class AssetImpact:
    """Loss of one position under a stress scenario."""
    ticker: str
    impact_pct: float  # Asset return under the scenario, percent
    loss: float  # Positive currency loss

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "impact": round(self.impact_pct, 1),
            "loss": round(self.loss, 2),
        }


@dataclass(frozen=True)
class StressTestResult:
    """Portfolio outcome under one uniform-drop scenario."""

    scenario: str
    description: str
    market_drop: float  # Decimal
    estimated_loss: float  # Positive currency loss
    loss_pct: float  # Percent of capital
    remaining_capital: float
    top_impacts: tuple[AssetImpact, ...] = ()

    def to_dict(self) -> dict:
        return {
            "scenario": self.scenario,
            "description": self.description,
            "market_drop": round(self.market_drop * 100, 0),
            "estimated_loss": round(self.estimated_loss, 2),
            "loss_pct": round(self.loss_pct, 2),
            "remaining_capital": round(self.remaining_capital, 2),
            "top_impacts": [i.to_dict() for i in self.top_impacts],
        }


@dataclass(frozen=True)
class RiskiestAsset:
    """Position with the largest volatility times weight."""
    ticker: str = "N/A"
    name: str = ""
    volatility: float = 0.0
    weight: float = 0.0

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "name": self.name,
            "volatility": round(self.volatility, 2),
            "weight_pct": round(self.weight * 100, 2),
        }


@dataclass(frozen=True)
class RiskReport:
    """Composite risk report for one allocation.

    Always has the same shape: a failed report carries the message in
    ``portfolio_var.error`` and an empty ``stress_tests`` list.
    """

    portfolio_var: VaRResult
    portfolio_cvar: CVaRResult
    correlation: Optional[CorrelationResult]
    stress_tests: list[StressTestResult]
    riskiest_asset: RiskiestAsset
    concentration_risk: ConcentrationRisk
    diversification_score: float
    distance_matrix: Optional[pd.DataFrame] = None
    warnings: tuple[DegradedResultWarning, ...] = ()
    generated_at: datetime = field(default_factory=_utc_now)

    @property
    def ok(self) -> bool:
        return self.portfolio_var.ok and bool(self.stress_tests)

    @classmethod
    def fallback(cls, message: str, capital: float = 0.0) -> "RiskReport":
        """Safe, well-typed report used when assembly fails."""
        return cls(
            portfolio_var=VaRResult.failed(message, capital=capital),
            portfolio_cvar=CVaRResult.failed(message, capital=capital),
            correlation=None,
            stress_tests=[],
            riskiest_asset=RiskiestAsset(),
            concentration_risk=ConcentrationRisk.NA,
            diversification_score=0.0,
        )

    def to_dict(self) -> dict:
        var = self.portfolio_var.to_dict()
        var["cvar"] = round(self.portfolio_cvar.cvar, 2)
        var["cvar_pct"] = round(self.portfolio_cvar.cvar_pct, 2)
        return {
            "portfolio_var": var,
            "correlation": self.correlation.to_dict() if self.correlation else {"matrix": [], "stats": {"average": 0}},
            "stress_tests": [s.to_dict() for s in self.stress_tests],
            "risk_metrics": {
                "riskiest_asset": self.riskiest_asset.to_dict(),
                "concentration_risk": self.concentration_risk.value,
                "diversification_score": round(self.diversification_score, 0),
            },
            "raw_matrices": {
                "distance": (
                    self.distance_matrix.to_numpy().tolist()
                    if self.distance_matrix is not None
                    else []
                ),
            },
            "warnings": [w.to_dict() for w in self.warnings],
            "generated_at": self.generated_at.isoformat(),
        }
