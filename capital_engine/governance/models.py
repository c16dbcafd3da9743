"""Dynamic governance data models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from capital_engine.errors import DataValidationError
from capital_engine.governance.config import AlertSeverity, AlertType, RecommendationLevel
from capital_engine.governance.regimes import Regime, average_correlation
from capital_engine.governance.rules import InvestmentRules


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ======================================================================
# Inputs
# ======================================================================


@dataclass(frozen=True, eq=False)
class MarketConditions:
    """Observed market state driving limit recalculation.

    ``average_correlation`` takes precedence over ``correlation_matrix``;
    with neither, a neutral 0.5 is assumed.
    """

    portfolio_volatility: float = 20.0  # Annualized %
    correlation_matrix: Optional[Any] = None
    average_correlation: Optional[float] = None
    avg_liquidity: float = 100_000
    stress_level: float = 0.0  # 0 (calm) to 1 (crisis)

    def __post_init__(self):
        vol = float(self.portfolio_volatility)
        if math.isnan(vol) or vol < 0:
            raise DataValidationError(
                "portfolio_volatility must be a non-negative number",
                field="portfolio_volatility",
            )
        stress = float(self.stress_level)
        if math.isnan(stress) or not 0 <= stress <= 1:
            raise DataValidationError("stress_level must be in [0, 1]", field="stress_level")
        liquidity = float(self.avg_liquidity)
        if math.isnan(liquidity) or liquidity < 0:
            raise DataValidationError("avg_liquidity must be non-negative", field="avg_liquidity")
        if self.average_correlation is not None and math.isnan(float(self.average_correlation)):
            raise DataValidationError("average_correlation cannot be NaN", field="average_correlation")

    def resolved_correlation(self) -> float:
        if self.average_correlation is not None:
            return float(self.average_correlation)
        return average_correlation(self.correlation_matrix)

    def to_dict(self) -> dict:
        return {
            "portfolio_volatility": self.portfolio_volatility,
            "average_correlation": round(self.resolved_correlation(), 4),
            "avg_liquidity": self.avg_liquidity,
            "stress_level": self.stress_level,
        }


# ======================================================================
# Results
# ======================================================================


@dataclass(frozen=True)
class Recommendation:
    level: RecommendationLevel
    message: str

    def to_dict(self) -> dict:
        return {"type": self.level.value, "message": self.message}


@dataclass(frozen=True)
class Multipliers:
    """Factors applied to the baseline ceiling limits."""

    volatility: float = 1.0
    correlation: float = 1.0
    stress: float = 1.0
    liquidity: float = 1.0

    @property
    def combined(self) -> float:
        return self.volatility * self.correlation * self.stress * self.liquidity

    def to_dict(self) -> dict:
        return {
            "volatility": round(self.volatility, 2),
            "correlation": round(self.correlation, 2),
            "stress": round(self.stress, 2),
            "liquidity": round(self.liquidity, 2),
            "combined": round(self.combined, 4),
        }


@dataclass(frozen=True)
class DynamicLimits:
    """Investment rules recalibrated for the current market regime."""

    rules: InvestmentRules
    base_rules: InvestmentRules
    volatility_regime: Regime
    correlation_regime: Regime
    multipliers: Multipliers
    stress_level: float = 0.0
    low_liquidity: bool = False
    recommendations: tuple[Recommendation, ...] = ()
    timestamp: datetime = field(default_factory=_utc_now)

    @property
    def regime(self) -> dict:
        return {
            "volatility": self.volatility_regime.name,
            "correlation": self.correlation_regime.name,
            "stress": "High" if self.stress_level > 0.5 else "Normal",
            "liquidity": "Low" if self.low_liquidity else "Normal",
        }

    @property
    def changes(self) -> dict:
        def _pct(before: float, after: float, digits: int = 0) -> str:
            return f"{before * 100:.{digits}f}% -> {after * 100:.{digits}f}%"

        base, rules = self.base_rules, self.rules
        return {
            "max_position": _pct(base.max_position_weight, rules.max_position_weight),
            "max_sector": _pct(base.max_sector_weight, rules.max_sector_weight),
            "max_top3": _pct(base.max_top3_concentration, rules.max_top3_concentration),
            "rebalance_threshold": _pct(base.rebalance_threshold, rules.rebalance_threshold, 1),
        }

    @property
    def metadata(self) -> dict:
        return {
            "regime": self.regime,
            "multipliers": self.multipliers.to_dict(),
            "changes": self.changes,
            "recommendation": [r.to_dict() for r in self.recommendations],
        }

    def to_dict(self) -> dict:
        return {
            "rules": self.rules.to_dict(),
            "metadata": self.metadata,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class MarketObservation:
    """One entry of a caller-owned market condition history."""

    conditions: MarketConditions
    volatility_regime: Regime
    correlation_regime: Regime
    max_position_weight: float
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict:
        return {
            "conditions": self.conditions.to_dict(),
            "volatility_regime": self.volatility_regime.name,
            "correlation_regime": self.correlation_regime.name,
            "max_position_weight": round(self.max_position_weight, 4),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class GovernanceAlert:
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    action: str

    def to_dict(self) -> dict:
        return {
            "type": self.alert_type.value,
            "severity": self.severity.value,
            "message": self.message,
            "action": self.action,
        }


@dataclass(frozen=True)
class MonitorResult:
    """Outcome of comparing current conditions with the last observation."""

    current_limits: DynamicLimits
    alerts: tuple[GovernanceAlert, ...]
    observation: MarketObservation
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict:
        return {
            "current_limits": self.current_limits.to_dict(),
            "alerts": [a.to_dict() for a in self.alerts],
            "observation": self.observation.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class RiskProfileAdjustment:
    original_profile: str
    adjusted_rules: InvestmentRules
    limits: DynamicLimits
    effective_profile: str

    @property
    def adjustment_metadata(self) -> dict:
        return self.limits.metadata

    def to_dict(self) -> dict:
        return {
            "original_profile": self.original_profile,
            "adjusted_rules": self.adjusted_rules.to_dict(),
            "adjustment_metadata": self.adjustment_metadata,
            "effective_profile": self.effective_profile,
        }


@dataclass(frozen=True)
class ScenarioResult:
    """Dynamic limits under one canonical stress scenario."""

    scenario: str
    severity: int  # 0 = most benign
    conditions: MarketConditions
    limits: DynamicLimits

    @property
    def combined_multiplier(self) -> float:
        return self.limits.multipliers.combined

    def to_dict(self) -> dict:
        return {
            "scenario": self.scenario,
            "severity": self.severity,
            "conditions": self.conditions.to_dict(),
            "adjusted_limits": self.limits.rules.to_dict(),
            "metadata": self.limits.metadata,
        }
