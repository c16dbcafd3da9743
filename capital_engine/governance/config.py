"""Dynamic governance configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RecommendationLevel(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"


class AlertType(str, Enum):
    REGIME_CHANGE = "REGIME_CHANGE"
    LIMIT_REDUCTION = "LIMIT_REDUCTION"


class AlertSeverity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass
class GovernanceConfig:
    """Knobs for adaptive limit recalculation and alerting."""

    stress_weight: float = 0.3  # Stress multiplier = 1 - weight * stress
    low_liquidity_threshold: float = 50_000
    low_liquidity_multiplier: float = 0.8

    high_stress: float = 0.5
    critical_stress: float = 0.7

    rebalance_tightening: float = 0.7
    crowded_pairwise_correlation: float = 0.75
    stressed_volume_multiplier: float = 1.5

    limit_reduction_alert_pct: float = 20.0  # vs baseline max position weight

    def validate(self) -> list[str]:
        errors = []
        if not 0 <= self.stress_weight < 1:
            errors.append("stress_weight must be in [0, 1)")
        if not 0 < self.low_liquidity_multiplier <= 1:
            errors.append("low_liquidity_multiplier must be in (0, 1]")
        if self.high_stress > self.critical_stress:
            errors.append("high_stress cannot exceed critical_stress")
        if self.limit_reduction_alert_pct < 0:
            errors.append("limit_reduction_alert_pct cannot be negative")
        return errors


DEFAULT_GOVERNANCE_CONFIG = GovernanceConfig()
