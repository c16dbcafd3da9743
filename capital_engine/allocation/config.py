"""Allocation Configuration.

Allocation policies and the bounds applied to every policy's weights.
All weights are decimals (0.02 = 2%); volatilities are annualized percent.
"""

from dataclasses import dataclass
from enum import Enum


class AllocationMethod(str, Enum):
    """Weight-construction policy."""
    EQUAL_WEIGHT = "equal_weight"
    SCORE_WEIGHTED = "score_weighted"
    ERC = "erc"
    VOLATILITY_TARGET = "volatility_target"
    HYBRID = "hybrid"


ALLOCATION_METHODS = {
    AllocationMethod.EQUAL_WEIGHT: {
        "name": "Equal Weight",
        "description": "Same weight for every selected asset",
        "risk_level": "Low",
    },
    AllocationMethod.SCORE_WEIGHTED: {
        "name": "Score-Weighted",
        "description": "Weight proportional to each asset's quality score",
        "risk_level": "Medium",
    },
    AllocationMethod.ERC: {
        "name": "Equal Risk Contribution (ERC)",
        "description": "Inverse-volatility weights approximating equal risk contribution",
        "risk_level": "Medium-Low",
    },
    AllocationMethod.VOLATILITY_TARGET: {
        "name": "Volatility Targeting",
        "description": "Scales weights toward a target portfolio volatility",
        "risk_level": "Configurable",
    },
    AllocationMethod.HYBRID: {
        "name": "Hybrid (ERC + Score)",
        "description": "Blends risk diversification with signal quality",
        "risk_level": "Medium",
    },
}


# Max drawdown estimate per score band: (exclusive lower score, drawdown %)
DRAWDOWN_BY_SCORE = (
    (70.0, 15.0),
    (50.0, 25.0),
)
DEFAULT_DRAWDOWN_PCT = 35.0


@dataclass
class AllocationConfig:
    """Configuration for the allocation engine."""

    max_position_weight: float = 1.0
    min_position_weight: float = 0.02
    target_volatility: float = 15.0  # Annualized %
    max_assets_in_portfolio: int = 30
    min_assets_in_portfolio: int = 1
    average_correlation: float = 0.3  # Constant rho for the fast risk estimate
    default_volatility: float = 20.0  # Used when an asset has no volatility

    def validate(self) -> list[str]:
        """Validate configuration settings.

        Returns:
            List of validation error messages.
        """
        errors = []

        if not 0 <= self.min_position_weight <= 1:
            errors.append("min_position_weight must be between 0 and 1")
        if not 0 < self.max_position_weight <= 1:
            errors.append("max_position_weight must be between 0 and 1")
        if self.min_position_weight > self.max_position_weight:
            errors.append(
                f"min_position_weight ({self.min_position_weight}) cannot exceed "
                f"max_position_weight ({self.max_position_weight})"
            )

        if self.min_assets_in_portfolio < 1:
            errors.append("min_assets_in_portfolio must be at least 1")
        if self.max_assets_in_portfolio < self.min_assets_in_portfolio:
            errors.append("max_assets_in_portfolio cannot be below min_assets_in_portfolio")

        if self.target_volatility <= 0:
            errors.append("target_volatility must be positive")
        if self.default_volatility <= 0:
            errors.append("default_volatility must be positive")
        if not -1 < self.average_correlation < 1:
            errors.append("average_correlation must be in (-1, 1)")

        return errors

    @classmethod
    def from_settings(cls, settings) -> "AllocationConfig":
        """Build a config from process settings, keeping other defaults."""
        return cls(
            max_assets_in_portfolio=settings.max_assets_in_portfolio,
            min_assets_in_portfolio=settings.min_assets_in_portfolio,
        )


DEFAULT_ALLOCATION_CONFIG = AllocationConfig()
