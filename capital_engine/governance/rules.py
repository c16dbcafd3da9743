"""Investment rules and risk profiles.

Baseline limits that the dynamic governance engine scales with market
regime, the three preset risk profiles built on top of them, and the
absolute floor / ceiling each adaptive limit is clamped into.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Optional

logger = logging.getLogger(__name__)


# ======================================================================
# Rules
# ======================================================================


@dataclass(frozen=True)
class InvestmentRules:
    """Portfolio construction limits.

    Weights are decimals; volatility and drawdown are percent.
    """

    # Concentration
    max_position_weight: float = 0.15
    min_position_weight: float = 0.02
    max_sector_weight: float = 0.30
    max_country_weight: float = 0.40
    max_top3_concentration: float = 0.40

    # Liquidity
    min_daily_volume: float = 50_000
    min_market_cap: Optional[float] = None

    # Correlation
    max_pairwise_correlation: float = 0.85

    # Aggregate risk
    max_portfolio_volatility: float = 25.0
    max_portfolio_drawdown: float = 35.0

    # Rebalancing
    rebalance_threshold: float = 0.05

    # Exclusions
    exclude_high_risk: bool = True
    high_risk_volatility: float = 50.0
    exclude_low_liquidity: bool = True

    min_score_threshold: Optional[float] = None

    def with_overrides(self, **changes) -> "InvestmentRules":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Serialise to a plain dictionary."""
        return asdict(self)


INVESTMENT_RULES = InvestmentRules()


# Limits that shrink when conditions deteriorate, with (floor, ceiling)
LIMIT_BOUNDS: dict[str, tuple[float, float]] = {
    "max_position_weight": (0.05, 0.25),
    "max_sector_weight": (0.15, 0.45),
    "max_country_weight": (0.20, 0.50),
    "max_top3_concentration": (0.20, 0.60),
    "max_portfolio_volatility": (8.0, 40.0),
    "max_portfolio_drawdown": (10.0, 50.0),
}


def clamp_limit(name: str, value: float) -> float:
    """Clamp an adaptive limit into its absolute bounds."""
    floor, ceiling = LIMIT_BOUNDS[name]
    return min(max(value, floor), ceiling)


# ======================================================================
# Risk Profiles
# ======================================================================


@dataclass(frozen=True)
class RiskProfile:
    """Named preset of investment rules for an investor type."""

    key: str
    name: str
    description: str
    investor_type: str
    rules: InvestmentRules

    def to_dict(self) -> dict:
        """Serialise to a plain dictionary."""
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "investor_type": self.investor_type,
            "rules": self.rules.to_dict(),
        }


RISK_PROFILES: dict[str, RiskProfile] = {
    "conservative": RiskProfile(
        key="conservative",
        name="Conservative",
        description="Capital preservation with tight concentration and volatility limits",
        investor_type="Low risk tolerance, long horizon",
        rules=INVESTMENT_RULES.with_overrides(
            max_position_weight=0.10,
            max_portfolio_volatility=15.0,
            max_portfolio_drawdown=20.0,
            min_score_threshold=70.0,
        ),
    ),
    "moderate": RiskProfile(
        key="moderate",
        name="Moderate",
        description="Balanced growth and risk",
        investor_type="Medium risk tolerance",
        rules=INVESTMENT_RULES.with_overrides(
            max_position_weight=0.15,
            max_portfolio_volatility=20.0,
            max_portfolio_drawdown=30.0,
            min_score_threshold=60.0,
        ),
    ),
    "aggressive": RiskProfile(
        key="aggressive",
        name="Aggressive",
        description="Return-seeking with wider limits",
        investor_type="High risk tolerance, active monitoring",
        rules=INVESTMENT_RULES.with_overrides(
            max_position_weight=0.20,
            max_portfolio_volatility=30.0,
            max_portfolio_drawdown=45.0,
            min_score_threshold=50.0,
        ),
    ),
}


# (profile, max position weight, max portfolio volatility), tightest first
EFFECTIVE_PROFILE_BANDS = (
    ("conservative", 0.10, 15.0),
    ("moderate", 0.15, 20.0),
    ("aggressive", 0.20, 30.0),
)


def get_profile_rules(profile_name: str) -> InvestmentRules:
    """Rules for a named profile, or the baseline rules when unknown."""
    profile = RISK_PROFILES.get(str(profile_name).lower())
    if profile is None:
        logger.warning("Unknown risk profile '%s'; using baseline rules", profile_name)
        return INVESTMENT_RULES
    return profile.rules


def effective_profile(rules: InvestmentRules) -> str:
    """Classify how strict a rule set is in practice."""
    for name, max_position, max_volatility in EFFECTIVE_PROFILE_BANDS:
        if (
            rules.max_position_weight <= max_position
            and rules.max_portfolio_volatility <= max_volatility
        ):
            return name
    return "custom"
