"""Risk Report Metrics.

Position-level summaries that complement VaR in the composite report.
"""

from typing import Optional, Sequence

from capital_engine.correlation.models import CorrelationResult
from capital_engine.models import AllocatedPosition
from capital_engine.risk.config import ConcentrationRisk, RiskEngineConfig
from capital_engine.risk.models import RiskiestAsset


def find_riskiest_asset(
    positions: Sequence[AllocatedPosition],
    default_volatility: float = 20.0,
) -> RiskiestAsset:
    """Position contributing the most volatility times weight."""
    if not positions:
        return RiskiestAsset()
    riskiest = max(
        positions,
        key=lambda p: p.asset.volatility_or(default_volatility) * p.weight,
    )
    return RiskiestAsset(
        ticker=riskiest.ticker,
        name=riskiest.asset.name,
        volatility=riskiest.asset.volatility_or(default_volatility),
        weight=riskiest.weight,
    )


def concentration_risk(
    positions: Sequence[AllocatedPosition],
    config: RiskEngineConfig,
) -> ConcentrationRisk:
    if not positions:
        return ConcentrationRisk.NA
    top_weight = max(p.weight for p in positions)
    if top_weight > config.concentration_high:
        return ConcentrationRisk.HIGH
    if top_weight > config.concentration_medium:
        return ConcentrationRisk.MEDIUM
    return ConcentrationRisk.LOW


def diversification_score(
    correlation: Optional[CorrelationResult],
    config: RiskEngineConfig,
) -> float:
    """100 minus the average pairwise correlation in percent."""
    if correlation is None:
        return config.neutral_diversification_score
    return 100.0 - correlation.stats.average * 100.0
