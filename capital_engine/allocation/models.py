"""Allocation Data Models.

Immutable result values produced by the allocation engine.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from capital_engine.allocation.config import AllocationMethod
from capital_engine.errors import DegradedResultWarning
from capital_engine.models import AllocatedPosition


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MarginalRisk:
    """Share of portfolio volatility attributed to one position (percent)."""
    ticker: str
    contribution: float


@dataclass(frozen=True)
class PortfolioRiskEstimate:
    """Constant-correlation risk approximation of an allocation.

    Volatilities and drawdowns are in percent. ``concentration`` is the
    Herfindahl index on decimal weights.
    """

    portfolio_volatility: float = 0.0
    weighted_average_volatility: float = 0.0
    diversification_ratio: float = 1.0
    concentration: float = 0.0
    effective_n_assets: float = 0.0
    estimated_max_drawdown: float = 0.0
    marginal_risk: tuple[MarginalRisk, ...] = ()

    @property
    def concentration_pct(self) -> float:
        return self.concentration * 100.0

    def to_dict(self) -> dict:
        return {
            "portfolio_volatility": round(self.portfolio_volatility, 2),
            "weighted_average_volatility": round(self.weighted_average_volatility, 2),
            "diversification_ratio": round(self.diversification_ratio, 2),
            "effective_n_assets": round(self.effective_n_assets, 1),
            "concentration": round(self.concentration_pct, 2),
            "estimated_max_drawdown": round(self.estimated_max_drawdown, 2),
            "marginal_risk": [
                {"ticker": m.ticker, "contribution": round(m.contribution, 2)}
                for m in self.marginal_risk
            ],
        }


@dataclass(frozen=True)
class PortfolioAllocation:
    """Normalized capital allocation with its risk estimate."""

    positions: tuple[AllocatedPosition, ...]
    method: AllocationMethod
    risk: PortfolioRiskEstimate
    timestamp: datetime = field(default_factory=_utc_now)
    warnings: tuple[DegradedResultWarning, ...] = ()

    @property
    def n_assets(self) -> int:
        return len(self.positions)

    @property
    def weights(self) -> dict[str, float]:
        return {p.ticker: p.weight for p in self.positions}

    @property
    def total_weight(self) -> float:
        return float(sum(p.weight for p in self.positions))

    def get(self, ticker: str) -> AllocatedPosition:
        for position in self.positions:
            if position.ticker == ticker:
                return position
        raise KeyError(ticker)

    def to_dict(self) -> dict:
        return {
            "method": self.method.value,
            "n_assets": self.n_assets,
            "timestamp": self.timestamp.isoformat(),
            "allocation": [p.to_dict() for p in self.positions],
            "portfolio_risk": self.risk.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }
