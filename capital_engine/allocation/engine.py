"""Allocation Engine.

Converts scored assets into normalized portfolio weights and estimates
the resulting portfolio risk with a constant-correlation approximation.

The risk estimate here is a closed-form O(n^2) shortcut that
needs no fitted covariance matrix. The fitted-matrix path lives in
``capital_engine.risk`` and the two are kept separate.
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence, Union

import numpy as np

from capital_engine.allocation.config import (
    DEFAULT_ALLOCATION_CONFIG,
    DEFAULT_DRAWDOWN_PCT,
    DRAWDOWN_BY_SCORE,
    AllocationConfig,
    AllocationMethod,
)
from capital_engine.allocation.models import (
    MarginalRisk,
    PortfolioAllocation,
    PortfolioRiskEstimate,
)
from capital_engine.allocation.weights import (
    WEIGHT_POLICIES,
    clip_and_normalize,
    volatilities,
)
from capital_engine.errors import ConfigurationError, DegradedResultWarning
from capital_engine.logging_config import log_performance
from capital_engine.models import AllocatedPosition, Asset

logger = logging.getLogger(__name__)


def resolve_method(method: Union[AllocationMethod, str]) -> AllocationMethod:
    """Resolve a method name or enum member.

    Raises:
        ConfigurationError: If the name is not a known allocation method.
    """
    if isinstance(method, AllocationMethod):
        return method
    try:
        return AllocationMethod(str(method).strip().lower())
    except ValueError:
        valid = ", ".join(m.value for m in AllocationMethod)
        raise ConfigurationError(
            f"Unknown allocation method '{method}'. Valid methods: {valid}"
        ) from None


def drawdown_estimate(score: float) -> float:
    """Expected max drawdown (%) for an asset of the given score."""
    for threshold, drawdown in DRAWDOWN_BY_SCORE:
        if score > threshold:
            return drawdown
    return DEFAULT_DRAWDOWN_PCT


def compute_portfolio_risk(
    positions: Sequence[AllocatedPosition],
    average_correlation: float = 0.3,
    default_volatility: float = 20.0,
) -> PortfolioRiskEstimate:
    """Approximate portfolio risk assuming one correlation for every pair.

    portfolio_vol = sqrt(sum(w_i^2 s_i^2) + 2 rho sum_{i<j} w_i w_j s_i s_j)

    Args:
        positions: Allocated positions (weights as decimals).
        average_correlation: Constant pairwise correlation.
        default_volatility: Volatility (%) used for assets without one.

    Returns:
        PortfolioRiskEstimate in percent units.
    """
    if not positions:
        return PortfolioRiskEstimate()

    weights = np.array([p.weight for p in positions], dtype=float)
    vols = volatilities([p.asset for p in positions], default_volatility)
    weighted_vols = weights * vols

    # sum_{i<j} a_i a_j = ((sum a)^2 - sum a^2) / 2
    total = float(np.sum(weighted_vols))
    squares = float(np.sum(weighted_vols ** 2))
    cross = (total ** 2 - squares) / 2.0
    variance = squares + 2.0 * average_correlation * cross
    portfolio_vol = float(np.sqrt(max(variance, 0.0)))

    concentration = float(np.sum(weights ** 2))
    effective_n = 1.0 / concentration if concentration > 0 else 0.0

    drawdowns = np.array([drawdown_estimate(p.asset.score) for p in positions])
    estimated_dd = float(np.sum(weights * drawdowns))

    if portfolio_vol > 0:
        diversification_ratio = total / portfolio_vol
        shares = weighted_vols / portfolio_vol * 100.0
        share_total = float(np.sum(shares))
        if share_total > 0:
            shares = shares / share_total * 100.0
    else:
        diversification_ratio = 1.0
        shares = np.zeros(len(positions))

    marginal = tuple(
        MarginalRisk(ticker=p.ticker, contribution=float(s))
        for p, s in zip(positions, shares)
    )

    return PortfolioRiskEstimate(
        portfolio_volatility=portfolio_vol,
        weighted_average_volatility=total,
        diversification_ratio=float(diversification_ratio),
        concentration=concentration,
        effective_n_assets=effective_n,
        estimated_max_drawdown=estimated_dd,
        marginal_risk=marginal,
    )


def capital_recommendations(
    allocation: PortfolioAllocation,
    capital: float,
) -> PortfolioAllocation:
    """Return a copy of *allocation* with recommended capital per position."""
    if capital < 0:
        raise ConfigurationError(f"capital must be non-negative, got {capital}")
    positions = tuple(
        replace(p, recommended_capital=p.weight * capital)
        for p in allocation.positions
    )
    return replace(allocation, positions=positions)


class AllocationEngine:
    """Builds capital allocations from scored assets.

    Stateless: every call takes its full input and returns a fresh
    PortfolioAllocation, so one engine may be shared across threads.

    Example:
        engine = AllocationEngine()
        allocation = engine.allocate(assets, "hybrid", capital=100_000)
        print(allocation.weights)
    """

    def __init__(self, config: Optional[AllocationConfig] = None):
        self.config = config or DEFAULT_ALLOCATION_CONFIG

    @log_performance()
    def allocate(
        self,
        assets: Sequence[Asset],
        method: Union[AllocationMethod, str] = AllocationMethod.HYBRID,
        config: Optional[AllocationConfig] = None,
        capital: Optional[float] = None,
    ) -> PortfolioAllocation:
        """Allocate weights across assets using the chosen policy.

        Args:
            assets: Candidate assets, pre-ranked by the caller.
            method: Allocation method (enum or its string value).
            config: Overrides the engine config for this call.
            capital: When given, fills recommended_capital per position.

        Returns:
            PortfolioAllocation with positions in input order.

        Raises:
            ConfigurationError: Invalid config, unknown method or too few assets.
        """
        config = config or self.config
        errors = config.validate()
        if errors:
            raise ConfigurationError(
                "Invalid allocation config: " + "; ".join(errors),
                details=[{"issue": e} for e in errors],
            )

        selected = list(assets or [])[: config.max_assets_in_portfolio]
        required = max(config.min_assets_in_portfolio, 1)
        if len(selected) < required:
            raise ConfigurationError(
                f"Need at least {required} asset(s) to allocate, got {len(selected)}"
            )

        resolved = resolve_method(method)
        warnings: list[DegradedResultWarning] = []

        missing = [a.ticker for a in selected if a.volatility is None]
        if missing:
            warnings.append(DegradedResultWarning(
                "default_volatility",
                f"Volatility missing for {', '.join(missing)}; "
                f"assumed {config.default_volatility:.0f}%",
            ))

        raw = WEIGHT_POLICIES[resolved](selected, config)
        weights, feasible = clip_and_normalize(
            raw,
            config.min_position_weight,
            config.max_position_weight,
        )
        if not feasible:
            warnings.append(DegradedResultWarning(
                "infeasible_bounds",
                f"Position bounds [{config.min_position_weight:.2%}, "
                f"{config.max_position_weight:.2%}] cannot hold for "
                f"{len(selected)} assets; weights clipped once and renormalized",
            ))

        positions = tuple(
            AllocatedPosition(
                asset=asset,
                weight=float(w),
                recommended_capital=float(w) * capital if capital is not None else None,
            )
            for asset, w in zip(selected, weights)
        )

        risk = compute_portfolio_risk(
            positions,
            average_correlation=config.average_correlation,
            default_volatility=config.default_volatility,
        )

        for warning in warnings:
            logger.warning("Allocation degraded: %s", warning.message, extra={"warning_code": warning.code})

        logger.info(
            "Allocated %d assets via %s: vol=%.2f%%, effective_n=%.1f",
            len(positions),
            resolved.value,
            risk.portfolio_volatility,
            risk.effective_n_assets,
        )

        return PortfolioAllocation(
            positions=positions,
            method=resolved,
            risk=risk,
            warnings=tuple(warnings),
        )

    def compute_portfolio_risk(
        self,
        positions: Sequence[AllocatedPosition],
    ) -> PortfolioRiskEstimate:
        """Constant-correlation risk estimate using this engine's config."""
        return compute_portfolio_risk(
            positions,
            average_correlation=self.config.average_correlation,
            default_volatility=self.config.default_volatility,
        )
