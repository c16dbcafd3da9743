"""Weight Construction Policies.

Each policy turns the selected assets into raw (normalized, unclipped)
weights. ``clip_and_normalize`` is the single bounding step shared by
every policy.
"""

import logging
from typing import Callable, Sequence

import numpy as np

from capital_engine.allocation.config import AllocationConfig, AllocationMethod
from capital_engine.models import Asset

logger = logging.getLogger(__name__)

_EPS = 1e-9
_BISECTION_STEPS = 200
_ZERO_WEIGHT_FLOOR = 1e-12


def _normalize(weights: np.ndarray) -> np.ndarray:
    total = float(np.sum(weights))
    if total <= 0.0:
        return np.full(weights.size, 1.0 / weights.size)
    if abs(total - 1.0) <= 1e-12:
        return weights
    return weights / total


def volatilities(assets: Sequence[Asset], default: float) -> np.ndarray:
    """Annualized volatilities in percent, substituting *default* when missing."""
    return np.array([a.volatility_or(default) for a in assets], dtype=float)


def scores(assets: Sequence[Asset]) -> np.ndarray:
    return np.array([float(a.score) for a in assets], dtype=float)


# =============================================================================
# Raw weight policies
# =============================================================================

def equal_weights(assets: Sequence[Asset], config: AllocationConfig) -> np.ndarray:
    """w = 1/n."""
    n = len(assets)
    return np.ones(n) / n


def score_weights(assets: Sequence[Asset], config: AllocationConfig) -> np.ndarray:
    """Weights proportional to quality score; all-zero scores fall back to equal."""
    return _normalize(scores(assets) / 100.0)


def erc_weights(assets: Sequence[Asset], config: AllocationConfig) -> np.ndarray:
    """Inverse-volatility weights.

    Approximates equal risk contribution while ignoring cross-asset
    covariance; this is not a full risk-parity solve.
    """
    vols = volatilities(assets, config.default_volatility)
    return _normalize(1.0 / vols)


def volatility_target_weights(assets: Sequence[Asset], config: AllocationConfig) -> np.ndarray:
    """w = (1/n) * (target/vol_i) * (target/mean_vol).

    The asset-level factor scales each name toward the target; the
    portfolio-level factor scales the whole book by how far the average
    volatility sits from the target. Normalization happens in the shared
    clip step, so only the relative shape survives.
    """
    vols = volatilities(assets, config.default_volatility)
    n = len(assets)
    target = config.target_volatility
    scaling = target / float(np.mean(vols))
    return (np.ones(n) / n) * (target / vols) * scaling


def hybrid_weights(assets: Sequence[Asset], config: AllocationConfig) -> np.ndarray:
    """Arithmetic mean of the ERC and score-weighted raw weights."""
    return 0.5 * erc_weights(assets, config) + 0.5 * score_weights(assets, config)


WEIGHT_POLICIES: dict[AllocationMethod, Callable[[Sequence[Asset], AllocationConfig], np.ndarray]] = {
    AllocationMethod.EQUAL_WEIGHT: equal_weights,
    AllocationMethod.SCORE_WEIGHTED: score_weights,
    AllocationMethod.ERC: erc_weights,
    AllocationMethod.VOLATILITY_TARGET: volatility_target_weights,
    AllocationMethod.HYBRID: hybrid_weights,
}


# =============================================================================
# Shared bounding step
# =============================================================================

def bounds_feasible(n: int, min_weight: float, max_weight: float) -> bool:
    """True when n weights inside [min, max] can sum to one."""
    return n * min_weight <= 1.0 + _EPS and n * max_weight >= 1.0 - _EPS


def clip_and_normalize(
    raw: np.ndarray,
    min_weight: float,
    max_weight: float,
) -> tuple[np.ndarray, bool]:
    """Clamp weights into [min_weight, max_weight] and rescale to sum to one.

    Weights already inside the bounds are only normalized. Otherwise the
    result is ``clip(c * w, min_weight, max_weight)`` with the scale ``c``
    found by bisection so the clipped weights sum to one. Names pinned at
    a bound stay there and the rest keep their relative proportions.

    Returns:
        (weights, feasible) where feasible is False when the bounds cannot
        hold for this many names; the weights are then clipped once and
        renormalized, which may leave some outside the range.
    """
    weights = _normalize(np.asarray(raw, dtype=float))
    n = weights.size

    inside = (weights >= min_weight - _EPS) & (weights <= max_weight + _EPS)
    if np.all(inside):
        return weights, True

    if not bounds_feasible(n, min_weight, max_weight):
        logger.warning(
            "Position bounds [%.4f, %.4f] infeasible for %d assets; clipping once",
            min_weight,
            max_weight,
            n,
        )
        return _normalize(np.clip(weights, min_weight, max_weight)), False

    # sum(clip(c * w)) is non-decreasing in c, from n*min at c=0 to n*max
    shape = np.maximum(weights, _ZERO_WEIGHT_FLOOR)
    lo, hi = 0.0, max_weight / float(np.min(shape))
    for _ in range(_BISECTION_STEPS):
        mid = 0.5 * (lo + hi)
        if float(np.sum(np.clip(mid * shape, min_weight, max_weight))) < 1.0:
            lo = mid
        else:
            hi = mid

    return _normalize(np.clip(hi * shape, min_weight, max_weight)), True
