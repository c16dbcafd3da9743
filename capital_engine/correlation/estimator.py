"""Shrinkage Correlation Estimator.

Aligns price histories, converts them to log returns and builds a
covariance / correlation / distance matrix triple. Small samples are
shrunk toward a constant-correlation target.
"""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from capital_engine.correlation.config import (
    DEFAULT_CORRELATION_CONFIG,
    AlignmentMode,
    CorrelationConfig,
)
from capital_engine.correlation.models import (
    AlignedReturns,
    CorrelationResult,
    CorrelationStats,
    NearIdenticalPair,
)
from capital_engine.errors import (
    ConfigurationError,
    DegradedResultWarning,
    InsufficientDataError,
)
from capital_engine.models import Asset

logger = logging.getLogger(__name__)


def off_diagonal(values: np.ndarray) -> np.ndarray:
    """Flattened off-diagonal entries of a square matrix."""
    n = values.shape[0]
    if n < 2:
        return np.array([], dtype=float)
    return values[~np.eye(n, dtype=bool)]


def covariance_to_correlation(cov: np.ndarray) -> np.ndarray:
    """Correlation from covariance; zero-variance rows get 0 off-diagonal."""
    std = np.sqrt(np.clip(np.diag(cov), 0.0, None))
    den = np.outer(std, std)
    corr = np.divide(cov, den, out=np.zeros_like(cov), where=den > 0)
    corr = np.clip(corr, -1.0, 1.0)
    np.fill_diagonal(corr, 1.0)
    return corr


def shrinkage_intensity(n_obs: int, n_assets: int) -> float:
    """delta = (N + 1) / (T * N), clamped to [0, 1]."""
    if n_obs <= 0 or n_assets <= 0:
        return 1.0
    return float(min(1.0, max(0.0, (n_assets + 1) / (n_obs * n_assets))))


def shrink_covariance(cov: np.ndarray, n_obs: int) -> tuple[np.ndarray, float]:
    """Blend the sample covariance with a constant-correlation target.

    The target keeps each asset's own variance and sets every covariance
    to avg_rho * s_i * s_j, where avg_rho is the mean sample correlation.

    Returns:
        (shrunk covariance, shrinkage intensity)
    """
    n_assets = cov.shape[0]
    delta = shrinkage_intensity(n_obs, n_assets)

    std = np.sqrt(np.clip(np.diag(cov), 0.0, None))
    offdiag = off_diagonal(covariance_to_correlation(cov))
    avg_rho = float(np.mean(offdiag)) if offdiag.size else 0.0

    target = avg_rho * np.outer(std, std)
    np.fill_diagonal(target, np.diag(cov))

    return delta * target + (1.0 - delta) * cov, delta


class CorrelationEstimator:
    """Estimates correlation structure from asset price histories.

    Example:
        estimator = CorrelationEstimator()
        result = estimator.estimate(assets)
        print(result.stats.average, result.shrinkage)
    """

    def __init__(self, config: Optional[CorrelationConfig] = None):
        self.config = config or DEFAULT_CORRELATION_CONFIG

    def align(self, assets: Sequence[Asset]) -> AlignedReturns:
        """Line up price series and compute log returns.

        Dated series are inner-joined on common dates. If any series lacks
        a date index, the trailing ``min(len)`` prices are matched by
        position instead and the result carries a warning.

        Raises:
            ConfigurationError: If no assets are supplied.
            InsufficientDataError: Fewer common prices than min_observations.
        """
        if not assets:
            raise ConfigurationError("Correlation requires at least one asset")

        tickers = [a.ticker for a in assets]
        warnings: list[DegradedResultWarning] = []

        if all(a.has_dates for a in assets):
            mode = AlignmentMode.DATE
            prices = pd.concat([a.prices for a in assets], axis=1, join="inner")
            prices.columns = tickers
            prices = prices.sort_index()
        else:
            mode = AlignmentMode.POSITIONAL
            length = min(a.n_prices for a in assets)
            prices = pd.DataFrame(
                {t: a.prices.to_numpy()[a.n_prices - length:] for t, a in zip(tickers, assets)}
            )
            prices.columns = tickers
            warnings.append(DegradedResultWarning(
                "positional_alignment",
                "Price series lack dates; aligned by position, which is less precise",
            ))

        n_prices = len(prices)
        required = self.config.min_observations
        if n_prices < required:
            raise InsufficientDataError(
                f"Only {n_prices} common observations across {len(assets)} assets "
                f"({required} required)",
                observations=n_prices,
                required=required,
            )

        returns = np.log(prices / prices.shift(1)).iloc[1:]

        for warning in warnings:
            logger.warning("Alignment degraded: %s", warning.message, extra={"warning_code": warning.code})
        logger.debug("Aligned %d assets on %d %s observations", len(assets), n_prices, mode.value)

        return AlignedReturns(
            returns=returns,
            mode=mode,
            n_prices=n_prices,
            warnings=tuple(warnings),
        )

    def estimate_from_returns(self, aligned: AlignedReturns) -> CorrelationResult:
        """Build covariance, correlation and distance matrices from aligned returns."""
        tickers = aligned.tickers
        values = aligned.returns.to_numpy(dtype=float)
        n_obs, n_assets = values.shape
        warnings = list(aligned.warnings)

        if n_obs < 2:
            raise InsufficientDataError(
                "At least two return observations are required",
                observations=n_obs,
                required=2,
            )

        cov = np.atleast_2d(np.cov(values, rowvar=False, ddof=1))

        if np.any(np.diag(cov) < 0):
            warnings.append(DegradedResultWarning(
                "negative_variance",
                "Covariance matrix has a negative diagonal entry",
            ))

        delta = 0.0
        if n_obs < self.config.shrinkage_window:
            cov, delta = shrink_covariance(cov, n_obs)
            logger.info(
                "Shrinkage applied: delta=%.3f (T=%d, N=%d)", delta, n_obs, n_assets
            )

        corr = covariance_to_correlation(cov)

        asymmetry = float(np.max(np.abs(corr - corr.T))) if n_assets > 1 else 0.0
        if asymmetry > self.config.symmetry_tolerance:
            warnings.append(DegradedResultWarning(
                "asymmetric_matrix",
                f"Correlation matrix asymmetric by {asymmetry:.2e}",
            ))

        distance = np.sqrt(np.clip(2.0 * (1.0 - corr), 0.0, None))

        near_identical = []
        threshold = self.config.singularity_threshold
        for i in range(n_assets):
            for j in range(i + 1, n_assets):
                if abs(corr[i, j]) > threshold:
                    near_identical.append(NearIdenticalPair(tickers[i], tickers[j], float(corr[i, j])))
        if near_identical:
            names = ", ".join(f"{p.ticker_a}/{p.ticker_b}" for p in near_identical)
            warnings.append(DegradedResultWarning(
                "near_identical_assets",
                f"Near-perfect correlation between {names}",
            ))

        flat = off_diagonal(corr)
        stats = CorrelationStats(
            average=float(np.mean(flat)) if flat.size else 0.0,
            max=float(np.max(flat)) if flat.size else 0.0,
            min=float(np.min(flat)) if flat.size else 0.0,
        )

        for warning in warnings[len(aligned.warnings):]:
            logger.warning("Correlation degraded: %s", warning.message, extra={"warning_code": warning.code})

        return CorrelationResult(
            correlation=pd.DataFrame(corr, index=tickers, columns=tickers),
            covariance=pd.DataFrame(cov, index=tickers, columns=tickers),
            distance=pd.DataFrame(distance, index=tickers, columns=tickers),
            stats=stats,
            n_observations=n_obs,
            alignment=aligned.mode,
            shrinkage=delta,
            near_identical_pairs=tuple(near_identical),
            warnings=tuple(warnings),
            returns=aligned.returns,
        )

    def estimate(self, assets: Sequence[Asset]) -> CorrelationResult:
        """Align the assets and estimate their correlation structure.

        Raises:
            InsufficientDataError: Fewer common observations than required.
        """
        return self.estimate_from_returns(self.align(assets))
