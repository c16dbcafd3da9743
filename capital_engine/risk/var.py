"""Parametric VaR and Expected Shortfall.

Portfolio variance comes from the shrinkage covariance of daily log
returns, so VaR here is a one-day figure. Annualized volatility is
reported alongside, with the square-root-of-time rule corrected for
lag-1 autocorrelation when it is material.
"""

import logging

import numpy as np
import pandas as pd
from scipy.stats import norm

from capital_engine.correlation.models import CorrelationResult
from capital_engine.risk.config import RiskEngineConfig
from capital_engine.risk.models import CVaRResult, HistoricalVaR, VaRResult

logger = logging.getLogger(__name__)


def lag_autocorrelation(returns: np.ndarray, lag: int = 1, min_obs: int = 10) -> float:
    """Sample autocorrelation at *lag*; 0.0 when the series is too short."""
    returns = np.asarray(returns, dtype=float)
    n = returns.size - lag
    if n < min_obs:
        return 0.0
    centered = returns - returns.mean()
    den = float(np.sum(centered ** 2))
    if den == 0:
        return 0.0
    return float(np.sum(centered[:n] * centered[lag:]) / den)


def annualization_factor(rho: float, trading_days: int, threshold: float) -> float:
    """sqrt(T), or sqrt(T (1 + 2 rho)) when |rho| exceeds threshold."""
    if abs(rho) > threshold:
        return float(np.sqrt(trading_days * max(1.0 + 2.0 * rho, 0.0)))
    return float(np.sqrt(trading_days))


def portfolio_returns(returns: pd.DataFrame, weights: np.ndarray) -> np.ndarray:
    return returns.to_numpy(dtype=float) @ weights


def parametric_var(
    weights: np.ndarray,
    correlation: CorrelationResult,
    capital: float,
    confidence: float,
    config: RiskEngineConfig,
) -> VaRResult:
    """Diversified and undiversified one-day parametric VaR.

    Args:
        weights: Decimal weights aligned with ``correlation.tickers``.
        correlation: Estimate holding the shrunk daily covariance.
        capital: Portfolio value.
        confidence: VaR confidence level.
        config: Engine configuration.

    Returns:
        VaRResult with monetary values as positive losses.
    """
    cov = correlation.covariance.to_numpy()
    variance = float(weights @ cov @ weights)
    daily_vol = float(np.sqrt(max(variance, 0.0)))

    rho = 0.0
    warnings = list(correlation.warnings)
    if correlation.returns is not None:
        rho = lag_autocorrelation(
            portfolio_returns(correlation.returns, weights),
            min_obs=config.min_autocorrelation_obs,
        )
    scale = annualization_factor(rho, config.trading_days, config.autocorrelation_threshold)
    if abs(rho) > config.autocorrelation_threshold:
        logger.info("Autocorrelation detected (rho=%.3f); adjusted annualization", rho)

    z = float(norm.ppf(confidence))
    diversified = z * daily_vol * capital
    undiversified = z * float(np.sum(correlation.std_devs * weights)) * capital
    benefit = (1.0 - diversified / undiversified) * 100.0 if undiversified > 0 else 0.0

    return VaRResult(
        confidence=confidence,
        capital=capital,
        diversified_var=diversified,
        undiversified_var=undiversified,
        diversification_benefit=benefit,
        daily_volatility=daily_vol * 100.0,
        portfolio_volatility=daily_vol * scale * 100.0,
        autocorrelation=rho,
        z_score=z,
        n_observations=correlation.n_observations,
        warnings=tuple(warnings),
    )


def expected_shortfall(
    weights: np.ndarray,
    correlation: CorrelationResult,
    capital: float,
    confidence: float,
) -> CVaRResult:
    """Expected loss beyond the VaR quantile.

    Computes both the normal expected shortfall sigma * phi(z) / (1 - c)
    and the mean of the realized tail of portfolio returns, reporting the
    larger. The normal figure always exceeds z * sigma, so the reported
    CVaR is never below the parametric VaR for the same inputs.
    """
    cov = correlation.covariance.to_numpy()
    daily_vol = float(np.sqrt(max(float(weights @ cov @ weights), 0.0)))
    z = float(norm.ppf(confidence))
    parametric = daily_vol * float(norm.pdf(z)) / (1.0 - confidence) * capital

    historical = 0.0
    tail_size = 0
    if correlation.returns is not None and len(correlation.returns) > 0:
        realized = np.sort(portfolio_returns(correlation.returns, weights))
        index = int(np.floor((1.0 - confidence) * realized.size))
        tail = realized[: index + 1]
        tail_size = int(tail.size)
        historical = max(-float(np.mean(tail)) * capital, 0.0)

    return CVaRResult(
        confidence=confidence,
        capital=capital,
        cvar=max(parametric, historical),
        parametric_cvar=parametric,
        historical_cvar=historical,
        tail_observations=tail_size,
        warnings=correlation.warnings,
    )


def historical_var(
    prices: pd.Series,
    ticker: str = "",
    confidence: float = 0.95,
    capital: float = 10_000.0,
    min_observations: int = 30,
) -> HistoricalVaR:
    """Empirical quantile of one asset's daily log returns.

    Returns zeros when fewer than ``min_observations`` prices exist.
    """
    values = np.asarray(prices, dtype=float)
    if values.size < min_observations:
        return HistoricalVaR(ticker=ticker, confidence=confidence)

    returns = np.sort(np.diff(np.log(values)))
    index = int(np.floor((1.0 - confidence) * returns.size))
    quantile = float(returns[min(index, returns.size - 1)])

    return HistoricalVaR(
        ticker=ticker,
        confidence=confidence,
        var_pct=quantile * 100.0,
        var_value=quantile * capital,
    )
