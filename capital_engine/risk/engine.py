"""Risk Engine.

Fitted-matrix portfolio risk: shrinkage correlation, parametric VaR and
CVaR, uniform-drop stress tests and the composite risk report.

VaR and CVaR never raise for bad inputs; they return results with
``error`` set so that batch runs over many portfolios keep going.
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np

from capital_engine.allocation.models import PortfolioAllocation
from capital_engine.correlation.estimator import CorrelationEstimator
from capital_engine.correlation.models import CorrelationResult
from capital_engine.errors import CapitalEngineError, ConfigurationError
from capital_engine.logging_config import log_performance
from capital_engine.models import AllocatedPosition, Asset, positions_of
from capital_engine.risk.config import DEFAULT_RISK_ENGINE_CONFIG, RiskEngineConfig
from capital_engine.risk.models import (
    CVaRResult,
    HistoricalVaR,
    PortfolioMetrics,
    RiskReport,
    StressTestResult,
    VaRResult,
)
from capital_engine.risk.report import (
    concentration_risk,
    diversification_score,
    find_riskiest_asset,
)
from capital_engine.risk.stress_test import run_stress_tests
from capital_engine.risk.var import expected_shortfall, historical_var, parametric_var

logger = logging.getLogger(__name__)

Portfolio = Union[PortfolioAllocation, Sequence[AllocatedPosition]]


def _assets_of(items) -> list[Asset]:
    return [item.asset if isinstance(item, AllocatedPosition) else item for item in positions_of(items)]


class RiskEngine:
    """Computes portfolio risk from allocated positions.

    Example:
        engine = RiskEngine()
        var = engine.calculate_portfolio_var(allocation, capital=100_000)
        if var.ok:
            print(f"1-day 95% VaR: {var.diversified_var:,.2f}")
        report = engine.generate_risk_report(allocation, capital=100_000)
    """

    def __init__(self, config: Optional[RiskEngineConfig] = None):
        self.config = config or DEFAULT_RISK_ENGINE_CONFIG
        self.estimator = CorrelationEstimator(self.config.correlation)

    # =========================================================================
    # Correlation
    # =========================================================================

    def calculate_correlation_matrix(self, portfolio) -> CorrelationResult:
        """Shrinkage correlation of the portfolio's assets.

        Accepts an allocation, a sequence of positions or bare assets.

        Raises:
            InsufficientDataError: Fewer than the required common observations.
        """
        return self.estimator.estimate(_assets_of(portfolio))

    # =========================================================================
    # VaR / CVaR
    # =========================================================================

    def _check_inputs(self, positions: list[AllocatedPosition], capital: float, confidence: float) -> None:
        if len(positions) < self.config.min_assets:
            raise ConfigurationError(
                f"Portfolio VaR requires at least {self.config.min_assets} assets, got {len(positions)}"
            )
        if not 0.5 < confidence < 1:
            raise ConfigurationError(f"confidence must be between 0.5 and 1, got {confidence}")
        if capital < 0:
            raise ConfigurationError(f"capital must be non-negative, got {capital}")

    def _fitted(
        self,
        positions: list[AllocatedPosition],
        capital: float,
        confidence: float,
        correlation: Optional[CorrelationResult],
    ) -> CorrelationResult:
        self._check_inputs(positions, capital, confidence)
        if correlation is None:
            correlation = self.calculate_correlation_matrix(positions)
        elif list(correlation.tickers) != [p.ticker for p in positions]:
            raise ConfigurationError("Correlation estimate does not match the portfolio's tickers")
        return correlation

    def calculate_portfolio_var(
        self,
        portfolio: Portfolio,
        capital: float,
        confidence: Optional[float] = None,
        correlation: Optional[CorrelationResult] = None,
    ) -> VaRResult:
        """One-day parametric VaR from the shrinkage covariance.

        Pass ``correlation`` to reuse an estimate of the same positions.

        Returns:
            VaRResult; ``error`` is set when the portfolio has fewer than two
            assets, too little common history or invalid data.
        """
        confidence = self.config.confidence if confidence is None else confidence
        positions = positions_of(portfolio)
        try:
            correlation = self._fitted(positions, capital, confidence, correlation)
            weights = np.array([p.weight for p in positions], dtype=float)
            return parametric_var(weights, correlation, capital, confidence, self.config)
        except (CapitalEngineError, ValueError) as e:
            logger.error("VaR calculation failed: %s", e)
            return VaRResult.failed(str(e), confidence=confidence, capital=capital)

    def calculate_portfolio_cvar(
        self,
        portfolio: Portfolio,
        capital: float,
        confidence: Optional[float] = None,
        correlation: Optional[CorrelationResult] = None,
    ) -> CVaRResult:
        """Expected shortfall; never below the VaR for the same inputs."""
        confidence = self.config.confidence if confidence is None else confidence
        positions = positions_of(portfolio)
        try:
            correlation = self._fitted(positions, capital, confidence, correlation)
            weights = np.array([p.weight for p in positions], dtype=float)
            return expected_shortfall(weights, correlation, capital, confidence)
        except (CapitalEngineError, ValueError) as e:
            logger.error("CVaR calculation failed: %s", e)
            return CVaRResult.failed(str(e), confidence=confidence, capital=capital)

    def calculate_portfolio_metrics(
        self,
        portfolio: Portfolio,
        capital: float,
        confidence: Optional[float] = None,
    ) -> PortfolioMetrics:
        """VaR, CVaR and correlation in one call."""
        confidence = self.config.confidence if confidence is None else confidence
        positions = positions_of(portfolio)
        correlation, error = self._estimate_or_error(positions)
        var, cvar = self._tail_risk(positions, capital, confidence, correlation, error)
        return PortfolioMetrics(var=var, cvar=cvar, correlation=correlation, correlation_error=error)

    def _estimate_or_error(self, positions) -> tuple[Optional[CorrelationResult], Optional[str]]:
        try:
            return self.calculate_correlation_matrix(positions), None
        except (CapitalEngineError, ValueError) as e:
            logger.warning("Correlation unavailable: %s", e)
            return None, str(e)

    def _tail_risk(
        self,
        positions: list[AllocatedPosition],
        capital: float,
        confidence: float,
        correlation: Optional[CorrelationResult],
        error: Optional[str],
    ) -> tuple[VaRResult, CVaRResult]:
        """VaR and CVaR from one correlation estimate, or failed results."""
        if correlation is not None:
            return (
                self.calculate_portfolio_var(positions, capital, confidence, correlation=correlation),
                self.calculate_portfolio_cvar(positions, capital, confidence, correlation=correlation),
            )
        try:
            self._check_inputs(positions, capital, confidence)
        except ConfigurationError as e:
            error = str(e)
        logger.error("VaR calculation failed: %s", error)
        return (
            VaRResult.failed(error, confidence=confidence, capital=capital),
            CVaRResult.failed(error, confidence=confidence, capital=capital),
        )

    def historical_var(
        self,
        asset: Asset,
        confidence: Optional[float] = None,
        capital: float = 10_000.0,
    ) -> HistoricalVaR:
        """Single-asset historical VaR from its own price history."""
        confidence = self.config.confidence if confidence is None else confidence
        return historical_var(
            asset.prices,
            ticker=asset.ticker,
            confidence=confidence,
            capital=capital,
            min_observations=self.config.correlation.min_observations,
        )

    # =========================================================================
    # Stress Testing
    # =========================================================================

    def run_stress_test(self, portfolio: Portfolio, capital: float) -> list[StressTestResult]:
        """Apply the four fixed market-drop scenarios.

        Losses grow and remaining capital shrinks with scenario index.
        """
        return run_stress_tests(positions_of(portfolio), capital, self.config)

    # =========================================================================
    # Report
    # =========================================================================

    @log_performance()
    def generate_risk_report(
        self,
        portfolio: Portfolio,
        capital: float,
        confidence: Optional[float] = None,
    ) -> RiskReport:
        """Compose VaR, CVaR, correlation, stress tests and position metrics.

        The correlation is estimated once and shared by VaR and CVaR.
        Never raises. Any failure during assembly yields
        ``RiskReport.fallback`` with the message in ``portfolio_var.error``.
        """
        confidence = self.config.confidence if confidence is None else confidence
        try:
            positions = positions_of(portfolio)
            if not positions:
                raise ConfigurationError("Risk report requires at least one position")

            correlation, error = self._estimate_or_error(positions)
            var, cvar = self._tail_risk(positions, capital, confidence, correlation, error)

            warnings = list(var.warnings)
            if correlation is not None:
                warnings.extend(w for w in correlation.warnings if w not in warnings)

            report = RiskReport(
                portfolio_var=var,
                portfolio_cvar=cvar,
                correlation=correlation,
                stress_tests=self.run_stress_test(positions, capital),
                riskiest_asset=find_riskiest_asset(positions, self.config.default_volatility),
                concentration_risk=concentration_risk(positions, self.config),
                diversification_score=diversification_score(correlation, self.config),
                distance_matrix=correlation.distance if correlation is not None else None,
                warnings=tuple(warnings),
            )
        except Exception as e:
            logger.exception("Risk report failed: %s", e)
            return RiskReport.fallback(str(e), capital=capital)

        logger.info(
            "Risk report: %d positions, VaR=%.2f, concentration=%s",
            len(positions),
            report.portfolio_var.diversified_var,
            report.concentration_risk.value,
        )
        return report
