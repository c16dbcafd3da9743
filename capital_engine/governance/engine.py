"""Dynamic governance engine.

Recalibrates investment limits from the detected market regime and
raises alerts when successive observations cross regime boundaries.

The engine is stateless: condition history is always supplied by the
caller, and ``monitor_market_conditions`` returns the observation the
caller may append to it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Sequence, Union

from capital_engine.governance.config import (
    DEFAULT_GOVERNANCE_CONFIG,
    AlertSeverity,
    AlertType,
    GovernanceConfig,
    RecommendationLevel,
)
from capital_engine.governance.models import (
    DynamicLimits,
    GovernanceAlert,
    MarketConditions,
    MarketObservation,
    MonitorResult,
    Multipliers,
    Recommendation,
    RiskProfileAdjustment,
    ScenarioResult,
)
from capital_engine.governance.regimes import (
    CorrelationRegime,
    Regime,
    VolatilityRegime,
    constant_correlation_matrix,
    detect_correlation_regime,
    detect_volatility_regime,
)
from capital_engine.governance.rules import (
    INVESTMENT_RULES,
    LIMIT_BOUNDS,
    InvestmentRules,
    clamp_limit,
    effective_profile,
    get_profile_rules,
)
from capital_engine.logging_config import log_performance

logger = logging.getLogger(__name__)

HistoryEntry = Union[MarketObservation, MarketConditions]


# ======================================================================
# Canonical scenarios
# ======================================================================

# (name, severity, conditions); severity 0 is the most benign
CANONICAL_SCENARIOS = (
    (
        "Normal Market",
        1,
        MarketConditions(
            portfolio_volatility=18.0,
            correlation_matrix=None,
            avg_liquidity=100_000,
            stress_level=0.1,
        ),
    ),
    (
        "High Volatility",
        2,
        MarketConditions(
            portfolio_volatility=32.0,
            correlation_matrix=None,
            avg_liquidity=80_000,
            stress_level=0.4,
        ),
    ),
    (
        "Market Crash (2008-style)",
        3,
        MarketConditions(
            portfolio_volatility=45.0,
            correlation_matrix=constant_correlation_matrix(10, 0.9),
            avg_liquidity=30_000,
            stress_level=0.9,
        ),
    ),
    (
        "Flash Crash",
        4,
        MarketConditions(
            portfolio_volatility=60.0,
            correlation_matrix=constant_correlation_matrix(10, 0.95),
            avg_liquidity=10_000,
            stress_level=1.0,
        ),
    ),
    (
        "Goldilocks (ideal)",
        0,
        MarketConditions(
            portfolio_volatility=12.0,
            correlation_matrix=constant_correlation_matrix(10, 0.3),
            avg_liquidity=200_000,
            stress_level=0.0,
        ),
    ),
)


_TIGHT_VOLATILITY = (VolatilityRegime.HIGH, VolatilityRegime.EXTREME)
_TIGHT_CORRELATION = (CorrelationRegime.HIGH, CorrelationRegime.EXTREME)


# ======================================================================
# DynamicGovernanceEngine
# ======================================================================


class DynamicGovernanceEngine:
    """Adapts investment limits to market regime.

    Usage::

        engine = DynamicGovernanceEngine()
        limits = engine.calculate_dynamic_limits(
            MarketConditions(portfolio_volatility=32, stress_level=0.4)
        )
        print(limits.rules.max_position_weight)
    """

    def __init__(self, config: Optional[GovernanceConfig] = None) -> None:
        self.config = config or DEFAULT_GOVERNANCE_CONFIG

    # ------------------------------------------------------------------
    # Limits
    # ------------------------------------------------------------------

    def _multipliers(
        self,
        conditions: MarketConditions,
        vol_regime: Regime,
        corr_regime: Regime,
    ) -> Multipliers:
        cfg = self.config
        low_liquidity = conditions.avg_liquidity < cfg.low_liquidity_threshold
        return Multipliers(
            volatility=vol_regime.multiplier,
            correlation=corr_regime.multiplier,
            stress=1.0 - conditions.stress_level * cfg.stress_weight,
            liquidity=cfg.low_liquidity_multiplier if low_liquidity else 1.0,
        )

    def _recommendations(
        self,
        vol_regime: Regime,
        corr_regime: Regime,
        stress_level: float,
    ) -> tuple[Recommendation, ...]:
        cfg = self.config
        recs = []

        if vol_regime.label is VolatilityRegime.EXTREME:
            recs.append(Recommendation(
                RecommendationLevel.CRITICAL,
                "Extreme volatility detected. Position limits significantly reduced. "
                "Consider reducing overall exposure.",
            ))
        elif vol_regime.label is VolatilityRegime.HIGH:
            recs.append(Recommendation(
                RecommendationLevel.WARNING,
                "High volatility regime. Position limits tightened. Monitor drawdowns closely.",
            ))

        if corr_regime.label is CorrelationRegime.EXTREME:
            recs.append(Recommendation(
                RecommendationLevel.CRITICAL,
                "Extreme correlation detected (crowding risk). Diversification benefits "
                "limited. Reduce concentration.",
            ))
        elif corr_regime.label is CorrelationRegime.HIGH:
            recs.append(Recommendation(
                RecommendationLevel.WARNING,
                "High correlation regime. Sector limits tightened to improve diversification.",
            ))

        if stress_level > cfg.critical_stress:
            recs.append(Recommendation(
                RecommendationLevel.CRITICAL,
                "High stress conditions. Liquidity requirements increased. "
                "Consider defensive positioning.",
            ))
        elif stress_level > cfg.high_stress:
            recs.append(Recommendation(
                RecommendationLevel.WARNING,
                "Moderate stress detected. Monitor liquidity and rebalancing thresholds.",
            ))

        if (
            vol_regime.label is VolatilityRegime.LOW
            and corr_regime.label is CorrelationRegime.LOW
        ):
            recs.append(Recommendation(
                RecommendationLevel.INFO,
                "Favorable market conditions. Limits slightly relaxed to capture opportunities.",
            ))

        return tuple(recs)

    def calculate_dynamic_limits(
        self,
        conditions: Optional[MarketConditions] = None,
        base_rules: Optional[InvestmentRules] = None,
    ) -> DynamicLimits:
        """Scale the baseline ceilings by the combined regime multiplier.

        combined = vol_mult * corr_mult * (1 - 0.3 * stress) * liquidity_mult

        Each ceiling limit is multiplied by ``combined`` and clamped into
        ``LIMIT_BOUNDS``, so even a flash crash leaves a usable floor.

        Args:
            conditions: Current market state; defaults to a calm market.
            base_rules: Baseline rules; defaults to INVESTMENT_RULES.

        Returns:
            DynamicLimits with the adjusted rules and their metadata.
        """
        conditions = conditions or MarketConditions()
        base = base_rules or INVESTMENT_RULES
        cfg = self.config

        vol_regime = detect_volatility_regime(conditions.portfolio_volatility)
        corr_regime = detect_correlation_regime(conditions.resolved_correlation())
        multipliers = self._multipliers(conditions, vol_regime, corr_regime)
        combined = multipliers.combined

        changes = {
            name: clamp_limit(name, getattr(base, name) * combined)
            for name in LIMIT_BOUNDS
        }

        if vol_regime.label in _TIGHT_VOLATILITY:
            changes["rebalance_threshold"] = base.rebalance_threshold * cfg.rebalance_tightening
        if corr_regime.label in _TIGHT_CORRELATION:
            changes["max_pairwise_correlation"] = min(
                base.max_pairwise_correlation, cfg.crowded_pairwise_correlation
            )
        if conditions.stress_level > cfg.high_stress:
            changes["min_daily_volume"] = base.min_daily_volume * cfg.stressed_volume_multiplier

        rules = replace(base, **changes)

        limits = DynamicLimits(
            rules=rules,
            base_rules=base,
            volatility_regime=vol_regime,
            correlation_regime=corr_regime,
            multipliers=multipliers,
            stress_level=conditions.stress_level,
            low_liquidity=multipliers.liquidity < 1.0,
            recommendations=self._recommendations(vol_regime, corr_regime, conditions.stress_level),
        )

        logger.debug(
            "Dynamic limits: %s / %s, combined=%.3f, max_position=%.3f",
            vol_regime.name,
            corr_regime.name,
            combined,
            rules.max_position_weight,
        )
        return limits

    # ------------------------------------------------------------------
    # Scenarios and profiles
    # ------------------------------------------------------------------

    @log_performance()
    def stress_test_dynamic_limits(
        self,
        base_rules: Optional[InvestmentRules] = None,
    ) -> list[ScenarioResult]:
        """Dynamic limits under the five canonical scenarios.

        The correlation matrices are deterministic, so repeated calls give
        identical results. Each result carries the scenario's severity rank.
        """
        return [
            ScenarioResult(
                scenario=name,
                severity=severity,
                conditions=conditions,
                limits=self.calculate_dynamic_limits(conditions, base_rules),
            )
            for name, severity, conditions in CANONICAL_SCENARIOS
        ]

    def adjust_risk_profile(
        self,
        profile_name: str,
        conditions: Optional[MarketConditions] = None,
    ) -> RiskProfileAdjustment:
        """Apply dynamic limits on top of a named risk profile.

        Unknown profile names fall back to the baseline rules.
        """
        limits = self.calculate_dynamic_limits(conditions, get_profile_rules(profile_name))
        return RiskProfileAdjustment(
            original_profile=profile_name,
            adjusted_rules=limits.rules,
            limits=limits,
            effective_profile=effective_profile(limits.rules),
        )

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def observe(self, conditions: MarketConditions) -> MarketObservation:
        """Classify conditions into a history entry."""
        limits = self.calculate_dynamic_limits(conditions)
        return self._observation(conditions, limits)

    @staticmethod
    def _observation(conditions: MarketConditions, limits: DynamicLimits) -> MarketObservation:
        return MarketObservation(
            conditions=conditions,
            volatility_regime=limits.volatility_regime,
            correlation_regime=limits.correlation_regime,
            max_position_weight=limits.rules.max_position_weight,
        )

    def _as_observation(self, entry: HistoryEntry) -> MarketObservation:
        if isinstance(entry, MarketObservation):
            return entry
        return self.observe(entry)

    def monitor_market_conditions(
        self,
        current: MarketConditions,
        history: Sequence[HistoryEntry] = (),
    ) -> MonitorResult:
        """Compare current conditions with the latest history entry.

        Alerts:
            REGIME_CHANGE / HIGH: volatility regime label changed.
            REGIME_CHANGE / MEDIUM: correlation regime label changed.
            LIMIT_REDUCTION / HIGH: max position weight is more than 20%
                below the baseline and tighter than at the last observation.

        An empty history or unchanged conditions yield no alerts.
        """
        limits = self.calculate_dynamic_limits(current)
        observation = self._observation(current, limits)
        alerts: list[GovernanceAlert] = []

        if history:
            previous = self._as_observation(history[-1])

            if previous.volatility_regime.label != observation.volatility_regime.label:
                alerts.append(GovernanceAlert(
                    alert_type=AlertType.REGIME_CHANGE,
                    severity=AlertSeverity.HIGH,
                    message=(
                        f"Volatility regime changed: {previous.volatility_regime.name} -> "
                        f"{observation.volatility_regime.name}"
                    ),
                    action="Review position sizes and rebalancing thresholds",
                ))

            if previous.correlation_regime.label != observation.correlation_regime.label:
                alerts.append(GovernanceAlert(
                    alert_type=AlertType.REGIME_CHANGE,
                    severity=AlertSeverity.MEDIUM,
                    message=(
                        f"Correlation regime changed: {previous.correlation_regime.name} -> "
                        f"{observation.correlation_regime.name}"
                    ),
                    action="Review sector diversification",
                ))

            baseline = INVESTMENT_RULES.max_position_weight
            reduction = (baseline - observation.max_position_weight) / baseline * 100.0
            tightened = observation.max_position_weight < previous.max_position_weight
            if reduction > self.config.limit_reduction_alert_pct and tightened:
                alerts.append(GovernanceAlert(
                    alert_type=AlertType.LIMIT_REDUCTION,
                    severity=AlertSeverity.HIGH,
                    message=f"Position limits reduced by {reduction:.0f}%",
                    action="Rebalance portfolio to meet new limits",
                ))

        for alert in alerts:
            logger.warning("Governance alert [%s/%s]: %s", alert.alert_type.value, alert.severity.value, alert.message)

        return MonitorResult(
            current_limits=limits,
            alerts=tuple(alerts),
            observation=observation,
        )
