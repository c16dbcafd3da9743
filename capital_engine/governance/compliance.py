"""Compliance checks against investment rules.

Validates allocated positions against a rule set and applies the
mechanical corrections (cap, drop, rebalance) a portfolio manager
would otherwise do by hand, plus a governance report summarizing both.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Optional

import numpy as np

from capital_engine.allocation.config import ALLOCATION_METHODS, AllocationMethod
from capital_engine.allocation.models import PortfolioAllocation
from capital_engine.allocation.weights import clip_and_normalize
from capital_engine.governance.config import AlertSeverity
from capital_engine.governance.rules import INVESTMENT_RULES, InvestmentRules
from capital_engine.models import AllocatedPosition, positions_of

logger = logging.getLogger(__name__)

_TOLERANCE = 1e-9
DEFAULT_VOLATILITY = 20.0


class ComplianceIssueType(str, Enum):
    MAX_POSITION = "MAX_POSITION"
    MIN_POSITION = "MIN_POSITION"
    TOP3_CONCENTRATION = "TOP3_CONCENTRATION"
    PORTFOLIO_VOLATILITY = "PORTFOLIO_VOLATILITY"
    LOW_LIQUIDITY = "LOW_LIQUIDITY"
    HIGH_RISK = "HIGH_RISK"


@dataclass(frozen=True)
class ComplianceIssue:
    issue_type: ComplianceIssueType
    severity: AlertSeverity
    message: str
    value: float
    limit: float
    ticker: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "type": self.issue_type.value,
            "severity": self.severity.value,
            "asset": self.ticker,
            "value": round(self.value, 4),
            "limit": self.limit,
            "message": self.message,
        }


@dataclass(frozen=True)
class ComplianceReport:
    violations: tuple[ComplianceIssue, ...] = ()
    warnings: tuple[ComplianceIssue, ...] = ()

    @property
    def compliant(self) -> bool:
        return not self.violations

    @property
    def summary(self) -> dict:
        return {
            "total_issues": len(self.violations) + len(self.warnings),
            "critical": sum(1 for v in self.violations if v.severity is AlertSeverity.HIGH),
            "warnings": len(self.warnings),
        }

    def to_dict(self) -> dict:
        return {
            "compliant": self.compliant,
            "violations": [v.to_dict() for v in self.violations],
            "warnings": [w.to_dict() for w in self.warnings],
            "summary": self.summary,
        }


@dataclass(frozen=True)
class Correction:
    action: str
    reason: str
    ticker: Optional[str] = None

    def to_dict(self) -> dict:
        return {"asset": self.ticker, "action": self.action, "reason": self.reason}


@dataclass(frozen=True)
class CorrectionResult:
    positions: tuple[AllocatedPosition, ...]
    corrections: tuple[Correction, ...] = field(default_factory=tuple)
    removed: int = 0

    @property
    def total_weight(self) -> float:
        return float(sum(p.weight for p in self.positions))


def validate_compliance(
    portfolio,
    rules: Optional[InvestmentRules] = None,
    portfolio_volatility: Optional[float] = None,
    daily_volumes: Optional[Mapping[str, float]] = None,
) -> ComplianceReport:
    """Check positions against concentration, volatility and liquidity rules.

    Args:
        portfolio: PortfolioAllocation or sequence of AllocatedPosition.
        rules: Rule set; defaults to INVESTMENT_RULES.
        portfolio_volatility: Annualized % to check against the cap, if known.
        daily_volumes: Average daily volume per ticker, if known.

    Returns:
        ComplianceReport; compliant when there are no violations.
    """
    rules = rules or INVESTMENT_RULES
    positions = positions_of(portfolio)
    violations: list[ComplianceIssue] = []
    warnings: list[ComplianceIssue] = []

    for p in positions:
        if p.weight > rules.max_position_weight + _TOLERANCE:
            violations.append(ComplianceIssue(
                ComplianceIssueType.MAX_POSITION,
                AlertSeverity.HIGH,
                f"{p.ticker} exceeds the maximum position weight",
                value=p.weight,
                limit=rules.max_position_weight,
                ticker=p.ticker,
            ))
        if p.weight < rules.min_position_weight - _TOLERANCE:
            warnings.append(ComplianceIssue(
                ComplianceIssueType.MIN_POSITION,
                AlertSeverity.LOW,
                f"{p.ticker} is below the minimum position weight",
                value=p.weight,
                limit=rules.min_position_weight,
                ticker=p.ticker,
            ))

    top3 = sum(sorted((p.weight for p in positions), reverse=True)[:3])
    if top3 > rules.max_top3_concentration + _TOLERANCE:
        violations.append(ComplianceIssue(
            ComplianceIssueType.TOP3_CONCENTRATION,
            AlertSeverity.MEDIUM,
            "Top 3 positions exceed the concentration limit",
            value=top3,
            limit=rules.max_top3_concentration,
        ))

    if portfolio_volatility is not None and portfolio_volatility > rules.max_portfolio_volatility:
        violations.append(ComplianceIssue(
            ComplianceIssueType.PORTFOLIO_VOLATILITY,
            AlertSeverity.HIGH,
            "Portfolio volatility exceeds the maximum",
            value=portfolio_volatility,
            limit=rules.max_portfolio_volatility,
        ))

    if daily_volumes is not None and rules.exclude_low_liquidity:
        for p in positions:
            volume = float(daily_volumes.get(p.ticker, 0.0))
            if volume < rules.min_daily_volume:
                warnings.append(ComplianceIssue(
                    ComplianceIssueType.LOW_LIQUIDITY,
                    AlertSeverity.MEDIUM,
                    f"{p.ticker} trades below the minimum daily volume",
                    value=volume,
                    limit=rules.min_daily_volume,
                    ticker=p.ticker,
                ))

    if rules.exclude_high_risk:
        for p in positions:
            vol = p.asset.volatility_or(DEFAULT_VOLATILITY)
            if vol > rules.high_risk_volatility:
                violations.append(ComplianceIssue(
                    ComplianceIssueType.HIGH_RISK,
                    AlertSeverity.HIGH,
                    f"{p.ticker} has extreme volatility",
                    value=vol,
                    limit=rules.high_risk_volatility,
                    ticker=p.ticker,
                ))

    report = ComplianceReport(violations=tuple(violations), warnings=tuple(warnings))
    if not report.compliant:
        logger.info(
            "Compliance: %d violations, %d warnings",
            len(report.violations),
            len(report.warnings),
        )
    return report


def _rebalance(
    weights: np.ndarray,
    rules: InvestmentRules,
    corrections: list[Correction],
) -> np.ndarray:
    n = weights.size
    if n * rules.max_position_weight < 1.0 - _TOLERANCE:
        corrections.append(Correction(
            action="infeasible_bounds",
            reason=(
                f"{n} positions at {rules.max_position_weight:.2%} cannot reach 100%; "
                f"{1.0 - n * rules.max_position_weight:.2%} left unallocated"
            ),
        ))
        return np.full(n, rules.max_position_weight)

    rebalanced, feasible = clip_and_normalize(weights, rules.min_position_weight, rules.max_position_weight)
    if not feasible:
        corrections.append(Correction(
            action="infeasible_bounds",
            reason=f"{n} positions at {rules.min_position_weight:.2%} exceed 100%; clipped once",
        ))
    return rebalanced


def apply_compliance_corrections(
    portfolio,
    rules: Optional[InvestmentRules] = None,
) -> CorrectionResult:
    """Cap oversized positions, drop undersized ones and rebalance.

    Surviving weights are rebalanced with ``clip_and_normalize``, so they
    sum to one and stay inside the position bounds. When too few names
    remain for the cap to reach 100% each is held at the cap and the rest
    is left unallocated. Weights already inside the bounds and within
    0.1% of summing to one are left untouched.
    """
    rules = rules or INVESTMENT_RULES
    positions = positions_of(portfolio)
    corrections: list[Correction] = []

    for p in positions:
        if p.weight > rules.max_position_weight + _TOLERANCE:
            corrections.append(Correction(
                action="reduce_weight",
                reason=f"{p.weight:.2%} -> {rules.max_position_weight:.2%}",
                ticker=p.ticker,
            ))

    kept = []
    for p in positions:
        if p.weight < rules.min_position_weight - _TOLERANCE:
            corrections.append(Correction(
                action="remove",
                reason="Weight below minimum",
                ticker=p.ticker,
            ))
            continue
        kept.append(p)

    weights = np.array([p.weight for p in kept], dtype=float)
    oversized = bool(np.any(weights > rules.max_position_weight + _TOLERANCE))
    if kept and (oversized or abs(float(weights.sum()) - 1.0) > 0.001):
        before = len(corrections)
        rebalanced = _rebalance(weights, rules, corrections)
        kept = [replace(p, weight=float(w)) for p, w in zip(kept, rebalanced)]
        if len(corrections) == before:
            corrections.append(Correction(
                action="renormalize",
                reason="Rebalance weights to sum to 100% within position limits",
            ))

    if corrections:
        kept = [replace(p, recommended_capital=None) for p in kept]

    result = CorrectionResult(
        positions=tuple(kept),
        corrections=tuple(corrections),
        removed=len(positions) - len(kept),
    )
    if corrections:
        logger.info(
            "Compliance corrections: %d actions, %d removed, total weight %.4f",
            len(corrections),
            result.removed,
            result.total_weight,
        )
    return result


# =============================================================================
# Governance Report
# =============================================================================


@dataclass(frozen=True)
class GovernanceReport:
    """Compliance result plus a portfolio summary and the rules checked."""

    compliance: ComplianceReport
    rules: InvestmentRules
    n_assets: int
    total_weight: float
    max_position: float
    min_position: float
    top3_concentration: float
    method: Optional[AllocationMethod] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        info = ALLOCATION_METHODS.get(self.method, {}) if self.method is not None else {}
        return {
            "timestamp": self.timestamp.isoformat(),
            "strategy": {
                "name": info.get("name", "Unknown"),
                "risk_level": info.get("risk_level", "N/A"),
                "description": info.get("description", "N/A"),
            },
            "compliance": self.compliance.to_dict(),
            "portfolio_summary": {
                "n_assets": self.n_assets,
                "total_weight": round(self.total_weight, 4),
                "max_position": round(self.max_position, 4),
                "min_position": round(self.min_position, 4),
                "top3_concentration": round(self.top3_concentration, 4),
            },
            "rules_applied": {
                "max_position_weight": self.rules.max_position_weight,
                "max_portfolio_volatility": self.rules.max_portfolio_volatility,
                "min_daily_volume": self.rules.min_daily_volume,
            },
        }


def generate_governance_report(
    portfolio,
    method: Optional[AllocationMethod] = None,
    rules: Optional[InvestmentRules] = None,
    portfolio_volatility: Optional[float] = None,
) -> GovernanceReport:
    """Validate *portfolio* and summarize its weights.

    ``method`` defaults to the allocation's own method when *portfolio*
    is a PortfolioAllocation.
    """
    rules = rules or INVESTMENT_RULES
    positions = positions_of(portfolio)
    if method is None and isinstance(portfolio, PortfolioAllocation):
        method = portfolio.method
    elif method is not None:
        method = AllocationMethod(method)

    weights = sorted((p.weight for p in positions), reverse=True)
    return GovernanceReport(
        compliance=validate_compliance(positions, rules, portfolio_volatility=portfolio_volatility),
        rules=rules,
        n_assets=len(positions),
        total_weight=float(sum(weights)),
        max_position=weights[0] if weights else 0.0,
        min_position=weights[-1] if weights else 0.0,
        top3_concentration=float(sum(weights[:3])),
        method=method,
    )
