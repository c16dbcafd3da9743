"""Dynamic Governance.

Regime classification, adaptive investment limits, risk profiles,
transition alerting and compliance checks.
"""

from capital_engine.governance.compliance import (
    ComplianceIssue,
    ComplianceIssueType,
    ComplianceReport,
    Correction,
    CorrectionResult,
    GovernanceReport,
    apply_compliance_corrections,
    generate_governance_report,
    validate_compliance,
)
from capital_engine.governance.config import (
    DEFAULT_GOVERNANCE_CONFIG,
    AlertSeverity,
    AlertType,
    GovernanceConfig,
    RecommendationLevel,
)
from capital_engine.governance.engine import (
    CANONICAL_SCENARIOS,
    DynamicGovernanceEngine,
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
    CORRELATION_BANDS,
    VOLATILITY_BANDS,
    CorrelationRegime,
    Regime,
    RegimeBand,
    VolatilityRegime,
    average_correlation,
    constant_correlation_matrix,
    detect_correlation_regime,
    detect_volatility_regime,
)
from capital_engine.governance.rules import (
    INVESTMENT_RULES,
    LIMIT_BOUNDS,
    RISK_PROFILES,
    InvestmentRules,
    RiskProfile,
    effective_profile,
    get_profile_rules,
)

__all__ = [
    # Compliance
    "ComplianceIssue",
    "ComplianceIssueType",
    "ComplianceReport",
    "Correction",
    "CorrectionResult",
    "GovernanceReport",
    "apply_compliance_corrections",
    "generate_governance_report",
    "validate_compliance",
    # Config
    "DEFAULT_GOVERNANCE_CONFIG",
    "AlertSeverity",
    "AlertType",
    "GovernanceConfig",
    "RecommendationLevel",
    # Engine
    "CANONICAL_SCENARIOS",
    "DynamicGovernanceEngine",
    # Models
    "DynamicLimits",
    "GovernanceAlert",
    "MarketConditions",
    "MarketObservation",
    "MonitorResult",
    "Multipliers",
    "Recommendation",
    "RiskProfileAdjustment",
    "ScenarioResult",
    # Regimes
    "CORRELATION_BANDS",
    "VOLATILITY_BANDS",
    "CorrelationRegime",
    "Regime",
    "RegimeBand",
    "VolatilityRegime",
    "average_correlation",
    "constant_correlation_matrix",
    "detect_correlation_regime",
    "detect_volatility_regime",
    # Rules
    "INVESTMENT_RULES",
    "LIMIT_BOUNDS",
    "RISK_PROFILES",
    "InvestmentRules",
    "RiskProfile",
    "effective_profile",
    "get_profile_rules",
]
