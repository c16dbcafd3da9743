"""Correlation Estimation.

Date or positional alignment of price histories and a shrinkage-corrected
covariance / correlation / distance estimate.
"""

from capital_engine.correlation.config import (
    DEFAULT_CORRELATION_CONFIG,
    TRADING_DAYS_PER_YEAR,
    AlignmentMode,
    CorrelationConfig,
)
from capital_engine.correlation.estimator import (
    CorrelationEstimator,
    covariance_to_correlation,
    off_diagonal,
    shrink_covariance,
    shrinkage_intensity,
)
from capital_engine.correlation.models import (
    AlignedReturns,
    CorrelationResult,
    CorrelationStats,
    NearIdenticalPair,
)

__all__ = [
    "DEFAULT_CORRELATION_CONFIG",
    "TRADING_DAYS_PER_YEAR",
    "AlignmentMode",
    "CorrelationConfig",
    "CorrelationEstimator",
    "covariance_to_correlation",
    "off_diagonal",
    "shrink_covariance",
    "shrinkage_intensity",
    "AlignedReturns",
    "CorrelationResult",
    "CorrelationStats",
    "NearIdenticalPair",
]
