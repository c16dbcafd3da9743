"""Correlation Estimation Configuration."""

from dataclasses import dataclass
from enum import Enum


class AlignmentMode(str, Enum):
    """How price series were lined up before computing returns."""
    DATE = "date"
    POSITIONAL = "positional"


TRADING_DAYS_PER_YEAR = 252


@dataclass
class CorrelationConfig:
    """Configuration for the shrinkage correlation estimator."""

    min_observations: int = 30  # Common price points required
    shrinkage_window: int = TRADING_DAYS_PER_YEAR  # Shrink when T is below this
    symmetry_tolerance: float = 1e-10
    singularity_threshold: float = 0.999  # |rho| above this flags a pair

    def validate(self) -> list[str]:
        errors = []
        if self.min_observations < 3:
            errors.append("min_observations must be at least 3")
        if self.shrinkage_window < 0:
            errors.append("shrinkage_window cannot be negative")
        if self.symmetry_tolerance <= 0:
            errors.append("symmetry_tolerance must be positive")
        if not 0 < self.singularity_threshold <= 1:
            errors.append("singularity_threshold must be in (0, 1]")
        return errors


DEFAULT_CORRELATION_CONFIG = CorrelationConfig()
