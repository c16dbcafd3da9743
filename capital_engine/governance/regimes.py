"""Market regime classification.

Volatility and correlation are classified through ordered band tables:
each band holds an exclusive upper bound, a label and a limit multiplier.
The last band is unbounded so every real input gets exactly one label.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from capital_engine.errors import DataValidationError


class VolatilityRegime(str, Enum):
    LOW = "Low Volatility"
    NORMAL = "Normal"
    HIGH = "High Volatility"
    EXTREME = "Extreme Volatility"


class CorrelationRegime(str, Enum):
    LOW = "Low Correlation"
    MODERATE = "Moderate Correlation"
    HIGH = "High Correlation"
    EXTREME = "Extreme Correlation"


@dataclass(frozen=True)
class RegimeBand:
    upper: float  # Exclusive
    label: Enum
    multiplier: float


@dataclass(frozen=True)
class Regime:
    """Classified regime for one scalar observation."""

    label: Enum
    multiplier: float
    value: float

    @property
    def name(self) -> str:
        return self.label.value

    def to_dict(self) -> dict:
        return {"label": self.name, "multiplier": self.multiplier, "value": self.value}


# Annualized portfolio volatility (%)
VOLATILITY_BANDS = (
    RegimeBand(15.0, VolatilityRegime.LOW, 1.2),
    RegimeBand(25.0, VolatilityRegime.NORMAL, 1.0),
    RegimeBand(35.0, VolatilityRegime.HIGH, 0.8),
    RegimeBand(math.inf, VolatilityRegime.EXTREME, 0.6),
)

# Average absolute pairwise correlation
CORRELATION_BANDS = (
    RegimeBand(0.5, CorrelationRegime.LOW, 1.1),
    RegimeBand(0.7, CorrelationRegime.MODERATE, 1.0),
    RegimeBand(0.85, CorrelationRegime.HIGH, 0.85),
    RegimeBand(math.inf, CorrelationRegime.EXTREME, 0.7),
)

DEFAULT_AVERAGE_CORRELATION = 0.5


def classify(value: float, bands: Sequence[RegimeBand], field: str = "value") -> Regime:
    """Return the first band whose upper bound exceeds *value*.

    Raises:
        DataValidationError: If value is NaN or not a number.
    """
    try:
        value = float(value)
    except (TypeError, ValueError) as exc:
        raise DataValidationError(f"{field} must be a number, got {value!r}", field=field) from exc
    if math.isnan(value):
        raise DataValidationError(f"{field} cannot be NaN", field=field)

    for band in bands:
        if value < band.upper:
            return Regime(band.label, band.multiplier, value)
    last = bands[-1]
    return Regime(last.label, last.multiplier, value)


def detect_volatility_regime(volatility: float) -> Regime:
    """Classify annualized portfolio volatility (%)."""
    return classify(volatility, VOLATILITY_BANDS, field="portfolio_volatility")


def detect_correlation_regime(correlation: float) -> Regime:
    """Classify average pairwise correlation."""
    return classify(correlation, CORRELATION_BANDS, field="average_correlation")


def average_correlation(
    matrix: Optional[Union[np.ndarray, pd.DataFrame, Sequence[Sequence[float]]]],
) -> float:
    """Mean absolute correlation over the upper triangle.

    Returns 0.5 for a missing or empty matrix, or one without pairs.
    """
    if matrix is None:
        return DEFAULT_AVERAGE_CORRELATION
    values = np.asarray(matrix, dtype=float)
    if values.size == 0 or values.ndim != 2:
        return DEFAULT_AVERAGE_CORRELATION
    n = min(values.shape)
    if n < 2:
        return DEFAULT_AVERAGE_CORRELATION
    upper = values[:n, :n][np.triu_indices(n, k=1)]
    if np.any(np.isnan(upper)):
        raise DataValidationError("correlation matrix contains NaN", field="correlation_matrix")
    return float(np.mean(np.abs(upper)))


def constant_correlation_matrix(size: int, correlation: float) -> np.ndarray:
    """Synthetic matrix with one value off the diagonal."""
    matrix = np.full((size, size), float(correlation))
    np.fill_diagonal(matrix, 1.0)
    return matrix
