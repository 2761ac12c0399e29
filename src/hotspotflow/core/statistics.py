"""Local spatial statistics: Getis-Ord Gi* hot and cold spot detection.

The engine follows the standard Getis & Ord (1992) / Ord & Getis (1995)
formulation of the star variant, in which every unit belongs to its own
neighborhood. For a value vector ``x`` of length ``n`` and weights ``w``::

    x̄    = mean(x)
    s²   = Σ (x_j - x̄)² / n              (population variance)
    S_i  = Σ_j w_ij x_j
    W_i  = Σ_j w_ij
    S1_i = Σ_j w_ij²
    E_i  = W_i x̄
    V_i  = s² (n S1_i - W_i²) / (n - 1)
    G*_i = (S_i - E_i) / sqrt(V_i)

Dividing numerator and moments by ``Σ x`` gives the ratio form, whose
expectation is ``W_i / n``; the z-score is identical.

Units whose variance is zero, negative or non-finite (constant input, a
zero weight sum, or a neighborhood spanning the whole collection) get NaN
rather than a division by zero.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import polars as pl

from hotspotflow.core.errors import DimensionMismatchError
from hotspotflow.core.schema import WeightsStyle
from hotspotflow.core.utils import get_logger
from hotspotflow.core.weights import SpatialWeights

logger = get_logger(__name__)

# Relative tolerance below which a variance counts as zero.
VARIANCE_RTOL = 1e-12

# (|z| threshold, confidence label) from most to least significant.
CONFIDENCE_LEVELS: tuple[tuple[float, str], ...] = (
    (2.576, "99%"),
    (1.960, "95%"),
    (1.645, "90%"),
)
NOT_SIGNIFICANT = "Not Significant"

HOTSPOT_CLASSES: tuple[str, ...] = (
    "Hot Spot 99%",
    "Hot Spot 95%",
    "Hot Spot 90%",
    NOT_SIGNIFICANT,
    "Cold Spot 90%",
    "Cold Spot 95%",
    "Cold Spot 99%",
)


@dataclass(frozen=True)
class LocalStatisticResult:
    """
    Per-unit Gi* output aligned with collection order.

    Attributes:
        ids: Unit identifiers
        z: Gi* z-scores (NaN where the variance is degenerate)
        expected: Expected neighborhood sum under spatial randomness
        variance: Variance of the neighborhood sum under spatial randomness
        weights_sum: Sum of weights per unit, self included
        style: Weights standardization used
    """

    ids: tuple[str, ...]
    z: np.ndarray
    expected: np.ndarray
    variance: np.ndarray
    weights_sum: np.ndarray
    style: WeightsStyle

    def __len__(self) -> int:
        return len(self.z)

    def p_values(self) -> np.ndarray:
        """Two-sided p-values under the standard normal; NaN stays NaN."""
        return np.array(
            [math.erfc(abs(z) / math.sqrt(2.0)) if np.isfinite(z) else np.nan for z in self.z],
            dtype=np.float64,
        )

    def classify(self) -> list[str]:
        """Hot/cold spot confidence class per unit."""
        return classify_hotspots(self.z)

    def to_frame(self, id_col: str = "id") -> pl.DataFrame:
        """Tabulate the result, one row per unit."""
        return pl.DataFrame(
            {
                id_col: list(self.ids),
                "gi_star": self.z,
                "expected": self.expected,
                "variance": self.variance,
                "weights_sum": self.weights_sum,
                "p_value": self.p_values(),
                "hotspot": self.classify(),
            }
        )


def _validate_values(values: Sequence[float] | np.ndarray, n: int) -> np.ndarray:
    x = np.asarray(values, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError(f"Value vector must be one-dimensional, got shape {x.shape}")
    if x.shape[0] != n:
        raise DimensionMismatchError(expected=n, actual=x.shape[0])
    if not np.all(np.isfinite(x)):
        bad = np.flatnonzero(~np.isfinite(x)).tolist()
        raise ValueError(f"Value vector contains non-finite entries at positions {bad[:5]}")
    return x


def getis_ord_gi_star(
    values: Sequence[float] | np.ndarray,
    weights: SpatialWeights,
) -> LocalStatisticResult:
    """
    Compute the Getis-Ord Gi* z-score for every unit.

    The focal unit is always part of its own neighborhood: weights built
    without self-inclusion are rebuilt with it, keeping their style.

    Args:
        values: One finite value per unit, in collection order
        weights: Spatial weights over the same units

    Returns:
        LocalStatisticResult of length n

    Raises:
        DimensionMismatchError: If ``len(values)`` differs from the weights dimension
        ValueError: If any value is NaN or infinite
    """
    x = _validate_values(values, weights.n)
    n = weights.n

    if not weights.includes_self:
        weights = weights.with_self()

    w_sum = weights.row_sums()
    s1 = weights.row_sums_of_squares()

    if n < 2:
        logger.warning(f"Gi* needs at least two units, got {n}; returning NaN")
        nan = np.full(n, np.nan)
        return LocalStatisticResult(
            ids=weights.ids,
            z=nan,
            expected=nan.copy(),
            variance=nan.copy(),
            weights_sum=w_sum,
            style=weights.style,
        )

    mean = float(x.mean())
    # A rounded mean leaves residue in x - mean; constant input has none.
    constant = bool(np.all(x == x[0]))
    deviations = np.zeros(n) if constant else x - mean
    pop_var = float(np.mean(deviations**2))

    expected = w_sum * mean
    spread = (n * s1 - w_sum**2) / (n - 1)
    spread_scale = (n * s1 + w_sum**2) / (n - 1)
    variance = pop_var * spread

    degenerate = (
        constant
        | (pop_var == 0.0)
        | ~np.isfinite(variance)
        | (spread <= VARIANCE_RTOL * spread_scale)
    )

    # S_i - E_i summed over deviations avoids cancelling two large sums.
    centred_sum = weights.lag(deviations)
    z = np.full(n, np.nan)
    ok = ~degenerate
    z[ok] = centred_sum[ok] / np.sqrt(variance[ok])

    n_degenerate = int(degenerate.sum())
    if n_degenerate:
        logger.warning(f"{n_degenerate}/{n} unit(s) have degenerate Gi* variance; set to NaN")
    logger.info(
        f"Computed Gi* for {n} units ({weights.style.value} weights, "
        f"max z={np.nanmax(z) if ok.any() else float('nan'):.3f})"
    )

    return LocalStatisticResult(
        ids=weights.ids,
        z=z,
        expected=expected,
        variance=np.where(degenerate, 0.0, variance),
        weights_sum=w_sum,
        style=weights.style,
    )


def classify_hotspots(z_scores: Sequence[float] | np.ndarray) -> list[str]:
    """
    Map Gi* z-scores onto a diverging hot/cold confidence scale.

    |z| > 2.576, 1.960 and 1.645 correspond to 99%, 95% and 90% confidence;
    NaN and anything weaker is "Not Significant".
    """
    labels: list[str] = []
    for z in np.asarray(z_scores, dtype=np.float64):
        label = NOT_SIGNIFICANT
        if np.isfinite(z):
            for threshold, confidence in CONFIDENCE_LEVELS:
                if abs(z) > threshold:
                    label = f"{'Hot' if z > 0 else 'Cold'} Spot {confidence}"
                    break
        labels.append(label)
    return labels
