"""Local statistics of neighborhood sample vectors.

All variances are population variances (divisor ``n``) computed with the
two-pass algorithm: the mean first, then the mean squared deviation from it.
Sums are taken relative to the first sample, so a constant neighborhood has
exactly its value as mean and exactly zero variance.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from adaptive_wiener.errors import PreconditionViolation
from adaptive_wiener.neighborhood.sampling import shifted_view


def _as_samples(samples: Sequence[float] | np.ndarray) -> np.ndarray:
    values = np.asarray(samples, dtype=np.float64).ravel()
    if values.size == 0:
        raise PreconditionViolation("sample vector is empty")
    return values


def mean_and_variance(samples: Sequence[float] | np.ndarray) -> tuple[float, float]:
    """Return the sample mean and population variance of *samples*.

    Parameters
    ----------
    samples : sequence of float
        Non-empty sample vector.

    Returns
    -------
    mean : float
        ``sum(samples) / n``.
    variance : float
        ``sum((samples - mean) ** 2) / n``.

    Raises
    ------
    PreconditionViolation
        If *samples* is empty.
    """
    values = _as_samples(samples)
    n = values.size
    shift = values[0]
    mean = shift + (values - shift).sum() / n
    deviations = values - mean
    variance = np.dot(deviations, deviations) / n
    return float(mean), float(variance)


def order_statistics(samples: Sequence[float] | np.ndarray) -> tuple[float, float, float]:
    """Return ``(median, minimum, maximum)`` of *samples*.

    The median of an even number of values is the mean of the two middle
    values.
    """
    values = np.sort(_as_samples(samples))
    n = values.size
    if n % 2 == 0:
        median = (values[n // 2 - 1] + values[n // 2]) / 2.0
    else:
        median = values[n // 2]
    return float(median), float(values[0]), float(values[-1])


def block_mean_and_variance(
    padded: np.ndarray,
    offsets: np.ndarray,
    radius: int,
    block: tuple[slice, ...],
) -> tuple[np.ndarray, np.ndarray]:
    """Local mean and population variance for every voxel of *block*.

    Vectorised form of :func:`mean_and_variance`: the neighbors at each
    offset are read as one shifted view of the boundary-padded volume, and
    the two passes (sum, then sum of squared deviations) loop over the
    offsets rather than over the voxels.
    """
    if len(offsets) == 0:
        raise PreconditionViolation("offset set is empty")

    shape = tuple(sl.stop - sl.start for sl in block)
    n = len(offsets)

    shift = shifted_view(padded, offsets[0], radius, block)
    total = np.zeros(shape, dtype=np.float64)
    for offset in offsets:
        total += shifted_view(padded, offset, radius, block) - shift
    mean = shift + total / n

    squared = np.zeros(shape, dtype=np.float64)
    for offset in offsets:
        deviation = shifted_view(padded, offset, radius, block) - mean
        squared += deviation * deviation
    variance = squared / n

    return mean, variance


def summarize_volume(volume: np.ndarray) -> dict[str, Any]:
    """Descriptive statistics of a whole volume, used in reports."""
    values = np.asarray(volume, dtype=np.float64)
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return {
            "shape": list(values.shape),
            "finite_voxels": 0,
            "non_finite_voxels": int(values.size),
        }

    mean, variance = mean_and_variance(finite)
    median, vmin, vmax = order_statistics(finite)
    return {
        "shape": list(values.shape),
        "finite_voxels": int(finite.size),
        "non_finite_voxels": int(values.size - finite.size),
        "min": vmin,
        "max": vmax,
        "mean": mean,
        "median": median,
        "std": float(np.sqrt(variance)),
    }
