"""Wiener attenuation of a centre value given its local statistics."""

from __future__ import annotations

import numpy as np

from adaptive_wiener.errors import NumericDegeneracyError

ZERO_VARIANCE_POLICIES = ("mean", "propagate", "raise")

# Relative spread below which a neighborhood is flat up to rounding error:
# a few ulps of the local mean.
_RELATIVE_FLOOR = 8 * np.finfo(np.float64).eps


def is_degenerate(
    mean: float | np.ndarray,
    variance: float | np.ndarray,
    epsilon: float = 0.0,
) -> np.ndarray:
    """Mask of neighborhoods whose variance counts as zero.

    A variance is degenerate when it is at or below *epsilon*, or when the
    local standard deviation is within a few ulps of the local mean, i.e.
    the spread is pure rounding error from averaging identical values.
    """
    mean = np.asarray(mean, dtype=np.float64)
    variance = np.asarray(variance, dtype=np.float64)
    return variance <= np.maximum(epsilon, (_RELATIVE_FLOOR * mean) ** 2)


def zero_variance_mask(
    mean: float | np.ndarray,
    variance: float | np.ndarray,
    zero_variance: str = "mean",
    epsilon: float = 0.0,
) -> np.ndarray:
    """Mask of neighborhoods that *zero_variance* treats as flat.

    ``"propagate"`` divides by every variance it is given, so only exact
    zeros count; the other policies use :func:`is_degenerate`.
    """
    if zero_variance == "propagate":
        return np.asarray(variance, dtype=np.float64) == 0
    return is_degenerate(mean, variance, epsilon)


def validate_zero_variance(policy: str) -> str:
    """Return *policy* unchanged or raise ``ValueError``."""
    if policy not in ZERO_VARIANCE_POLICIES:
        raise ValueError(
            f"Unknown zero-variance policy '{policy}'. "
            f"Choose from {ZERO_VARIANCE_POLICIES}."
        )
    return policy


def wiener_attenuate(
    mean: float | np.ndarray,
    variance: float | np.ndarray,
    noise_variance: float,
    center_value: float | np.ndarray,
    zero_variance: str = "mean",
    epsilon: float = 0.0,
    clip_gain: bool = False,
) -> float | np.ndarray:
    """Blend *center_value* with the local *mean*.

    Computes::

        mean + ((variance - noise_variance) / variance) * (center_value - mean)

    element-wise.  A local variance well above the noise variance gives a
    gain close to 1 and leaves the centre value (edges, detail) untouched;
    a local variance close to the noise variance gives a gain close to 0 and
    returns the local mean.

    Parameters
    ----------
    mean, variance : float or np.ndarray
        Local statistics of the neighborhood.
    noise_variance : float
        Variance of the additive noise, constant for the whole image.
    center_value : float or np.ndarray
        Original value of the voxel being filtered.
    zero_variance : str
        What to do where the variance is degenerate (see
        :func:`zero_variance_mask`):

        * ``"mean"`` -- use a gain of 0, i.e. output the local mean.
        * ``"propagate"`` -- divide anyway and keep the resulting inf / nan.
        * ``"raise"`` -- raise :class:`NumericDegeneracyError`.

    epsilon : float
        Variances at or below this value count as zero.  The ``"propagate"``
        policy ignores it and divides by whatever variance it is given.
    clip_gain : bool
        Clamp the gain to ``[0, 1]``.  Without clipping a local variance
        below the noise variance gives a negative gain.

    Returns
    -------
    float or np.ndarray
        Filtered value(s); a plain ``float`` when every input is scalar.

    Raises
    ------
    NumericDegeneracyError
        If ``zero_variance="raise"`` and any variance is degenerate.
    """
    validate_zero_variance(zero_variance)

    mean = np.asarray(mean, dtype=np.float64)
    variance = np.asarray(variance, dtype=np.float64)
    center_value = np.asarray(center_value, dtype=np.float64)
    degenerate = zero_variance_mask(mean, variance, zero_variance, epsilon)

    if zero_variance == "raise" and np.any(degenerate):
        raise NumericDegeneracyError(
            f"local variance vanished at {int(np.count_nonzero(degenerate))} voxel(s)"
        )

    if zero_variance == "propagate":
        with np.errstate(divide="ignore", invalid="ignore"):
            gain = (variance - noise_variance) / variance
    else:
        safe_variance = np.where(degenerate, 1.0, variance)
        gain = np.where(degenerate, 0.0, (variance - noise_variance) / safe_variance)

    if clip_gain:
        gain = np.clip(gain, 0.0, 1.0)

    with np.errstate(invalid="ignore"):
        result = mean + gain * (center_value - mean)

    if result.ndim == 0:
        return float(result)
    return result
