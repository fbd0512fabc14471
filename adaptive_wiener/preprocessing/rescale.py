"""Intensity rescaling of filtered volumes for storage and display.

The filter itself works in the input's units.  Writing an 8-bit image needs
the values mapped linearly onto ``[out_min, out_max]`` and cast, which is
what :func:`rescale_intensity` does.
"""

from __future__ import annotations

import numpy as np


def rescale_intensity(
    volume: np.ndarray,
    out_min: float = 0.0,
    out_max: float = 255.0,
    dtype: np.dtype | type = np.uint8,
) -> np.ndarray:
    """Linearly map the value range of *volume* onto ``[out_min, out_max]``.

    The minimum of *volume* maps to *out_min* and its maximum to *out_max*.
    Non-finite values (possible with the ``"propagate"`` zero-variance
    policy) are ignored when finding the range and written as *out_min*.

    Parameters
    ----------
    volume : np.ndarray
        Input array (any numeric dtype).
    out_min, out_max : float
        Target range; *out_max* must be greater than *out_min*.
    dtype : numpy dtype
        Output dtype.  Integer dtypes are rounded to the nearest value.

    Returns
    -------
    np.ndarray
        Rescaled array of *dtype*.  A constant input maps to *out_min*.

    Raises
    ------
    ValueError
        If ``out_max <= out_min``.
    """
    if out_max <= out_min:
        raise ValueError(
            f"out_max ({out_max}) must be greater than out_min ({out_min})"
        )

    volume = volume.astype(np.float64)
    finite = np.isfinite(volume)
    scaled = np.full(volume.shape, float(out_min), dtype=np.float64)

    if finite.any():
        vmin, vmax = volume[finite].min(), volume[finite].max()
        if vmax - vmin > 0:
            scaled[finite] = out_min + (volume[finite] - vmin) * (out_max - out_min) / (vmax - vmin)

    scaled = np.clip(scaled, out_min, out_max)
    if np.issubdtype(np.dtype(dtype), np.integer):
        scaled = np.rint(scaled)
    return scaled.astype(dtype)
