"""Denoising quality metrics against a known clean image."""

from __future__ import annotations

import numpy as np
from skimage.metrics import mean_squared_error, peak_signal_noise_ratio


def psnr(reference: np.ndarray, test: np.ndarray, data_range: float | None = None) -> float:
    """Peak signal-to-noise ratio of *test* against *reference*, in dB.

    *data_range* defaults to the value range of *reference*.  Identical
    images give ``inf``.
    """
    reference = np.asarray(reference, dtype=np.float64)
    test = np.asarray(test, dtype=np.float64)
    if data_range is None:
        data_range = float(reference.max() - reference.min()) or 1.0
    if mean_squared_error(reference, test) == 0:
        return float("inf")
    return float(peak_signal_noise_ratio(reference, test, data_range=data_range))


def evaluate_denoising(
    clean: np.ndarray,
    noisy: np.ndarray,
    filtered: np.ndarray,
) -> dict[str, float]:
    """Compare a noisy image and its filtered version against the clean one.

    Returns
    -------
    dict
        ``mse_noisy``, ``mse_filtered``, ``psnr_noisy``, ``psnr_filtered``
        and ``psnr_gain`` (filtered minus noisy, in dB).
    """
    clean = np.asarray(clean, dtype=np.float64)
    data_range = float(clean.max() - clean.min()) or 1.0

    psnr_noisy = psnr(clean, noisy, data_range=data_range)
    psnr_filtered = psnr(clean, filtered, data_range=data_range)

    return {
        "mse_noisy": float(mean_squared_error(clean, np.asarray(noisy, dtype=np.float64))),
        "mse_filtered": float(mean_squared_error(clean, np.asarray(filtered, dtype=np.float64))),
        "psnr_noisy": psnr_noisy,
        "psnr_filtered": psnr_filtered,
        "psnr_gain": psnr_filtered - psnr_noisy,
    }
