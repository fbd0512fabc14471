"""Relative offsets describing a square / cubic neighborhood window."""

from __future__ import annotations

import itertools

import numpy as np


def enumerate_offsets(radius: int, ndim: int = 2) -> np.ndarray:
    """Enumerate the integer offsets of a window of side ``2 * radius + 1``.

    Offsets are generated by nested iteration over the axes, the first axis
    varying slowest and the last axis fastest (row-major order).  The zero
    offset (the window centre) is included exactly once.

    Parameters
    ----------
    radius : int
        Non-negative window radius, identical along every axis.
    ndim : int
        Number of axes spanned by the window.

    Returns
    -------
    np.ndarray
        Read-only ``(2 * radius + 1) ** ndim`` by ``ndim`` integer array.

    Raises
    ------
    ValueError
        If *radius* is negative or *ndim* is smaller than 1.
    """
    if int(radius) != radius or radius < 0:
        raise ValueError(f"radius must be a non-negative integer, got {radius!r}")
    if ndim < 1:
        raise ValueError(f"ndim must be at least 1, got {ndim!r}")

    radius = int(radius)
    span = range(-radius, radius + 1)
    offsets = np.array(list(itertools.product(span, repeat=ndim)), dtype=np.intp)
    offsets = offsets.reshape(-1, ndim)
    offsets.flags.writeable = False
    return offsets


def window_size(radius: int, ndim: int = 2) -> int:
    """Number of voxels in a window of the given radius."""
    return (2 * int(radius) + 1) ** ndim
