"""Neighborhood sampling with an explicit out-of-bounds policy.

Every read goes through :func:`resolve_indices`, so a voxel near the edge of
the volume always receives a defined value.  Supported boundary modes follow
the naming used by :mod:`scipy.ndimage`:

* ``"nearest"``  -- clamp to the closest edge voxel  (a a a | a b c d | d d d)
* ``"mirror"``   -- reflect about the edge voxel     (d c b | a b c d | c b a)
* ``"reflect"``  -- reflect about the edge           (c b a | a b c d | d c b)
* ``"constant"`` -- a fixed fill value ``cval``

Offsets with fewer components than the volume has axes address the trailing
axes, so a 2-D window can be applied slice by slice to a 3-D volume.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

BOUNDARY_MODES = ("nearest", "mirror", "reflect", "constant")


def validate_boundary(boundary: str) -> str:
    """Return *boundary* unchanged or raise ``ValueError``."""
    if boundary not in BOUNDARY_MODES:
        raise ValueError(
            f"Unknown boundary mode '{boundary}'. Choose from {BOUNDARY_MODES}."
        )
    return boundary


def resolve_indices(indices: np.ndarray | int, size: int, boundary: str) -> np.ndarray:
    """Map possibly out-of-range indices along one axis onto ``[0, size)``.

    For ``"constant"`` the indices are returned unchanged; callers test them
    against the axis extent and substitute the fill value themselves.
    """
    validate_boundary(boundary)
    indices = np.asarray(indices, dtype=np.intp)

    if boundary == "nearest":
        return np.clip(indices, 0, size - 1)

    if boundary == "mirror":
        if size == 1:
            return np.zeros_like(indices)
        period = 2 * (size - 1)
        folded = np.mod(indices, period)
        return np.where(folded < size, folded, period - folded)

    if boundary == "reflect":
        period = 2 * size
        folded = np.mod(indices, period)
        return np.where(folded < size, folded, period - 1 - folded)

    return indices


def _align_offset(offset: Sequence[int], ndim: int) -> np.ndarray:
    offset = np.asarray(offset, dtype=np.intp).ravel()
    if offset.size > ndim:
        raise ValueError(
            f"Offset {tuple(offset.tolist())} has more components than the "
            f"volume has axes ({ndim})."
        )
    return np.concatenate([np.zeros(ndim - offset.size, dtype=np.intp), offset])


def sample_voxel(
    volume: np.ndarray,
    center: Sequence[int],
    offset: Sequence[int],
    boundary: str = "nearest",
    cval: float = 0.0,
) -> float:
    """Return the value of *volume* at ``center + offset``.

    Parameters
    ----------
    volume : np.ndarray
        Input array, never modified.
    center : sequence of int
        Index of the centre voxel; one entry per axis of *volume*.
    offset : sequence of int
        Relative displacement.  Missing leading components are taken as 0.
    boundary : str
        Out-of-bounds policy, one of :data:`BOUNDARY_MODES`.
    cval : float
        Fill value for ``boundary="constant"``.

    Returns
    -------
    float
        The sampled value.
    """
    validate_boundary(boundary)
    center = np.asarray(center, dtype=np.intp)
    if center.size != volume.ndim:
        raise ValueError(
            f"center has {center.size} components but the volume has "
            f"{volume.ndim} axes"
        )

    position = center + _align_offset(offset, volume.ndim)

    if boundary == "constant":
        inside = np.all((position >= 0) & (position < np.asarray(volume.shape)))
        return float(volume[tuple(position)]) if inside else float(cval)

    index = tuple(
        int(resolve_indices(p, size, boundary))
        for p, size in zip(position, volume.shape)
    )
    return float(volume[index])


def gather_samples(
    volume: np.ndarray,
    center: Sequence[int],
    offsets: np.ndarray,
    boundary: str = "nearest",
    cval: float = 0.0,
) -> np.ndarray:
    """Collect the sample vector of one voxel, in the order of *offsets*."""
    return np.array(
        [sample_voxel(volume, center, off, boundary=boundary, cval=cval) for off in offsets],
        dtype=np.float64,
    )


def pad_volume(
    volume: np.ndarray,
    radius: int,
    window_ndim: int,
    boundary: str = "nearest",
    cval: float = 0.0,
) -> np.ndarray:
    """Pad the trailing *window_ndim* axes of *volume* by *radius* voxels.

    The padded values are exactly those :func:`sample_voxel` would return,
    which lets the block-wise filter read every neighbor through a plain
    slice.
    """
    validate_boundary(boundary)
    volume = np.asarray(volume, dtype=np.float64)
    lead = volume.ndim - window_ndim

    if boundary == "constant":
        pad_width = [(0, 0)] * lead + [(radius, radius)] * window_ndim
        return np.pad(volume, pad_width, mode="constant", constant_values=cval)

    index = [np.arange(size) for size in volume.shape[:lead]]
    for size in volume.shape[lead:]:
        index.append(resolve_indices(np.arange(-radius, size + radius), size, boundary))
    return volume[np.ix_(*index)]


def shifted_view(
    padded: np.ndarray,
    offset: Sequence[int],
    radius: int,
    block: tuple[slice, ...],
) -> np.ndarray:
    """View of *padded* holding, for each voxel of *block*, its neighbor at *offset*.

    *block* is expressed in unpadded coordinates and must give explicit
    ``start`` / ``stop`` values for every axis.
    """
    aligned = _align_offset(offset, padded.ndim)
    lead = padded.ndim - len(offset)
    index = []
    for axis, (sl, shift) in enumerate(zip(block, aligned)):
        margin = radius if axis >= lead else 0
        start = sl.start + margin + int(shift)
        index.append(slice(start, start + (sl.stop - sl.start)))
    return padded[tuple(index)]
