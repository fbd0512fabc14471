"""Image writing for the adaptive Wiener filter.

Mirrors :mod:`adaptive_wiener.data.loaders`: :func:`write_image` reports
failures through a :class:`WriteResult` rather than raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from adaptive_wiener.data.loaders import RASTER_SUFFIXES
from adaptive_wiener.errors import ImageWriteError


@dataclass
class WriteResult:
    """Outcome of :func:`write_image`; ``error`` is ``None`` on success."""

    path: Path
    error: ImageWriteError | None = None
    kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _Unsupported(ImageWriteError):
    pass


def _save_nifti(volume: np.ndarray, path: Path, metadata: dict) -> None:
    try:
        import nibabel as nib
    except ImportError as exc:
        raise _Unsupported(
            "nibabel is required to write NIfTI files. "
            "Install it with:  pip install nibabel"
        ) from exc

    affine = np.asarray(metadata.get("affine", np.eye(4)), dtype=np.float64)
    nib.save(nib.Nifti1Image(volume, affine), str(path))


def _save_raster(volume: np.ndarray, path: Path) -> None:
    from skimage import io

    image = volume
    if image.ndim == 3 and image.shape[0] == 1:
        image = image[0]
    if image.ndim != 2 and path.suffix.lower() not in (".tif", ".tiff"):
        raise _Unsupported(
            f"{path.suffix} can only hold a single 2-D image; got shape "
            f"{volume.shape}. Use .tif, .npy or .nii.gz for volumes."
        )
    if path.suffix.lower() in (".png", ".jpg", ".jpeg", ".bmp") and image.dtype != np.uint8:
        raise _Unsupported(
            f"{path.suffix} output must be rescaled to uint8 first (got {image.dtype})"
        )
    io.imsave(str(path), image, check_contrast=False)


def _dispatch(volume: np.ndarray, path: Path, metadata: dict) -> None:
    suffixes = "".join(path.suffixes).lower()
    if suffixes.endswith(".nii.gz") or suffixes.endswith(".nii"):
        _save_nifti(volume, path, metadata)
    elif suffixes.endswith(".npy"):
        np.save(str(path), volume)
    elif path.suffix.lower() in RASTER_SUFFIXES:
        _save_raster(volume, path)
    else:
        raise _Unsupported(
            f"Unsupported output format: {path}. Expected .nii, .nii.gz, "
            f".npy or one of {RASTER_SUFFIXES}"
        )


def write_image(
    volume: np.ndarray,
    path: str | Path,
    metadata: dict | None = None,
) -> WriteResult:
    """Write *volume* to *path*, choosing the format from the extension.

    Parameters
    ----------
    volume : np.ndarray
        2-D image or 3-D volume.  8-bit raster formats (PNG, JPEG, BMP)
        require ``uint8`` data.
    path : str | Path
        Destination file.  Missing parent directories are created.
    metadata : dict | None
        Metadata returned by the loader; for NIfTI output its ``"affine"``
        is reused.

    Returns
    -------
    WriteResult
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        _dispatch(np.asarray(volume), path, metadata or {})
    except Exception as exc:  # every writer failure becomes a WriteResult
        if isinstance(exc, _Unsupported):
            return WriteResult(path=path, error=exc, kind="unsupported")
        error = ImageWriteError(f"{path}: {exc}")
        error.__cause__ = exc
        kind = "permission" if isinstance(exc, PermissionError) else "other"
        return WriteResult(path=path, error=error, kind=kind)

    return WriteResult(path=path)
