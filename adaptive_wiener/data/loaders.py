"""Image loading for the adaptive Wiener filter.

Supports NumPy arrays, NIfTI, DICOM directories, and 2-D raster images.
Samples are returned as float64 in their original units; nothing is
rescaled, because the filter's noise variance is expressed in those units.

:func:`read_image` never raises for a bad input file.  It returns a
:class:`ReadResult` whose ``error`` field is set on failure, and the caller
decides whether to abort.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from adaptive_wiener.errors import ImageReadError

RASTER_SUFFIXES = (".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp")


@dataclass
class ReadResult:
    """Outcome of :func:`read_image`.

    Exactly one of ``volume`` and ``error`` is set.  ``kind`` classifies the
    failure as ``"missing"``, ``"permission"``, ``"unsupported"``,
    ``"corrupt"`` or ``"other"``.
    """

    path: Path
    volume: np.ndarray | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    error: ImageReadError | None = None
    kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _Unsupported(ImageReadError):
    pass


def _load_nifti(path: Path) -> tuple[np.ndarray, dict]:
    """Load a NIfTI (.nii / .nii.gz) file via nibabel."""
    try:
        import nibabel as nib
    except ImportError as exc:
        raise _Unsupported(
            "nibabel is required to load NIfTI files. "
            "Install it with:  pip install nibabel"
        ) from exc

    img = nib.load(str(path))
    volume = np.asarray(img.dataobj, dtype=np.float64)

    header = img.header
    metadata: dict = {
        "source": "nifti",
        "affine": img.affine.tolist(),
    }
    if hasattr(header, "get_zooms"):
        metadata["voxel_size"] = [float(z) for z in header.get_zooms()]

    return volume, metadata


def _load_dicom_directory(path: Path) -> tuple[np.ndarray, dict]:
    """Load a directory of DICOM (.dcm) files via pydicom.

    Slices are sorted by ``InstanceNumber`` when available, falling back to
    ``ImagePositionPatient[2]`` (the slice position along the axial axis).
    """
    try:
        import pydicom
    except ImportError as exc:
        raise _Unsupported(
            "pydicom is required to load DICOM directories. "
            "Install it with:  pip install pydicom"
        ) from exc

    dcm_files = sorted(path.glob("*.dcm"))
    if not dcm_files:
        raise FileNotFoundError(f"No .dcm files found in {path}")

    slices = [pydicom.dcmread(str(f)) for f in dcm_files]

    def _sort_key(ds):  # type: ignore[no-untyped-def]
        if getattr(ds, "InstanceNumber", None) is not None:
            return int(ds.InstanceNumber)
        if getattr(ds, "ImagePositionPatient", None) is not None:
            return float(ds.ImagePositionPatient[2])
        return 0

    slices.sort(key=_sort_key)
    volume = np.stack([s.pixel_array.astype(np.float64) for s in slices], axis=0)

    # Apply rescale slope / intercept if present
    ds0 = slices[0]
    slope = float(getattr(ds0, "RescaleSlope", 1.0))
    intercept = float(getattr(ds0, "RescaleIntercept", 0.0))
    volume = volume * slope + intercept

    metadata: dict = {
        "source": "dicom",
        "num_slices": len(slices),
    }
    if hasattr(ds0, "PixelSpacing"):
        ps = [float(v) for v in ds0.PixelSpacing]
        st = float(getattr(ds0, "SliceThickness", ps[0]))
        metadata["voxel_size"] = [st, ps[0], ps[1]]

    return volume, metadata


def _load_raster(path: Path) -> tuple[np.ndarray, dict]:
    """Load a grayscale raster image (PNG, JPEG, TIFF, BMP) via scikit-image."""
    from skimage import io

    image = io.imread(str(path))
    # Multi-page TIFF stacks are (Z, Y, X); a trailing axis of 3 or 4 is colour.
    if image.ndim == 3 and image.shape[-1] in (3, 4):
        raise _Unsupported(
            f"{path.name} has {image.shape[-1]} channels; only single-channel "
            "images can be filtered"
        )

    metadata: dict = {
        "source": "raster",
        "original_dtype": str(image.dtype),
    }
    return image.astype(np.float64), metadata


def _load_numpy(path: Path) -> tuple[np.ndarray, dict]:
    """Load an array from a ``.npy`` file."""
    volume = np.load(str(path), allow_pickle=False)
    if not np.issubdtype(volume.dtype, np.number) or np.iscomplexobj(volume):
        raise _Unsupported(f"{path.name} does not hold real numeric data ({volume.dtype})")
    return volume.astype(np.float64), {"source": "numpy"}


def _dispatch(path: Path) -> tuple[np.ndarray, dict]:
    if path.is_dir():
        return _load_dicom_directory(path)

    if not path.exists():
        raise FileNotFoundError(f"No such file: {path}")

    suffixes = "".join(path.suffixes).lower()
    if suffixes.endswith(".nii.gz") or suffixes.endswith(".nii"):
        return _load_nifti(path)

    if suffixes.endswith(".npy"):
        return _load_numpy(path)

    if path.suffix.lower() in RASTER_SUFFIXES:
        return _load_raster(path)

    raise _Unsupported(
        f"Unsupported file format: {path}. Expected .nii, .nii.gz, .npy, "
        f"a directory of .dcm files, or one of {RASTER_SUFFIXES}"
    )


def _classify(exc: BaseException) -> str:
    if isinstance(exc, _Unsupported):
        return "unsupported"
    if isinstance(exc, FileNotFoundError):
        return "missing"
    if isinstance(exc, PermissionError):
        return "permission"
    if isinstance(exc, OSError):
        return "other"
    return "corrupt"


def read_image(path: str | Path) -> ReadResult:
    """Read a 2-D image or 3-D volume from disk.

    The format is auto-detected from the file extension or path type:

    * ``.nii`` / ``.nii.gz`` -- NIfTI via *nibabel*.
    * Directory of ``.dcm`` files -- DICOM via *pydicom*.
    * ``.npy`` -- NumPy binary file.
    * ``.png`` / ``.jpg`` / ``.tif`` / ``.bmp`` -- via *scikit-image*.

    Parameters
    ----------
    path : str | Path
        Path to the data source.

    Returns
    -------
    ReadResult
        ``volume`` holds a float64 array in the file's units on success;
        ``error`` and ``kind`` describe the failure otherwise.
    """
    path = Path(path)
    try:
        volume, metadata = _dispatch(path)
    except Exception as exc:  # every reader failure becomes a ReadResult
        error = exc if isinstance(exc, ImageReadError) else ImageReadError(f"{path}: {exc}")
        if error is not exc:
            error.__cause__ = exc
        return ReadResult(path=path, error=error, kind=_classify(exc))

    if volume.ndim not in (2, 3) or volume.size == 0:
        return ReadResult(
            path=path,
            error=ImageReadError(f"{path}: expected a 2-D or 3-D image, got shape {volume.shape}"),
            kind="unsupported",
        )

    metadata.update({"path": str(path), "shape": volume.shape})
    return ReadResult(path=path, volume=volume, metadata=metadata)
