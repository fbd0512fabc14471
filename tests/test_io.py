"""Tests for image reading, writing and intensity rescaling."""

import numpy as np
import pytest
from skimage import io

from adaptive_wiener.data.loaders import read_image
from adaptive_wiener.data.writers import write_image
from adaptive_wiener.errors import ImageReadError, ImageWriteError
from adaptive_wiener.preprocessing.rescale import rescale_intensity


@pytest.fixture
def volume():
    rng = np.random.default_rng(1)
    return rng.normal(100.0, 20.0, size=(3, 8, 9))


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------
def test_read_numpy(tmp_path, volume):
    """Values come back as float64 in their original units."""
    path = tmp_path / "vol.npy"
    np.save(path, volume.astype(np.float32))

    result = read_image(path)
    assert result.ok
    assert result.volume.dtype == np.float64
    np.testing.assert_allclose(result.volume, volume.astype(np.float32))
    assert result.metadata["source"] == "numpy"
    assert result.metadata["shape"] == volume.shape


def test_read_missing_file(tmp_path):
    result = read_image(tmp_path / "nope.npy")
    assert not result.ok
    assert result.kind == "missing"
    assert isinstance(result.error, ImageReadError)
    assert result.volume is None


def test_read_unsupported_format(tmp_path):
    path = tmp_path / "image.xyz"
    path.write_text("not an image")
    result = read_image(path)
    assert result.kind == "unsupported"
    assert "Unsupported file format" in str(result.error)


def test_read_corrupt_numpy(tmp_path):
    path = tmp_path / "broken.npy"
    path.write_bytes(b"definitely not numpy")
    result = read_image(path)
    assert not result.ok
    assert result.kind == "corrupt"


def test_read_rejects_1d(tmp_path):
    path = tmp_path / "line.npy"
    np.save(path, np.arange(10.0))
    result = read_image(path)
    assert result.kind == "unsupported"


def test_read_empty_dicom_dir(tmp_path):
    pytest.importorskip("pydicom")
    result = read_image(tmp_path)
    assert result.kind == "missing"


def test_read_png(tmp_path):
    image = np.zeros((6, 7), dtype=np.uint8)
    image[2:4, 3:5] = 200
    io.imsave(str(tmp_path / "img.png"), image, check_contrast=False)

    result = read_image(tmp_path / "img.png")
    assert result.ok
    assert result.volume.shape == (6, 7)
    assert result.volume.max() == 200.0
    assert result.metadata["original_dtype"] == "uint8"


def test_read_color_png_rejected(tmp_path):
    image = np.zeros((6, 7, 3), dtype=np.uint8)
    io.imsave(str(tmp_path / "rgb.png"), image, check_contrast=False)
    result = read_image(tmp_path / "rgb.png")
    assert result.kind == "unsupported"
    assert "channels" in str(result.error)


def test_nifti_roundtrip_keeps_affine(tmp_path, volume):
    nib = pytest.importorskip("nibabel")
    affine = np.diag([0.5, 0.5, 2.0, 1.0])
    nib.save(nib.Nifti1Image(volume, affine), str(tmp_path / "in.nii.gz"))

    loaded = read_image(tmp_path / "in.nii.gz")
    assert loaded.ok
    assert loaded.metadata["voxel_size"] == [0.5, 0.5, 2.0]

    written = write_image(loaded.volume, tmp_path / "out.nii.gz", loaded.metadata)
    assert written.ok
    np.testing.assert_allclose(nib.load(str(tmp_path / "out.nii.gz")).affine, affine)


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------
def test_write_numpy_creates_parents(tmp_path, volume):
    path = tmp_path / "deep" / "dir" / "out.npy"
    result = write_image(volume, path)
    assert result.ok
    np.testing.assert_array_equal(np.load(path), volume)


def test_write_png_single_slice(tmp_path):
    """A one-slice volume is written as a 2-D PNG."""
    image = np.arange(25, dtype=np.uint8).reshape(1, 5, 5)
    result = write_image(image, tmp_path / "slice.png")
    assert result.ok
    np.testing.assert_array_equal(io.imread(str(tmp_path / "slice.png")), image[0])


def test_write_png_requires_uint8(tmp_path):
    result = write_image(np.zeros((5, 5)), tmp_path / "float.png")
    assert not result.ok
    assert result.kind == "unsupported"
    assert isinstance(result.error, ImageWriteError)


def test_write_png_rejects_volume(tmp_path):
    result = write_image(np.zeros((3, 5, 5), dtype=np.uint8), tmp_path / "vol.png")
    assert result.kind == "unsupported"


def test_write_unknown_extension(tmp_path, volume):
    result = write_image(volume, tmp_path / "out.abc")
    assert result.kind == "unsupported"


def test_write_into_file_path_fails(tmp_path, volume):
    """A parent that is a regular file cannot hold the output."""
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    result = write_image(volume, blocker / "out.npy")
    assert not result.ok
    assert isinstance(result.error, ImageWriteError)


# ---------------------------------------------------------------------------
# Rescaling
# ---------------------------------------------------------------------------
def test_rescale_to_uint8(volume):
    out = rescale_intensity(volume)
    assert out.dtype == np.uint8
    assert out.min() == 0
    assert out.max() == 255


def test_rescale_is_linear():
    out = rescale_intensity(np.array([10.0, 20.0, 30.0]), 0, 100, dtype=np.float64)
    np.testing.assert_allclose(out, [0.0, 50.0, 100.0])


def test_rescale_constant_maps_to_min():
    out = rescale_intensity(np.full((3, 3), 4.2))
    np.testing.assert_array_equal(out, np.zeros((3, 3), dtype=np.uint8))


def test_rescale_ignores_non_finite():
    out = rescale_intensity(np.array([0.0, np.nan, 10.0, np.inf]))
    np.testing.assert_array_equal(out, [0, 0, 255, 0])


def test_rescale_invalid_range():
    with pytest.raises(ValueError, match="out_max"):
        rescale_intensity(np.zeros(3), out_min=5, out_max=5)
