"""Tests for the adaptive Wiener filter drivers."""

import numpy as np
import pytest

from adaptive_wiener.data.phantom import create_noisy_phantom, create_outlier_image
from adaptive_wiener.errors import NumericDegeneracyError
from adaptive_wiener.evaluation.metrics import evaluate_denoising
from adaptive_wiener.filtering.wiener import (
    adaptive_wiener_filter,
    adaptive_wiener_filter_reference,
    estimate_noise_variance,
    local_statistics,
    window_ndim,
)
from adaptive_wiener.neighborhood.sampling import BOUNDARY_MODES

SHAPE = (4, 6, 5)


@pytest.fixture(scope="module")
def random_volume():
    rng = np.random.default_rng(2024)
    return rng.normal(50.0, 10.0, size=SHAPE)


@pytest.fixture(scope="module")
def phantom():
    return create_noisy_phantom(shape=(24, 32, 32), noise_sigma=10.0, seed=3)


# ---------------------------------------------------------------------------
# Outlier scenario
# ---------------------------------------------------------------------------
@pytest.mark.parametrize(
    "shape, window_axes",
    [((5, 5), "volume"), ((1, 5, 5), "volume"), ((1, 5, 5), "plane")],
)
@pytest.mark.parametrize("driver", [adaptive_wiener_filter, adaptive_wiener_filter_reference])
def test_single_outlier(driver, shape, window_axes):
    """The outlier is pulled toward the background; flat areas stay at 10."""
    image = create_outlier_image(shape, background=10.0, outlier=100.0)
    filtered, _ = driver(image, 1, 1.0, window_axes=window_axes)

    center = tuple(s // 2 for s in shape)
    assert 10.0 < filtered[center] < 100.0

    plane = filtered.reshape(5, 5)
    for row in range(5):
        for col in range(5):
            if (row, col) == (2, 2):
                continue
            if abs(row - 2) <= 1 and abs(col - 2) <= 1:
                # Neighborhood includes the outlier: slight shift above 10
                assert 10.0 < plane[row, col] < 10.05
            else:
                assert plane[row, col] == pytest.approx(10.0)


def test_outlier_value_matches_formula():
    """With 8 x 10.0 and one 100.0, mean = 20 and variance = 800."""
    image = create_outlier_image((5, 5))
    filtered, _ = adaptive_wiener_filter(image, 1, 1.0)
    assert filtered[2, 2] == pytest.approx(20.0 + (799.0 / 800.0) * 80.0)


# ---------------------------------------------------------------------------
# Coverage and shape
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("radius", [0, 1, 2, 4, 9])
def test_boundary_coverage(radius):
    """Every input position gets exactly one finite output, for any radius."""
    rng = np.random.default_rng(radius)
    image = rng.uniform(0, 1, size=(7, 9))
    filtered, params = adaptive_wiener_filter(image, radius, 0.01)
    assert filtered.shape == image.shape
    assert filtered.size == 7 * 9
    assert np.all(np.isfinite(filtered))
    assert params["output_shape"] == image.shape


def test_radius_zero_is_identity(random_volume):
    """A one-voxel window is always flat, so the output equals the input."""
    filtered, params = adaptive_wiener_filter(random_volume, 0, 5.0)
    np.testing.assert_allclose(filtered, random_volume)
    assert params["num_offsets"] == 1
    assert params["zero_variance_voxels"] == random_volume.size


def test_zero_noise_is_identity(random_volume):
    filtered, _ = adaptive_wiener_filter(random_volume, 1, 0.0)
    np.testing.assert_allclose(filtered, random_volume, rtol=1e-12)


def test_constant_volume_unchanged():
    volume = np.full((3, 4, 5), 7.25)
    filtered, params = adaptive_wiener_filter(volume, 2, 1.0)
    np.testing.assert_allclose(filtered, volume)
    assert params["zero_variance_voxels"] == volume.size


def test_input_not_modified(random_volume):
    before = random_volume.copy()
    adaptive_wiener_filter(random_volume, 1, 4.0, workers=2)
    np.testing.assert_array_equal(random_volume, before)


def test_integer_input():
    """Integer images are filtered as floating point."""
    image = create_outlier_image((5, 5)).astype(np.uint8)
    filtered, _ = adaptive_wiener_filter(image, 1, 1.0)
    assert filtered.dtype == np.float64
    assert 10.0 < filtered[2, 2] < 100.0


# ---------------------------------------------------------------------------
# Vectorised vs reference, threading
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("boundary", BOUNDARY_MODES)
@pytest.mark.parametrize("radius", [1, 2])
def test_vectorized_matches_reference(random_volume, boundary, radius):
    fast, fast_params = adaptive_wiener_filter(
        random_volume, radius, 25.0, boundary=boundary, cval=3.0
    )
    slow, slow_params = adaptive_wiener_filter_reference(
        random_volume, radius, 25.0, boundary=boundary, cval=3.0
    )
    np.testing.assert_allclose(fast, slow, rtol=1e-9, atol=1e-9)
    assert fast_params["num_offsets"] == slow_params["num_offsets"] == (2 * radius + 1) ** 3


def test_plane_window_matches_reference(random_volume):
    fast, params = adaptive_wiener_filter(random_volume, 1, 25.0, window_axes="plane")
    slow, _ = adaptive_wiener_filter_reference(random_volume, 1, 25.0, window_axes="plane")
    np.testing.assert_allclose(fast, slow, rtol=1e-9, atol=1e-9)
    assert params["num_offsets"] == 9


def test_plane_window_filters_slices_independently():
    """With a plane window, changing one slice leaves the others untouched."""
    rng = np.random.default_rng(9)
    volume = rng.normal(size=(3, 8, 8))
    altered = volume.copy()
    altered[0] += 100.0

    a, _ = adaptive_wiener_filter(volume, 1, 0.5, window_axes="plane")
    b, _ = adaptive_wiener_filter(altered, 1, 0.5, window_axes="plane")
    np.testing.assert_allclose(a[1:], b[1:])


@pytest.mark.parametrize("workers", [2, 3, 8])
def test_workers_match_serial(phantom, workers):
    """Splitting into slabs across threads does not change the result."""
    volume = phantom["volume"]
    serial, _ = adaptive_wiener_filter(volume, 1, phantom["noise_variance"])
    threaded, params = adaptive_wiener_filter(
        volume, 1, phantom["noise_variance"], workers=workers
    )
    np.testing.assert_allclose(threaded, serial, rtol=0, atol=1e-12)
    assert params["workers"] == workers


def test_workers_capped_by_slices():
    volume = np.random.default_rng(0).normal(size=(2, 4, 4))
    _, params = adaptive_wiener_filter(volume, 1, 1.0, workers=16)
    assert params["workers"] == 2


def test_params_keys(random_volume):
    _, params = adaptive_wiener_filter(random_volume, 1, 1.0)
    expected = {
        "method", "radius", "noise_variance", "boundary", "window_axes",
        "num_offsets", "zero_variance", "zero_variance_voxels", "workers",
        "elapsed_seconds", "output_shape",
    }
    assert expected == set(params)
    assert params["method"] == "vectorized"


# ---------------------------------------------------------------------------
# Zero-variance policies through the driver
# ---------------------------------------------------------------------------
def test_raise_policy_on_flat_region():
    image = create_outlier_image((5, 5))
    with pytest.raises(NumericDegeneracyError):
        adaptive_wiener_filter(image, 1, 1.0, zero_variance="raise")


def test_raise_policy_from_worker_thread():
    image = np.full((4, 5, 5), 2.0)
    with pytest.raises(NumericDegeneracyError):
        adaptive_wiener_filter(image, 1, 1.0, zero_variance="raise", workers=2)


def test_propagate_policy_gives_nan_on_flat_region():
    image = create_outlier_image((5, 5))
    filtered, _ = adaptive_wiener_filter(image, 1, 1.0, zero_variance="propagate")
    assert np.isnan(filtered[0, 0])
    assert np.isfinite(filtered[2, 2])


# ---------------------------------------------------------------------------
# Denoising quality and noise estimation
# ---------------------------------------------------------------------------
def test_filter_improves_psnr(phantom):
    filtered, _ = adaptive_wiener_filter(phantom["volume"], 1, phantom["noise_variance"])
    metrics = evaluate_denoising(phantom["clean"], phantom["volume"], filtered)
    assert metrics["psnr_gain"] > 1.0
    assert metrics["mse_filtered"] < metrics["mse_noisy"]


def test_clipped_gain_improves_psnr(phantom):
    filtered, _ = adaptive_wiener_filter(
        phantom["volume"], 1, phantom["noise_variance"], clip_gain=True
    )
    metrics = evaluate_denoising(phantom["clean"], phantom["volume"], filtered)
    assert metrics["psnr_gain"] > 3.0


def test_estimate_noise_variance_on_pure_noise():
    """On pure noise the mean local variance is close to the true variance."""
    rng = np.random.default_rng(17)
    noise = rng.normal(0.0, 5.0, size=(24, 24, 24))
    estimate = estimate_noise_variance(noise, radius=1)
    assert 0.85 * 25.0 < estimate < 1.05 * 25.0


def test_local_statistics_shapes(random_volume):
    mean, variance = local_statistics(random_volume, 1)
    assert mean.shape == variance.shape == SHAPE
    assert np.all(variance >= 0)


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------
def test_window_ndim():
    assert window_ndim(3, "volume") == 3
    assert window_ndim(3, "plane") == 2
    assert window_ndim(2, "plane") == 2
    with pytest.raises(ValueError, match="Unknown window axes"):
        window_ndim(3, "line")


@pytest.mark.parametrize(
    "kwargs, match",
    [
        ({"radius": -1, "noise_variance": 1.0}, "radius"),
        ({"radius": 1, "noise_variance": -1.0}, "noise_variance"),
        ({"radius": 1, "noise_variance": float("nan")}, "noise_variance"),
        ({"radius": 1, "noise_variance": 1.0, "boundary": "wrap"}, "boundary"),
        ({"radius": 1, "noise_variance": 1.0, "zero_variance": "skip"}, "zero-variance"),
        ({"radius": 1, "noise_variance": 1.0, "workers": 0}, "workers"),
    ],
)
def test_invalid_arguments(random_volume, kwargs, match):
    with pytest.raises(ValueError, match=match):
        adaptive_wiener_filter(random_volume, **kwargs)


def test_empty_image():
    with pytest.raises(ValueError, match="non-empty"):
        adaptive_wiener_filter(np.zeros((0, 4)), 1, 1.0)


def test_large_values_are_not_flat():
    """Real spread on top of a large offset is filtered by the formula."""
    image = 1e13 + np.arange(25.0).reshape(5, 5)
    filtered, params = adaptive_wiener_filter(image, 1, 0.5, zero_variance="raise")
    assert params["zero_variance_voxels"] == 0
    assert np.any(np.abs(filtered - image) > 0)


@pytest.mark.parametrize("driver", [adaptive_wiener_filter, adaptive_wiener_filter_reference])
def test_flat_count_matches_across_policies(driver):
    """Every policy counts the same 16 flat neighborhoods of the outlier image."""
    image = create_outlier_image((5, 5))
    counts = {
        policy: driver(image, 1, 1.0, zero_variance=policy)[1]["zero_variance_voxels"]
        for policy in ("mean", "propagate")
    }
    assert counts == {"mean": 16, "propagate": 16}
