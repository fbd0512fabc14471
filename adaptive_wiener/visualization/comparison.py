"""Side-by-side figures of noisy, filtered and clean images."""

import numpy as np
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from pathlib import Path


def central_slice(volume: np.ndarray, axis: int = 0) -> np.ndarray:
    """Middle slice of a 3-D volume along *axis*; 2-D input is returned as is.

    Parameters
    ----------
    volume : np.ndarray
        2-D image or 3-D array (Z, Y, X).
    axis : int
        Axis to slice across. 0 = Z (axial), 1 = Y (coronal), 2 = X (sagittal).
    """
    if volume.ndim == 2:
        return volume
    return np.take(volume, volume.shape[axis] // 2, axis=axis)


def create_comparison_figure(
    noisy: np.ndarray,
    filtered: np.ndarray,
    clean: np.ndarray | None = None,
    save_path: str | Path | None = None,
) -> plt.Figure:
    """Create a one-row figure comparing the filter input and output.

    Panels: Noisy | Filtered | Removed (noisy - filtered) | Clean (optional).
    Noisy, filtered and clean share one grey-level range so they can be
    compared directly.

    Parameters
    ----------
    noisy : np.ndarray
        Filter input.
    filtered : np.ndarray
        Filter output, same shape as *noisy*.
    clean : np.ndarray | None
        Noise-free reference, when known.
    save_path : str | Path | None
        If given, figure is saved to this path.

    Returns
    -------
    plt.Figure
        The generated matplotlib figure.
    """
    noisy_2d = central_slice(noisy)
    filtered_2d = central_slice(filtered)
    removed_2d = noisy_2d - filtered_2d

    panels = [("Noisy", noisy_2d), ("Filtered", filtered_2d)]
    if clean is not None:
        panels.append(("Clean", central_slice(clean)))

    finite = np.concatenate([p[np.isfinite(p)].ravel() for _, p in panels])
    vmin, vmax = (float(finite.min()), float(finite.max())) if finite.size else (0.0, 1.0)

    fig, axes = plt.subplots(1, len(panels) + 1, figsize=(5 * (len(panels) + 1), 5))

    for ax, (title, image) in zip(axes, panels):
        ax.imshow(image, cmap="gray", vmin=vmin, vmax=vmax)
        ax.set_title(title)
        ax.axis("off")

    # Removed component, symmetric colour range around zero
    removed_finite = np.abs(removed_2d[np.isfinite(removed_2d)])
    limit = float(removed_finite.max()) if removed_finite.size else 0.0
    limit = limit or 1.0
    im = axes[-1].imshow(removed_2d, cmap="coolwarm", vmin=-limit, vmax=limit)
    axes[-1].set_title("Removed (noisy - filtered)")
    axes[-1].axis("off")
    fig.colorbar(im, ax=axes[-1], fraction=0.046, pad=0.04)

    fig.tight_layout()

    if save_path is not None:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(str(save_path), dpi=150, bbox_inches="tight")

    return fig
