"""Filter run reporting: JSON record plus a human-readable text summary."""

from __future__ import annotations

import json
import numpy as np
from pathlib import Path


def _default(obj):
    """JSON serialiser for numpy types."""
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating,)):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def generate_report(
    params: dict,
    input_summary: dict,
    output_summary: dict,
    save_dir: str | Path,
    metrics: dict | None = None,
) -> dict:
    """Write the parameters and statistics of a filter run to disk.

    Parameters
    ----------
    params : dict
        Parameter dictionary returned by the filter driver (``radius``,
        ``noise_variance``, ``boundary``, ``elapsed_seconds``, ...).
    input_summary, output_summary : dict
        Volume statistics from
        :func:`~adaptive_wiener.statistics.local.summarize_volume`.
    save_dir : str | Path
        Root output directory.  Files are written into ``save_dir/results/``.
    metrics : dict | None
        Optional quality metrics (e.g. from
        :func:`~adaptive_wiener.evaluation.metrics.evaluate_denoising`).

    Returns
    -------
    dict
        The report dictionary that was saved as ``filter_report.json``.
    """
    save_dir = Path(save_dir)
    results_dir = save_dir / "results"
    results_dir.mkdir(parents=True, exist_ok=True)

    report = {
        "params": params,
        "input": input_summary,
        "output": output_summary,
        "metrics": metrics or {},
    }

    # ---- Save JSON -----------------------------------------------------
    with open(results_dir / "filter_report.json", "w") as fh:
        json.dump(report, fh, indent=2, default=_default)

    # ---- Save text summary ---------------------------------------------
    lines: list[str] = []
    lines.append("=" * 60)
    lines.append("  Adaptive Wiener Filter -- Summary Report")
    lines.append("=" * 60)
    lines.append("")
    lines.append(f"  Window radius      : {params.get('radius')}")
    lines.append(f"  Offsets per voxel  : {params.get('num_offsets')}")
    lines.append(f"  Noise variance     : {params.get('noise_variance')}")
    lines.append(f"  Boundary           : {params.get('boundary')}")
    lines.append(f"  Zero-variance      : {params.get('zero_variance')} "
                 f"({params.get('zero_variance_voxels', 0)} voxels)")
    elapsed = params.get("elapsed_seconds")
    if elapsed is not None:
        lines.append(f"  Elapsed            : {elapsed:.3f}s")
    lines.append("")

    for label, summary in (("Input", input_summary), ("Output", output_summary)):
        if "mean" in summary:
            lines.append(
                f"  {label:<6} min/max/mean/std : {summary['min']:.4g} / "
                f"{summary['max']:.4g} / {summary['mean']:.4g} / {summary['std']:.4g}"
            )
        if summary.get("non_finite_voxels"):
            lines.append(f"  {label:<6} non-finite voxels: {summary['non_finite_voxels']}")

    if metrics:
        lines.append("")
        for key, value in metrics.items():
            lines.append(f"  {key:<18} : {value:.4f}")

    lines.append("")
    lines.append("=" * 60)
    lines.append("")

    (results_dir / "filter_report.txt").write_text("\n".join(lines))

    return report
