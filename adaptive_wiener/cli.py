"""Command line tool: adaptive Wiener filtering of an image file.

Usage:
    adaptive-wiener input.nii.gz output.nii.gz 1 25.0
    adaptive-wiener slice.png filtered.png 2 100 --config config.yaml
    adaptive-wiener volume.npy filtered.npy 1 0.01 --no-rescale --workers 4

Exit status is 0 on success, 1 when the image cannot be read or written,
2 for missing or malformed arguments, and 3 when a flat neighborhood is
hit under the "raise" zero-variance policy.
"""

from __future__ import annotations

import argparse
import sys
import time
from typing import Callable

import numpy as np

from adaptive_wiener.config import FilterConfig, build_config, load_yaml_config
from adaptive_wiener.data.loaders import read_image
from adaptive_wiener.data.writers import write_image
from adaptive_wiener.errors import ConfigurationError, NumericDegeneracyError
from adaptive_wiener.filtering.wiener import (
    adaptive_wiener_filter,
    adaptive_wiener_filter_reference,
)
from adaptive_wiener.neighborhood.sampling import BOUNDARY_MODES
from adaptive_wiener.preprocessing.rescale import rescale_intensity
from adaptive_wiener.statistics.local import summarize_volume

EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_USAGE = 2
EXIT_NUMERIC = 3


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got '{text}'")
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return value


def _non_negative_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a non-negative number, got '{text}'")
    if not np.isfinite(value) or value < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative number, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adaptive-wiener",
        description="Adaptive (local) Wiener noise reduction for 2-D images and 3-D volumes",
    )
    parser.add_argument("input_path", help="Input image (NIfTI, DICOM dir, .npy, PNG/TIFF/...).")
    parser.add_argument("output_path", help="Output image; format from the extension.")
    parser.add_argument("window_radius", type=_non_negative_int,
                        help="Neighborhood radius; the window side is 2*radius+1.")
    parser.add_argument("noise_variance", type=_non_negative_float,
                        help="Variance of the additive noise, in input units.")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (default: config.yaml if present).",
    )
    parser.add_argument("--workers", type=int, default=None,
                        help="Number of threads (overrides filter.workers).")
    parser.add_argument("--boundary", choices=BOUNDARY_MODES, default=None,
                        help="Out-of-bounds policy (overrides filter.boundary).")
    parser.add_argument("--no-rescale", dest="rescale", action="store_const", const=False,
                        default=None, help="Write the filtered values unscaled.")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output.")
    return parser


def run_filter(config: FilterConfig, echo: Callable[[str], None] = print) -> int:
    """Run read -> filter -> rescale -> write for one configuration.

    Returns the process exit status.
    """
    t0 = time.perf_counter()

    # ------------------------------------------------------------------
    # Step 1: Read input
    # ------------------------------------------------------------------
    echo(f"[step 1] Reading {config.input_path} ...")
    loaded = read_image(config.input_path)
    if not loaded.ok:
        print(f"error: cannot read input ({loaded.kind}): {loaded.error}", file=sys.stderr)
        return EXIT_IO_ERROR
    volume = loaded.volume
    echo(f"         Shape: {volume.shape}  source: {loaded.metadata.get('source')}")

    # ------------------------------------------------------------------
    # Step 2: Filter
    # ------------------------------------------------------------------
    echo(f"[step 2] Filtering (radius={config.window_radius}, "
         f"noise_variance={config.noise_variance}, boundary={config.boundary}, "
         f"method={config.method}) ...")
    options = dict(
        boundary=config.boundary,
        cval=config.cval,
        window_axes=config.window_axes,
        zero_variance=config.zero_variance,
        epsilon=config.epsilon,
        clip_gain=config.clip_gain,
    )
    try:
        if config.method == "reference":
            filtered, params = adaptive_wiener_filter_reference(
                volume, config.window_radius, config.noise_variance, **options
            )
        else:
            filtered, params = adaptive_wiener_filter(
                volume, config.window_radius, config.noise_variance,
                workers=config.workers, **options
            )
    except NumericDegeneracyError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_NUMERIC
    echo(f"         {params['num_offsets']} offsets per voxel, "
         f"{params['zero_variance_voxels']} flat neighborhoods, "
         f"{params['elapsed_seconds']:.2f}s")

    # ------------------------------------------------------------------
    # Step 3: Rescale for storage
    # ------------------------------------------------------------------
    if config.rescale:
        echo(f"[step 3] Rescaling to [{config.out_min:g}, {config.out_max:g}] (uint8) ...")
        output = rescale_intensity(filtered, config.out_min, config.out_max, dtype=np.uint8)
    else:
        echo("[step 3] Rescaling skipped")
        output = filtered

    # ------------------------------------------------------------------
    # Step 4: Write output
    # ------------------------------------------------------------------
    echo(f"[step 4] Writing {config.output_path} ...")
    written = write_image(output, config.output_path, loaded.metadata)
    if not written.ok:
        print(f"error: cannot write output ({written.kind}): {written.error}", file=sys.stderr)
        return EXIT_IO_ERROR

    # ------------------------------------------------------------------
    # Step 5: Optional report and figure
    # ------------------------------------------------------------------
    if config.save_report:
        from adaptive_wiener.visualization.report import generate_report

        echo(f"[step 5] Writing report -> {config.report_dir / 'results'}")
        generate_report(
            params={**params, "config": config.to_dict()},
            input_summary=summarize_volume(volume),
            output_summary=summarize_volume(filtered),
            save_dir=config.report_dir,
        )

    if config.save_figure:
        import matplotlib.pyplot as plt

        from adaptive_wiener.visualization.comparison import create_comparison_figure

        figure_path = config.report_dir / "figures" / "comparison.png"
        echo(f"[step 5] Saving comparison figure -> {figure_path}")
        fig = create_comparison_figure(volume, filtered, save_path=figure_path)
        plt.close(fig)

    echo(f"Done in {time.perf_counter() - t0:.2f}s")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(
            args.input_path,
            args.output_path,
            args.window_radius,
            args.noise_variance,
            yaml_config=load_yaml_config(args.config),
            workers=args.workers,
            boundary=args.boundary,
            rescale=args.rescale,
            quiet=args.quiet or None,
        )
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    echo = (lambda _msg: None) if config.quiet else print
    return run_filter(config, echo=echo)


if __name__ == "__main__":
    sys.exit(main())
