#!/usr/bin/env python3
"""Generate synthetic noisy volumes for exercising the adaptive Wiener filter.

Creates several .npy volumes with varying shape and noise level plus their
clean counterparts, so filter output can be compared against known ground
truth.  A ``manifest.json`` records the true noise variance of each one.

Usage:
    python -m scripts.generate_test_data
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import numpy as np

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from adaptive_wiener.data.phantom import create_noisy_phantom, create_outlier_image

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
NPY_DIR = DATA_DIR / "numpy"
GT_DIR = DATA_DIR / "ground_truth"


DATASETS = [
    {
        "name": "low_noise",
        "params": {"shape": (32, 64, 64), "noise_sigma": 4.0, "seed": 100},
        "description": "Mild noise, edges clearly above the noise floor",
    },
    {
        "name": "high_noise",
        "params": {"shape": (32, 64, 64), "noise_sigma": 25.0, "seed": 200},
        "description": "Noise comparable to the edge contrast - challenging case",
    },
    {
        "name": "single_slice",
        "params": {"shape": (1, 128, 128), "noise_sigma": 10.0, "seed": 300},
        "description": "One slice, for checking in-plane behaviour",
    },
    {
        "name": "anisotropic_volume",
        "params": {"shape": (96, 48, 48), "noise_sigma": 10.0, "seed": 400},
        "description": "Non-cubic volume",
    },
]


def main() -> None:
    NPY_DIR.mkdir(parents=True, exist_ok=True)
    GT_DIR.mkdir(parents=True, exist_ok=True)

    manifest = []

    for ds in DATASETS:
        name = ds["name"]
        print(f"Generating: {name} ...")

        result = create_noisy_phantom(**ds["params"])

        vol_path = NPY_DIR / f"{name}.npy"
        np.save(str(vol_path), result["volume"])

        clean_path = GT_DIR / f"{name}_clean.npy"
        np.save(str(clean_path), result["clean"])

        entry = {
            "name": name,
            "description": ds["description"],
            "volume": str(vol_path.relative_to(DATA_DIR.parent)),
            "clean": str(clean_path.relative_to(DATA_DIR.parent)),
            "shape": list(result["metadata"]["shape"]),
            "noise_variance": result["noise_variance"],
            "edge_voxel_fraction": round(result["metadata"]["edge_voxel_fraction"], 4),
        }
        manifest.append(entry)

        size_mb = vol_path.stat().st_size / (1024 * 1024)
        print(f"  -> {vol_path.name} ({size_mb:.1f} MB), shape={result['metadata']['shape']}, "
              f"noise_variance={result['noise_variance']:.1f}")

    # Impulse check image: flat 10.0 with a single 100.0 outlier
    outlier_path = NPY_DIR / "outlier_5x5.npy"
    np.save(str(outlier_path), create_outlier_image((1, 5, 5)))
    manifest.append({
        "name": "outlier_5x5",
        "description": "Flat 10.0 slice with a 100.0 outlier at the centre",
        "volume": str(outlier_path.relative_to(DATA_DIR.parent)),
        "shape": [1, 5, 5],
    })

    manifest_path = DATA_DIR / "manifest.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)
    print(f"\nManifest saved to {manifest_path}")
    print(f"Total datasets: {len(manifest)}")


if __name__ == "__main__":
    main()
