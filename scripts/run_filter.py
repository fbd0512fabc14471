#!/usr/bin/env python
"""Adaptive Wiener filtering of an image file.

Usage:
    python scripts/run_filter.py input.nii.gz output.nii.gz 1 25.0
    python scripts/run_filter.py slice.png filtered.png 2 100 --config config.yaml
"""

from __future__ import annotations

import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Ensure the project root is on sys.path so that ``from adaptive_wiener...``
# works when the script is invoked directly from a checkout.
# ---------------------------------------------------------------------------
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from adaptive_wiener.cli import main


if __name__ == "__main__":
    sys.exit(main())
