"""Exception types raised by the adaptive Wiener filter package.

Library functions raise :class:`ValueError` for bad arguments (unknown
boundary mode, negative radius, ...).  The classes below cover the failures
that callers are expected to tell apart.
"""

from __future__ import annotations


class AdaptiveWienerError(Exception):
    """Base class for all package-specific errors."""


class ConfigurationError(AdaptiveWienerError, ValueError):
    """Missing or malformed command-line / YAML configuration."""


class ImageReadError(AdaptiveWienerError, OSError):
    """An input image could not be read."""


class ImageWriteError(AdaptiveWienerError, OSError):
    """An output image could not be written."""


class NumericDegeneracyError(AdaptiveWienerError, ArithmeticError):
    """Local variance vanished while the ``"raise"`` policy was active."""


class PreconditionViolation(AdaptiveWienerError, AssertionError):
    """An internal invariant was broken (e.g. an empty sample vector)."""
