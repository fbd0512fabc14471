"""Run configuration for the adaptive Wiener filter command line tool.

The four required inputs come from the command line; everything else can be
set in a YAML file (see ``config.yaml`` at the repository root) and a few
options can be overridden by flags.  The result is a single immutable
:class:`FilterConfig` that is passed to the pipeline.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

from adaptive_wiener.errors import ConfigurationError
from adaptive_wiener.filtering.attenuation import ZERO_VARIANCE_POLICIES
from adaptive_wiener.filtering.wiener import WINDOW_AXES
from adaptive_wiener.neighborhood.sampling import BOUNDARY_MODES

DEFAULT_CONFIG_PATH = Path("config.yaml")
METHODS = ("vectorized", "reference")


@dataclass(frozen=True)
class FilterConfig:
    """Everything one filter run needs."""

    input_path: Path
    output_path: Path
    window_radius: int
    noise_variance: float
    boundary: str = "nearest"
    cval: float = 0.0
    window_axes: str = "volume"
    zero_variance: str = "mean"
    epsilon: float = 0.0
    clip_gain: bool = False
    workers: int = 1
    method: str = "vectorized"
    rescale: bool = True
    out_min: float = 0.0
    out_max: float = 255.0
    save_report: bool = False
    save_figure: bool = False
    report_dir: Path = Path("outputs")
    quiet: bool = False

    def __post_init__(self) -> None:
        if self.window_radius < 0:
            raise ConfigurationError(
                f"window radius must be non-negative, got {self.window_radius}"
            )
        if not self.noise_variance >= 0:
            raise ConfigurationError(
                f"noise variance must be non-negative, got {self.noise_variance}"
            )
        _check_choice("filter.boundary", self.boundary, BOUNDARY_MODES)
        _check_choice("filter.window_axes", self.window_axes, WINDOW_AXES)
        _check_choice("filter.zero_variance", self.zero_variance, ZERO_VARIANCE_POLICIES)
        _check_choice("filter.method", self.method, METHODS)
        if self.workers < 1:
            raise ConfigurationError(f"filter.workers must be at least 1, got {self.workers}")
        if self.method == "reference" and self.workers > 1:
            raise ConfigurationError(
                f"filter.method 'reference' runs on one thread, got workers={self.workers}"
            )
        if self.epsilon < 0:
            raise ConfigurationError(f"filter.epsilon must be non-negative, got {self.epsilon}")
        if self.out_max <= self.out_min:
            raise ConfigurationError(
                f"output.out_max ({self.out_max}) must exceed output.out_min ({self.out_min})"
            )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("input_path", "output_path", "report_dir"):
            data[key] = str(data[key])
        return data


def _check_choice(name: str, value: Any, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ConfigurationError(f"{name} must be one of {choices}, got {value!r}")


def _check_flag(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"{name} must be true or false, got {value!r}")
    return value


def load_yaml_config(path: str | Path | None) -> dict[str, Any]:
    """Load the YAML configuration file.

    With *path* ``None`` the default ``config.yaml`` in the working directory
    is used if it exists; otherwise an empty configuration is returned.  An
    explicitly given path that does not exist is an error.

    Raises
    ------
    ConfigurationError
        If the file is missing (explicit path), unparsable, or not a mapping.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return {}
        path = DEFAULT_CONFIG_PATH

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file '{path}' not found")

    try:
        with open(path, "r") as fh:
            config = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Could not parse {path}: {exc}") from exc

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return config


def build_config(
    input_path: str | Path,
    output_path: str | Path,
    window_radius: int,
    noise_variance: float,
    yaml_config: dict[str, Any] | None = None,
    **overrides: Any,
) -> FilterConfig:
    """Combine the required arguments, YAML sections and flag overrides.

    *overrides* with value ``None`` are ignored so that unset command-line
    flags fall through to the YAML values.
    """
    config = dict(yaml_config or {})
    # Provide fallback sections so look-ups never fail.
    filter_cfg = config.setdefault("filter", {}) or {}
    output_cfg = config.setdefault("output", {}) or {}
    for name, section in (("filter", filter_cfg), ("output", output_cfg)):
        if not isinstance(section, dict):
            raise ConfigurationError(f"'{name}' section must be a mapping")

    values: dict[str, Any] = {
        "boundary": filter_cfg.get("boundary", "nearest"),
        "cval": filter_cfg.get("cval", 0.0),
        "window_axes": filter_cfg.get("window_axes", "volume"),
        "zero_variance": filter_cfg.get("zero_variance", "mean"),
        "epsilon": filter_cfg.get("epsilon", 0.0),
        "clip_gain": filter_cfg.get("clip_gain", False),
        "workers": filter_cfg.get("workers", 1),
        "method": filter_cfg.get("method", "vectorized"),
        "rescale": output_cfg.get("rescale", True),
        "out_min": output_cfg.get("out_min", 0.0),
        "out_max": output_cfg.get("out_max", 255.0),
        "save_report": output_cfg.get("save_report", False),
        "save_figure": output_cfg.get("save_figure", False),
        "report_dir": output_cfg.get("report_dir", "outputs"),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return FilterConfig(
            input_path=Path(input_path),
            output_path=Path(output_path),
            window_radius=int(window_radius),
            noise_variance=float(noise_variance),
            boundary=str(values["boundary"]),
            cval=float(values["cval"]),
            window_axes=str(values["window_axes"]),
            zero_variance=str(values["zero_variance"]),
            epsilon=float(values["epsilon"]),
            clip_gain=_check_flag("filter.clip_gain", values["clip_gain"]),
            workers=int(values["workers"]),
            method=str(values["method"]),
            rescale=_check_flag("output.rescale", values["rescale"]),
            out_min=float(values["out_min"]),
            out_max=float(values["out_max"]),
            save_report=_check_flag("output.save_report", values["save_report"]),
            save_figure=_check_flag("output.save_figure", values["save_figure"]),
            report_dir=Path(values["report_dir"]),
            quiet=bool(values.get("quiet", False)),
        )
    except (TypeError, ValueError) as exc:
        if isinstance(exc, ConfigurationError):
            raise
        raise ConfigurationError(f"Invalid configuration value: {exc}") from exc
