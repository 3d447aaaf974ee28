"""Tunable parameters for bubble detection, with JSON loading."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionConfig:
    """All knobs of the detection pipeline.

    Defaults are tuned for clean scans with strong light/dark contrast:
    bubbles 10-30px in radius, a dark pixel below intensity 128 and a bubble
    counted as filled when at least 40% of its inner disk is dark.
    """

    # Preprocessing
    blur_kernel_size: int = 5

    # Circle search
    min_radius: int = 10
    max_radius: int = 30
    min_center_distance: float = 20.0
    edge_threshold: float = 50.0
    center_threshold: int = 30
    accumulator_resolution: float = 1.0

    # Fill classification
    fill_threshold: float = 0.4
    dark_intensity: int = 128
    inner_radius_ratio: float = 0.7

    # Grid assignment
    row_band_height: int = 50
    row_break_threshold: int = 30

    def __post_init__(self) -> None:
        if self.blur_kernel_size < 1 or self.blur_kernel_size % 2 == 0:
            raise ValueError(f"blur_kernel_size must be a positive odd number, got {self.blur_kernel_size}")
        if self.min_radius < 1:
            raise ValueError(f"min_radius must be >= 1, got {self.min_radius}")
        if self.max_radius < self.min_radius:
            raise ValueError(
                f"max_radius ({self.max_radius}) must be >= min_radius ({self.min_radius})"
            )
        if self.min_center_distance < 0:
            raise ValueError(f"min_center_distance must be >= 0, got {self.min_center_distance}")
        if self.edge_threshold <= 0:
            raise ValueError(f"edge_threshold must be > 0, got {self.edge_threshold}")
        if self.center_threshold < 1:
            raise ValueError(f"center_threshold must be >= 1, got {self.center_threshold}")
        if self.accumulator_resolution <= 0:
            raise ValueError(f"accumulator_resolution must be > 0, got {self.accumulator_resolution}")
        if not (0.0 <= self.fill_threshold <= 1.0):
            raise ValueError(f"fill_threshold must be in range [0, 1], got {self.fill_threshold}")
        if not (0 <= self.dark_intensity <= 256):
            raise ValueError(f"dark_intensity must be in range [0, 256], got {self.dark_intensity}")
        if not (0.0 < self.inner_radius_ratio <= 1.0):
            raise ValueError(f"inner_radius_ratio must be in range (0, 1], got {self.inner_radius_ratio}")
        if self.row_band_height < 1:
            raise ValueError(f"row_band_height must be >= 1, got {self.row_band_height}")
        if self.row_break_threshold < 0:
            raise ValueError(f"row_break_threshold must be >= 0, got {self.row_break_threshold}")

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "DetectionConfig":
        """Merge a mapping over the defaults, rejecting unknown keys."""

        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

        values = {}
        for name, value in data.items():
            values[name] = _numeric_value(name, value, type(getattr(cls, name)))
        return cls(**values)

    def with_overrides(self, **overrides: Optional[object]) -> "DetectionConfig":
        """Return a copy with the non-None overrides applied."""

        changes = {name: value for name, value in overrides.items() if value is not None}
        if not changes:
            return self
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _numeric_value(name: str, value: object, kind: type) -> object:
    # bool is an int subclass but never a valid threshold
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Config key '{name}' must be a number, got {value!r}")
    if kind is int:
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"Config key '{name}' must be a whole number, got {value!r}")
        return int(value)
    return float(value)


def load_config(config_file: Optional[Path] = None) -> DetectionConfig:
    """Load a detection config from JSON; fall back to defaults."""

    if config_file is None:
        return DetectionConfig()
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")

    with config_file.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {config_file}")

    config = DetectionConfig.from_dict(data)
    logger.debug("Loaded config from %s: %s", config_file, config)
    return config


def save_config(config: DetectionConfig, config_file: Path) -> None:
    """Persist a config for later CLI runs."""

    config_file.parent.mkdir(parents=True, exist_ok=True)
    with config_file.open("w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
