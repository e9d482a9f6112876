"""
DetectorConfig: validated detector settings loaded from ``configs/detector.yaml``.

Usage:
    cfg = DetectorConfig.from_yaml()                    # repository defaults
    cfg = cfg.with_overrides(block_size=8, blur_radius=None)   # None = keep
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Union

import yaml

from copymove.histogram import ExactKey, KeyPolicy, QuantizedKey


CONFIG_PATH = Path(__file__).parent.parent / "configs" / "detector.yaml"


@dataclass(frozen=True)
class DetectorConfig:
    block_size: int = 4
    blur_radius: int = 1
    distance_threshold: float = 0.4
    offset_threshold: int = 72
    forgery_threshold: float = 210.0
    max_image_size: int = 320
    offset_quantization: float = 0.0
    workers: int = 1
    chunk_size: int = 4096
    overlay_blur_radius: int = 10

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ``ValueError`` on any setting the pipeline cannot run with."""
        for f in fields(self):
            value = getattr(self, f.name)
            allowed = (int,) if f.type == "int" else (int, float)
            if isinstance(value, bool) or not isinstance(value, allowed):
                raise ValueError(f"{f.name} must be {f.type}, got {value!r}")
        if self.block_size <= 1:
            raise ValueError(f"The block size must be greater than 1, got {self.block_size}")
        if self.blur_radius < 0:
            raise ValueError(f"Blur radius must be >= 0, got {self.blur_radius}")
        if self.overlay_blur_radius < 0:
            raise ValueError(f"Overlay blur radius must be >= 0, got {self.overlay_blur_radius}")
        if self.distance_threshold < 0:
            raise ValueError(f"Distance threshold must be >= 0, got {self.distance_threshold}")
        if self.offset_threshold < 0:
            raise ValueError(f"Offset threshold must be >= 0, got {self.offset_threshold}")
        if self.forgery_threshold < 0:
            raise ValueError(f"Forgery threshold must be >= 0, got {self.forgery_threshold}")
        if self.max_image_size < 0:
            raise ValueError(f"Max image size must be >= 0, got {self.max_image_size}")
        if self.offset_quantization < 0:
            raise ValueError(f"Offset quantization must be >= 0, got {self.offset_quantization}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path] = CONFIG_PATH) -> "DetectorConfig":
        try:
            with open(config_path, encoding="utf-8") as f:
                cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Malformed config {config_path}: {exc}") from exc
        section = cfg.get("detector", cfg) if isinstance(cfg, dict) else cfg
        if section is None:
            section = {}
        if not isinstance(section, dict):
            raise ValueError(f"Config {config_path} must be a mapping of detector settings")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            raise ValueError(f"Unknown detector settings in {config_path}: {', '.join(unknown)}")
        return cls(**section)

    def with_overrides(self, **overrides: Any) -> "DetectorConfig":
        """Return a copy with every non-``None`` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def key_policy(self) -> KeyPolicy:
        if self.offset_quantization > 0:
            return QuantizedKey(self.offset_quantization)
        return ExactKey()

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}
