# src/midpointfinder/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/midpointfinder/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `MIDPOINTFINDER_LOG_LEVEL`, `MIDPOINTFINDER_MAX_COMBINATIONS`)
- an external YAML file via `MIDPOINTFINDER_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in the engine.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from midpointfinder.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `midpointfinder.config`."""
    text = resources.files("midpointfinder.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


OddLengthPolicy = Literal["reject", "truncate"]


class AppSettings(BaseModel):
    name: str = "MidpointFinder"
    log_level: str = "INFO"


class EngineSettings(BaseModel):
    earth_radius_km: float = Field(6371.0, gt=0)
    # Upper bound on |A| x |B| for a single call; every pair is held in memory.
    max_combinations: int = Field(50_000_000, ge=1)
    odd_length_policy: OddLengthPolicy = "reject"
    default_top_n: int = Field(100, ge=0)
    max_top_n: int = Field(10_000, ge=1)


class ReflectionSettings(BaseModel):
    max_distance_km: float = Field(20_000, gt=0)
    antipodal_threshold_km: float = Field(10_000, gt=0)


class GridSettings(BaseModel):
    cell_deg: float = Field(5.0, gt=0, le=180)
    heatmap_tile_km: float = Field(100.0, gt=0)


class PointsSettings(BaseModel):
    default_radius_km: float = Field(10.0, ge=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    reflection: ReflectionSettings = Field(default_factory=ReflectionSettings)
    grid: GridSettings = Field(default_factory=GridSettings)
    points: PointsSettings = Field(default_factory=PointsSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("MIDPOINTFINDER_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    max_combos = os.getenv("MIDPOINTFINDER_MAX_COMBINATIONS")
    if max_combos:
        data.setdefault("engine", {})["max_combinations"] = int(max_combos)

    odd_policy = os.getenv("MIDPOINTFINDER_ODD_LENGTH_POLICY")
    if odd_policy:
        data.setdefault("engine", {})["odd_length_policy"] = odd_policy.strip().lower()

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("MIDPOINTFINDER_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
