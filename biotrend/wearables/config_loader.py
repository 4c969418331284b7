"""Load, validate, and hot-reload the analysis configuration.

The config lives in ``analysis_config.yaml`` alongside this module.  It is
loaded once and cached; call ``reload_analysis_config()`` to re-read it from
disk without a restart.

Usage::

    from biotrend.wearables.config_loader import get_analysis_config

    config = get_analysis_config()
    config.trend.window_cap        # 7
    config.trend.change_threshold  # 0.05
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("biotrend.wearables.config")

_CONFIG_PATH = Path(__file__).parent / "analysis_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class TrendConfig:
    """Windowed-average trend classification settings."""

    window_cap: int = 7
    min_samples: int = 3
    change_threshold: float = 0.05


@dataclass
class StatisticsConfig:
    """Historical statistics settings."""

    days_per_week: int = 7
    rate_decimals: int = 1


@dataclass
class AnalysisConfig:
    """Complete, validated analysis configuration.

    Attributes:
        version:    Config schema version string.
        trend:      Trend analyzer parameters.
        statistics: Statistics reporter parameters.
    """

    version: str = "1.0"
    trend: TrendConfig = field(default_factory=TrendConfig)
    statistics: StatisticsConfig = field(default_factory=StatisticsConfig)
    _raw: dict = field(default_factory=dict, repr=False)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when analysis_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError:     If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Analysis config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> AnalysisConfig:
    """Validate the raw YAML dict and construct an AnalysisConfig.

    Missing sections fall back to defaults; every problem found is reported
    in a single ConfigValidationError.
    """
    errors: list[str] = []

    if not isinstance(raw, dict):
        raise ConfigValidationError("analysis config root must be a mapping")

    def _number(section: dict, key: str, default: float, cast: type, name: str) -> float:
        value = section.get(key, default)
        try:
            return cast(value)
        except (TypeError, ValueError):
            errors.append(f"{name}.{key} must be a number, got {value!r}")
            return default

    version = str(raw.get("version", "1.0"))

    # ── Trend ──
    tr_raw = raw.get("trend") or {}
    if not isinstance(tr_raw, dict):
        errors.append("'trend' must be a mapping")
        tr_raw = {}
    trend = TrendConfig(
        window_cap=int(_number(tr_raw, "window_cap", 7, int, "trend")),
        min_samples=int(_number(tr_raw, "min_samples", 3, int, "trend")),
        change_threshold=_number(tr_raw, "change_threshold", 0.05, float, "trend"),
    )
    if trend.window_cap < 1:
        errors.append(f"trend.window_cap = {trend.window_cap} must be >= 1")
    # Two samples are the minimum that yields a non-empty window on each side.
    if trend.min_samples < 2:
        errors.append(f"trend.min_samples = {trend.min_samples} must be >= 2")
    if not (0.0 <= trend.change_threshold < 1.0):
        errors.append(
            f"trend.change_threshold = {trend.change_threshold} is out of range [0.0, 1.0)"
        )

    # ── Statistics ──
    st_raw = raw.get("statistics") or {}
    if not isinstance(st_raw, dict):
        errors.append("'statistics' must be a mapping")
        st_raw = {}
    statistics = StatisticsConfig(
        days_per_week=int(_number(st_raw, "days_per_week", 7, int, "statistics")),
        rate_decimals=int(_number(st_raw, "rate_decimals", 1, int, "statistics")),
    )
    if statistics.days_per_week < 1:
        errors.append(f"statistics.days_per_week = {statistics.days_per_week} must be >= 1")
    if statistics.rate_decimals < 0:
        errors.append(f"statistics.rate_decimals = {statistics.rate_decimals} must be >= 0")

    if errors:
        raise ConfigValidationError(
            f"analysis_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return AnalysisConfig(version=version, trend=trend, statistics=statistics, _raw=raw)


def load_analysis_config(path: Path | None = None) -> AnalysisConfig:
    """Load and validate the analysis config from disk.

    Args:
        path: Override path to YAML. Uses the bundled analysis_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded analysis config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: AnalysisConfig | None = None
_config_lock = threading.Lock()


def get_analysis_config() -> AnalysisConfig:
    """Return the global AnalysisConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_analysis_config()
    return _config


def reload_analysis_config(path: Path | None = None) -> AnalysisConfig:
    """Reload the analysis config from disk and replace the global singleton.

    If validation fails the old config is retained and the error re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_analysis_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded analysis config: %s → %s", old_version, new_config.version)
    return new_config
