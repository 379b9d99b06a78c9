"""Load and validate the cycle prediction configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  It is
loaded once and cached; ``reload_cycle_config()`` re-reads it from disk.

Usage::

    from flowelle.menstrual.config_loader import get_cycle_config

    config = get_cycle_config()
    config.prediction.ovulation_offset_days   # 14
    config.intensity_in_range(3)              # True
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("flowelle.menstrual.config")

_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class PredictionConfig:
    """Calendar-based prediction constants."""

    ovulation_offset_days: int = 14
    fertile_window_days: int = 5
    min_gap_exclusive_days: int = 0
    max_gap_exclusive_days: int = 60

    def gap_is_plausible(self, gap_days: int) -> bool:
        return self.min_gap_exclusive_days < gap_days < self.max_gap_exclusive_days


@dataclass
class SymptomDefinition:
    """One entry of the global symptom catalog."""

    name: str
    icon: str | None = None


@dataclass
class CycleConfig:
    """Complete, validated cycle configuration.

    Attributes:
        version:         Config schema version string.
        prediction:      Ovulation / fertile window / outlier settings.
        intensity_min:   Lowest accepted symptom intensity.
        intensity_max:   Highest accepted symptom intensity.
        symptom_catalog: Symptoms seeded into the database at startup.
    """

    version: str
    prediction: PredictionConfig
    intensity_min: int
    intensity_max: int
    symptom_catalog: list[SymptomDefinition]
    _raw: dict = field(default_factory=dict, repr=False)

    def intensity_in_range(self, intensity: int) -> bool:
        return self.intensity_min <= intensity <= self.intensity_max


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _as_int(value: Any, key: str, errors: list[str], default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        errors.append(f"{key} must be an integer, got {value!r}")
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        errors.append(f"{key} must be an integer, got {value!r}")
        return default


def _validate_and_build(raw: dict) -> CycleConfig:
    """Validate the raw YAML dict and construct a CycleConfig.

    Raises:
        ConfigValidationError: If any field is missing or invalid.
    """
    errors: list[str] = []

    version = str(raw.get("version", "1.0"))

    # ── Prediction ──
    pred_raw = raw.get("prediction") or {}
    gap_raw = pred_raw.get("cycle_gap") or {}
    prediction = PredictionConfig(
        ovulation_offset_days=_as_int(
            pred_raw.get("ovulation_offset_days"), "prediction.ovulation_offset_days", errors, 14
        ),
        fertile_window_days=_as_int(
            pred_raw.get("fertile_window_days"), "prediction.fertile_window_days", errors, 5
        ),
        min_gap_exclusive_days=_as_int(
            gap_raw.get("min_exclusive_days"), "prediction.cycle_gap.min_exclusive_days", errors, 0
        ),
        max_gap_exclusive_days=_as_int(
            gap_raw.get("max_exclusive_days"), "prediction.cycle_gap.max_exclusive_days", errors, 60
        ),
    )
    if prediction.ovulation_offset_days < 1:
        errors.append("prediction.ovulation_offset_days must be at least 1")
    if not (0 <= prediction.fertile_window_days <= prediction.ovulation_offset_days):
        errors.append(
            "prediction.fertile_window_days must be between 0 and ovulation_offset_days"
        )
    if prediction.min_gap_exclusive_days >= prediction.max_gap_exclusive_days:
        errors.append("prediction.cycle_gap.min_exclusive_days must be below max_exclusive_days")

    # ── Symptom intensity ──
    int_raw = raw.get("symptom_intensity") or {}
    intensity_min = _as_int(int_raw.get("min"), "symptom_intensity.min", errors, 1)
    intensity_max = _as_int(int_raw.get("max"), "symptom_intensity.max", errors, 5)
    if intensity_min > intensity_max:
        errors.append(
            f"symptom_intensity.min ({intensity_min}) exceeds max ({intensity_max})"
        )

    # ── Symptom catalog ──
    catalog: list[SymptomDefinition] = []
    seen: set[str] = set()
    for i, entry in enumerate(raw.get("symptom_catalog") or []):
        if not isinstance(entry, dict) or not entry.get("name"):
            errors.append(f"symptom_catalog[{i}] must be a mapping with a 'name'")
            continue
        name = str(entry["name"]).strip()
        if name.lower() in seen:
            errors.append(f"symptom_catalog has duplicate name '{name}'")
            continue
        seen.add(name.lower())
        icon = entry.get("icon")
        catalog.append(SymptomDefinition(name=name, icon=str(icon) if icon else None))

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleConfig(
        version=version,
        prediction=prediction,
        intensity_min=intensity_min,
        intensity_max=intensity_max,
        symptom_catalog=catalog,
        _raw=raw,
    )


def load_cycle_config(path: Path | None = None) -> CycleConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton
# ---------------------------------------------------------------------------

_config: CycleConfig | None = None
_config_lock = threading.Lock()


def get_cycle_config() -> CycleConfig:
    """Return the global CycleConfig, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_cycle_config()
    return _config


def reload_cycle_config(path: Path | None = None) -> CycleConfig:
    """Re-read the cycle config and replace the global singleton.

    If validation fails the old config is retained and the error re-raised.
    """
    global _config
    new_config = load_cycle_config(path)
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded cycle config: %s → %s", old_version, new_config.version)
    return new_config
