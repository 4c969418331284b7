"""Field-name resolution and unit conversion for raw provider records.

Providers reach us through the aggregation service in at least two shapes:
the current snake_case summaries (``duration_total_seconds``,
``calories_active``) and older camelCase / nested shapes (``duration``,
``heartRate.restingHr``).  Each canonical attribute declares an ordered list
of candidate source fields together with the unit that field is expressed in.
The first candidate that is present and non-null wins, and its value is
converted to the canonical unit.

This module is the only place in the package that reads raw provider dicts.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable

from biotrend.wearables.base import (
    CanonicalActivity,
    CanonicalBody,
    CanonicalRecord,
    CanonicalSleep,
    CanonicalWorkout,
    Category,
    round_to_int,
)

logger = logging.getLogger("biotrend.wearables.normalizer")


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

# Value conversion factors: (from_unit, to_unit) → multiply_by
UNIT_CONVERSIONS: dict[tuple[str, str], float] = {
    ("s", "min"): 1 / 60,
    ("h", "min"): 60.0,
    ("km", "m"): 1000.0,
    ("mi", "m"): 1609.344,
    ("g", "kg"): 0.001,
    ("lb", "kg"): 0.45359237,
    ("ratio", "pct"): 100.0,
}


def convert_value(value: float, from_unit: str | None, to_unit: str | None) -> float | None:
    """Convert *value* from *from_unit* to *to_unit*.

    Identical (or unspecified) units pass through unchanged.  Returns ``None``
    when no conversion factor is known.
    """
    if from_unit == to_unit or from_unit is None or to_unit is None:
        return value
    factor = UNIT_CONVERSIONS.get((from_unit, to_unit))
    if factor is None:
        return None
    return value * factor


# ---------------------------------------------------------------------------
# Field specifications
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldSpec:
    """How one canonical attribute is resolved from a raw record.

    Attributes:
        attr:    Canonical attribute name on the target dataclass.
        sources: Ordered ``(dotted_path, unit)`` candidates.
        unit:    Canonical unit (``None`` for unitless values).
        kind:    'int' (rounded half up), 'float', or 'str'.
    """

    attr: str
    sources: tuple[tuple[str, str | None], ...]
    unit: str | None = None
    kind: str = "float"


def _minutes(attr: str, *sources: tuple[str, str | None]) -> FieldSpec:
    return FieldSpec(attr, tuple(sources), unit="min", kind="int")


SLEEP_FIELDS: tuple[FieldSpec, ...] = (
    _minutes(
        "total_minutes",
        ("duration_total_seconds", "s"),
        ("duration", "s"),
        ("total_sleep_duration", "s"),
        ("totalMinutes", "min"),
    ),
    _minutes(
        "deep_minutes",
        ("duration_deep_sleep_seconds", "s"),
        ("deep", "s"),
        ("deepSleep", "min"),
        ("deepSleepMinutes", "min"),
    ),
    _minutes(
        "rem_minutes",
        ("duration_rem_sleep_seconds", "s"),
        ("rem", "s"),
        ("remSleep", "min"),
        ("remSleepMinutes", "min"),
    ),
    _minutes(
        "light_minutes",
        ("duration_light_sleep_seconds", "s"),
        ("light", "s"),
        ("lightSleep", "min"),
        ("lightSleepMinutes", "min"),
    ),
    _minutes(
        "awake_minutes",
        ("duration_awake_seconds", "s"),
        ("awake", "s"),
        ("awakeTime", "min"),
    ),
    FieldSpec("efficiency_score", (("sleep_efficiency", None), ("efficiency", None))),
    FieldSpec("sleep_score", (("sleep_score", None), ("sleepScore", None), ("score", None))),
    FieldSpec(
        "avg_hrv_ms",
        (("average_hrv", None), ("hrv.average", None), ("hrv.avgHrv", None)),
    ),
    FieldSpec(
        "lowest_hr_bpm",
        (("hr_lowest", None), ("heartRate.min", None), ("lowest_heart_rate", None)),
    ),
    FieldSpec(
        "respiratory_rate",
        (("respiratory_rate", None), ("respiratoryRate", None), ("average_breath", None)),
    ),
)

ACTIVITY_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("steps", (("steps", None),), kind="int"),
    _minutes(
        "active_minutes",
        ("active_duration_seconds", "s"),
        ("activeMinutes", "min"),
        ("moderateMinutes", "min"),
    ),
    FieldSpec("calories_active", (("calories_active", None), ("caloriesActive", None))),
    FieldSpec("calories_total", (("calories_total", None), ("caloriesTotal", None))),
    FieldSpec(
        "distance_meters",
        (("distance_meters", "m"), ("distance", "m"), ("distance_km", "km")),
        unit="m",
        kind="int",
    ),
    FieldSpec(
        "floors_climbed",
        (("floors_climbed", None), ("floorsClimbed", None), ("floors", None)),
        kind="int",
    ),
    _minutes(
        "sedentary_minutes",
        ("sedentary_duration_seconds", "s"),
        ("sedentaryMinutes", "min"),
    ),
    _minutes(
        "low_intensity_minutes",
        ("low_intensity_duration_seconds", "s"),
        ("lowIntensity", "min"),
    ),
    _minutes(
        "moderate_intensity_minutes",
        ("moderate_intensity_duration_seconds", "s"),
        ("moderateIntensity", "min"),
    ),
    _minutes(
        "high_intensity_minutes",
        ("high_intensity_duration_seconds", "s"),
        ("highIntensity", "min"),
    ),
    FieldSpec(
        "avg_hr_bpm",
        (("heart_rate.avg_bpm", None), ("heartRate.average", None), ("heartRate.avgHr", None)),
    ),
    FieldSpec(
        "max_hr_bpm",
        (("heart_rate.max_bpm", None), ("heartRate.max", None), ("heartRate.maxHr", None)),
    ),
)

BODY_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec(
        "weight_kg",
        (("weight_kg", "kg"), ("weight", "kg"), ("weight_g", "g"), ("weight_lbs", "lb")),
        unit="kg",
    ),
    FieldSpec(
        "body_fat_pct",
        (
            ("body_fat_percentage", "pct"),
            ("bodyFatPercentage", "pct"),
            ("bodyFat", "pct"),
            ("fat", "pct"),
        ),
        unit="pct",
    ),
    FieldSpec("bmi", (("bmi", None),)),
    FieldSpec(
        "resting_hr_bpm",
        (
            ("hr_resting", None),
            ("heartRate.restingHr", None),
            ("heartRate.resting", None),
            ("restingHeartRate", None),
        ),
    ),
    FieldSpec(
        "hrv_avg_ms",
        (("hrv_avg", None), ("hrv.avgHrv", None), ("hrv.average", None), ("hrvAvg", None)),
    ),
    FieldSpec("hrv_max_ms", (("hrv_max", None), ("hrv.max", None))),
    FieldSpec(
        "spo2_pct",
        (
            ("blood_oxygen", "pct"),
            ("oxygenSaturation", "pct"),
            ("spo2", "pct"),
            ("oxygen_saturation_ratio", "ratio"),
        ),
        unit="pct",
    ),
    FieldSpec("respiratory_rate", (("respiratory_rate", None), ("respiratoryRate", None))),
    FieldSpec("temperature_c", (("temperature", None), ("body_temperature", None))),
)

WORKOUT_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec(
        "type",
        (("sport.name", None), ("sport_name", None), ("title", None), ("type", None)),
        kind="str",
    ),
    _minutes(
        "duration_minutes",
        ("duration_seconds", "s"),
        ("moving_time", "s"),
        ("duration", "min"),
    ),
    FieldSpec("calories", (("calories", None),)),
    FieldSpec(
        "distance_meters",
        (("distance_meters", "m"), ("distance", "m"), ("distance_km", "km")),
        unit="m",
    ),
    FieldSpec(
        "avg_hr",
        (("average_hr", None), ("heartRate.average", None), ("heart_rate.avg_bpm", None)),
    ),
    FieldSpec(
        "max_hr",
        (("max_hr", None), ("heartRate.max", None), ("heart_rate.max_bpm", None)),
    ),
    FieldSpec("avg_speed", (("average_speed", None),)),
)

# Date keys in priority order.  Timestamps contribute their date part.
DATE_KEYS: tuple[str, ...] = (
    "calendar_date",
    "calendarDate",
    "date",
    "day",
    "time_start",
    "timestamp",
)

SOURCE_KEYS: tuple[str, ...] = ("source.slug", "source", "provider")

_CATEGORY_SPECS: dict[Category, tuple[type, tuple[FieldSpec, ...]]] = {
    Category.SLEEP: (CanonicalSleep, SLEEP_FIELDS),
    Category.ACTIVITY: (CanonicalActivity, ACTIVITY_FIELDS),
    Category.BODY: (CanonicalBody, BODY_FIELDS),
    Category.WORKOUT: (CanonicalWorkout, WORKOUT_FIELDS),
}


# ---------------------------------------------------------------------------
# Resolution helpers
# ---------------------------------------------------------------------------

_MISSING = object()


def _lookup(raw: dict, path: str) -> Any:
    """Follow a dotted path through nested dicts; ``_MISSING`` if any hop is absent."""
    current: Any = raw
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _to_number(value: Any) -> float | None:
    """Coerce a raw value to a finite float; NaN and infinities count as absent."""
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _resolve(raw: dict, spec: FieldSpec) -> Any:
    """Return the canonical value for *spec*, or ``None`` if no candidate is usable."""
    for path, unit in spec.sources:
        value = _lookup(raw, path)
        if value is _MISSING or value is None:
            continue

        if spec.kind == "str":
            if isinstance(value, str) and value.strip():
                return value.strip()
            continue

        number = _to_number(value)
        if number is None:
            logger.debug("Ignoring non-numeric %s=%r for %s", path, value, spec.attr)
            continue

        converted = convert_value(number, unit, spec.unit)
        if converted is None:
            logger.warning("No conversion from %s to %s for %s", unit, spec.unit, spec.attr)
            continue
        if not math.isfinite(converted):
            logger.debug("Ignoring out-of-range %s=%r for %s", path, value, spec.attr)
            continue

        if spec.kind == "int":
            return round_to_int(converted)
        return converted
    return None


def parse_record_date(raw: dict) -> date | None:
    """Return the calendar date of a raw record, or None if missing/unparseable."""
    for key in DATE_KEYS:
        value = raw.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            logger.debug("Unparseable %s=%r on raw record", key, value)
            return None
    return None


def resolve_source(raw: dict) -> str:
    """Return the provider slug of a raw record, or 'unknown'."""
    for path in SOURCE_KEYS:
        value = _lookup(raw, path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return "unknown"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize(category: Category | str, raw: dict) -> CanonicalRecord | None:
    """Convert one raw provider record into its canonical category record.

    Pure function: no I/O, no mutation of *raw*.

    Args:
        category: Data category of the record.
        raw:      Provider-shaped dict.

    Returns:
        The canonical record, or ``None`` when the record has no usable date
        (the date is the merge key, so such a record cannot be placed).
    """
    model, specs = _CATEGORY_SPECS[Category(category)]

    if not isinstance(raw, dict):
        logger.debug("Dropping non-mapping %s record: %r", category, type(raw).__name__)
        return None

    record_date = parse_record_date(raw)
    if record_date is None:
        logger.debug("Dropping %s record without a date key", Category(category).value)
        return None

    values = {spec.attr: _resolve(raw, spec) for spec in specs}
    return model(date=record_date, source=resolve_source(raw), **values)


def normalize_many(category: Category | str, raws: Iterable[dict]) -> list[CanonicalRecord]:
    """Normalize a batch of raw records, dropping the malformed ones."""
    results: list[CanonicalRecord] = []
    dropped = 0
    for raw in raws:
        record = normalize(category, raw)
        if record is None:
            dropped += 1
        else:
            results.append(record)
    if dropped:
        logger.debug(
            "Normalized %d %s records, dropped %d without a date",
            len(results), Category(category).value, dropped,
        )
    return results
