"""Tests for the normalizer — field priority, unit conversion and date handling."""

from __future__ import annotations

from datetime import date

import pytest

from biotrend.wearables.base import (
    CanonicalActivity,
    CanonicalBody,
    CanonicalSleep,
    CanonicalWorkout,
    Category,
)
from biotrend.wearables.normalizer import (
    convert_value,
    normalize,
    normalize_many,
    parse_record_date,
    resolve_source,
)


class TestConvertValue:
    def test_seconds_to_minutes(self) -> None:
        assert convert_value(27000, "s", "min") == pytest.approx(450.0)

    def test_kilometers_to_meters(self) -> None:
        assert convert_value(8.35, "km", "m") == pytest.approx(8350.0)

    def test_pounds_to_kilograms(self) -> None:
        assert convert_value(160, "lb", "kg") == pytest.approx(72.5748, rel=1e-4)

    def test_same_unit_passes_through(self) -> None:
        assert convert_value(12.5, "kg", "kg") == 12.5

    def test_unknown_conversion_returns_none(self) -> None:
        assert convert_value(1.0, "furlong", "m") is None


# ---------------------------------------------------------------------------
# Sleep
# ---------------------------------------------------------------------------


class TestSleepNormalization:
    def test_duration_seconds_to_minutes(self) -> None:
        result = normalize(
            Category.SLEEP, {"calendar_date": "2026-02-23", "duration_total_seconds": 27000}
        )
        assert isinstance(result, CanonicalSleep)
        assert result.total_minutes == 450

    def test_half_minute_rounds_up(self) -> None:
        result = normalize(
            Category.SLEEP,
            {"calendar_date": "2026-02-23", "duration_deep_sleep_seconds": 5430},
        )
        # 90.5 minutes
        assert result.deep_minutes == 91

    def test_junction_shape(self, junction_sleep_raw: list[dict]) -> None:
        result = normalize(Category.SLEEP, junction_sleep_raw[0])
        assert result.date == date(2026, 2, 22)
        assert result.source == "oura"
        assert result.total_minutes == 450
        assert result.rem_minutes == 105
        assert result.light_minutes == 255
        assert result.awake_minutes == 30
        assert result.efficiency_score == pytest.approx(92.5)
        assert result.sleep_score == 84
        assert result.avg_hrv_ms == pytest.approx(58.2)
        assert result.lowest_hr_bpm == 49
        assert result.respiratory_rate == pytest.approx(14.2)

    def test_legacy_camel_case_shape(self, legacy_sleep_raw: dict) -> None:
        result = normalize(Category.SLEEP, legacy_sleep_raw)
        assert result.date == date(2026, 2, 23)
        assert result.source == "fitbit"
        assert result.total_minutes == 441
        assert result.deep_minutes == 82
        assert result.awake_minutes == 31
        assert result.sleep_score == 76
        assert result.avg_hrv_ms == pytest.approx(47.5)
        assert result.lowest_hr_bpm == 53
        assert result.respiratory_rate == pytest.approx(15.1)

    def test_first_present_candidate_wins(self) -> None:
        result = normalize(
            Category.SLEEP,
            {"calendar_date": "2026-02-23", "duration_total_seconds": 27000, "duration": 99999},
        )
        assert result.total_minutes == 450

    def test_null_candidate_falls_through(self) -> None:
        result = normalize(
            Category.SLEEP,
            {"calendar_date": "2026-02-23", "duration_total_seconds": None, "duration": 3600},
        )
        assert result.total_minutes == 60

    def test_zero_is_kept_distinct_from_absent(self) -> None:
        result = normalize(
            Category.SLEEP, {"calendar_date": "2026-02-23", "duration_awake_seconds": 0}
        )
        assert result.awake_minutes == 0
        assert result.total_minutes is None


# ---------------------------------------------------------------------------
# Activity / body / workouts
# ---------------------------------------------------------------------------


class TestActivityNormalization:
    def test_junction_shape(self, junction_activity_raw: list[dict]) -> None:
        result = normalize(Category.ACTIVITY, junction_activity_raw[0])
        assert isinstance(result, CanonicalActivity)
        assert result.steps == 9812
        # 64.5 minutes
        assert result.active_minutes == 65
        assert result.distance_meters == 7421
        assert result.floors_climbed == 12
        assert result.sedentary_minutes == 510
        assert result.moderate_intensity_minutes == 40
        assert result.avg_hr_bpm == 72
        assert result.max_hr_bpm == 164

    def test_distance_km_converted(self, junction_activity_raw: list[dict]) -> None:
        result = normalize(Category.ACTIVITY, junction_activity_raw[1])
        assert result.distance_meters == 8350
        assert result.floors_climbed is None

    def test_camel_case_heart_rate(self) -> None:
        result = normalize(
            Category.ACTIVITY,
            {"calendarDate": "2026-02-23", "heartRate": {"average": 80, "max": 150}},
        )
        assert result.avg_hr_bpm == 80
        assert result.max_hr_bpm == 150


class TestBodyNormalization:
    def test_grams_to_kilograms(self, junction_body_raw: list[dict]) -> None:
        result = normalize(Category.BODY, junction_body_raw[0])
        assert isinstance(result, CanonicalBody)
        assert result.weight_kg == pytest.approx(72.4)
        assert result.resting_hr_bpm == 54
        assert result.hrv_avg_ms == pytest.approx(61.0)
        assert result.spo2_pct == pytest.approx(97.0)

    def test_pounds_and_nested_fields(self, junction_body_raw: list[dict]) -> None:
        result = normalize(Category.BODY, junction_body_raw[1])
        assert result.date == date(2026, 2, 23)
        assert result.source == "withings"
        assert result.weight_kg == pytest.approx(72.57, abs=0.01)
        assert result.resting_hr_bpm == 56
        assert result.hrv_avg_ms == pytest.approx(55.5)
        assert result.respiratory_rate == pytest.approx(14.0)


class TestWorkoutNormalization:
    def test_nested_sport_name(self, junction_workouts_raw: list[dict]) -> None:
        result = normalize(Category.WORKOUT, junction_workouts_raw[0])
        assert isinstance(result, CanonicalWorkout)
        assert result.type == "Running"
        assert result.date == date(2026, 2, 22)
        assert result.duration_minutes == 46
        assert result.distance_meters == pytest.approx(6200.0)
        assert result.avg_hr == 151

    def test_alternate_field_names(self, junction_workouts_raw: list[dict]) -> None:
        cycling = normalize(Category.WORKOUT, junction_workouts_raw[1])
        strength = normalize(Category.WORKOUT, junction_workouts_raw[2])
        assert cycling.type == "Cycling"
        assert cycling.duration_minutes == 60
        assert strength.type == "Strength Training"
        assert strength.duration_minutes == 40


# ---------------------------------------------------------------------------
# Dates, sources, malformed records
# ---------------------------------------------------------------------------


class TestDatesAndSources:
    def test_date_key_priority(self) -> None:
        raw = {"calendar_date": "2026-02-20", "date": "2026-02-21", "timestamp": "2026-02-22"}
        assert parse_record_date(raw) == date(2026, 2, 20)

    def test_timestamp_date_part(self) -> None:
        assert parse_record_date({"timestamp": "2026-02-22T23:59:59Z"}) == date(2026, 2, 22)

    def test_missing_date_drops_record(self) -> None:
        assert normalize(Category.SLEEP, {"duration_total_seconds": 27000}) is None

    def test_unparseable_date_drops_record(self) -> None:
        assert normalize(Category.SLEEP, {"calendar_date": "last tuesday"}) is None

    def test_non_mapping_dropped(self) -> None:
        assert normalize(Category.BODY, ["not", "a", "dict"]) is None  # type: ignore[arg-type]

    def test_source_priority(self) -> None:
        assert resolve_source({"source": {"slug": "oura"}, "provider": "x"}) == "oura"
        assert resolve_source({"source": "garmin"}) == "garmin"
        assert resolve_source({"provider": "whoop"}) == "whoop"
        assert resolve_source({}) == "unknown"

    def test_normalize_many_drops_undated(self) -> None:
        raws = [
            {"calendar_date": "2026-02-22", "steps": 100},
            {"steps": 200},
            {"calendar_date": "2026-02-23", "steps": 300},
        ]
        result = normalize_many(Category.ACTIVITY, raws)
        assert [r.steps for r in result] == [100, 300]

    def test_every_output_date_is_iso(self, raw_by_category: dict) -> None:
        for category, raws in raw_by_category.items():
            for record in normalize_many(category, raws):
                iso = record.to_dict()["date"]
                assert date.fromisoformat(iso) == record.date
                assert len(iso) == 10

    def test_string_category_accepted(self) -> None:
        result = normalize("activity", {"day": "2026-02-23", "steps": "4200"})
        assert result.steps == 4200


class TestNonFiniteValues:
    @pytest.mark.parametrize("value", ["NaN", "inf", "-Infinity", float("nan"), float("inf")])
    def test_non_finite_resolves_to_none(self, value: object) -> None:
        result = normalize(
            Category.SLEEP,
            {"calendar_date": "2026-02-20", "duration_total_seconds": value, "sleep_score": value},
        )
        assert result is not None
        assert result.total_minutes is None
        assert result.sleep_score is None

    def test_non_finite_falls_through_to_next_candidate(self) -> None:
        result = normalize(
            Category.SLEEP,
            {"calendar_date": "2026-02-20", "duration_total_seconds": "NaN", "duration": 3600},
        )
        assert result.total_minutes == 60

    def test_infinite_steps(self) -> None:
        result = normalize(Category.ACTIVITY, {"calendar_date": "2026-02-20", "steps": "inf"})
        assert result.steps is None

    def test_overflow_after_conversion(self) -> None:
        result = normalize(
            Category.ACTIVITY, {"calendar_date": "2026-02-20", "distance_km": 1e308}
        )
        assert result.distance_meters is None

    def test_huge_integer(self) -> None:
        result = normalize(Category.ACTIVITY, {"calendar_date": "2026-02-20", "steps": 10**400})
        assert result.steps is None
