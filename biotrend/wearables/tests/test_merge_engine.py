"""Tests for the daily merge engine."""

from __future__ import annotations

from datetime import date

from biotrend.wearables.base import (
    CanonicalActivity,
    CanonicalBody,
    CanonicalSleep,
    CanonicalWorkout,
    Category,
)
from biotrend.wearables.merge_engine import filter_by_source, merge, merge_raw
from biotrend.wearables.normalizer import normalize_many

D1 = date(2026, 2, 22)
D2 = date(2026, 2, 23)


class TestMerge:
    def test_categories_combine_on_same_key(self) -> None:
        result = merge(
            sleep=[CanonicalSleep(D1, "oura", total_minutes=450)],
            activity=[CanonicalActivity(D1, "oura", steps=9000)],
            body=[CanonicalBody(D1, "oura", resting_hr_bpm=52)],
        )
        assert len(result) == 1
        day = result[0]
        assert day.key == (D1, "oura")
        assert day.sleep.total_minutes == 450
        assert day.activity.steps == 9000
        assert day.body.resting_hr_bpm == 52
        assert day.workouts == []

    def test_partial_coverage_keeps_day(self) -> None:
        result = merge(activity=[CanonicalActivity(D2, "garmin", steps=500)])
        assert len(result) == 1
        assert result[0].sleep is None
        assert result[0].body is None

    def test_later_record_replaces_only_its_category(self) -> None:
        result = merge(
            sleep=[
                CanonicalSleep(D1, "oura", total_minutes=400),
                CanonicalSleep(D1, "oura", total_minutes=420),
            ],
            activity=[CanonicalActivity(D1, "oura", steps=7000)],
        )
        assert len(result) == 1
        assert result[0].sleep.total_minutes == 420
        assert result[0].activity.steps == 7000

    def test_three_workouts_same_day_all_retained(self) -> None:
        workouts = [
            CanonicalWorkout(D1, "strava", type="Running"),
            CanonicalWorkout(D1, "strava", type="Cycling"),
            CanonicalWorkout(D1, "strava", type="Yoga"),
        ]
        result = merge(workouts=workouts)
        assert len(result) == 1
        assert [w.type for w in result[0].workouts] == ["Running", "Cycling", "Yoga"]

    def test_sources_kept_apart(self) -> None:
        result = merge(
            sleep=[CanonicalSleep(D1, "oura"), CanonicalSleep(D1, "whoop")],
        )
        assert [r.source for r in result] == ["oura", "whoop"]

    def test_sorted_by_date_then_source(self) -> None:
        result = merge(
            sleep=[CanonicalSleep(D2, "oura"), CanonicalSleep(D1, "whoop")],
            body=[CanonicalBody(D1, "apple")],
        )
        assert [r.key for r in result] == [(D1, "apple"), (D1, "whoop"), (D2, "oura")]

    def test_empty_input(self) -> None:
        assert merge() == []


class TestMergeRaw:
    def test_fixture_timeline(self, raw_by_category: dict) -> None:
        result = merge_raw(raw_by_category)
        assert [r.key for r in result] == [
            (D1, "oura"),
            (D1, "withings"),
            (D2, "oura"),
            (D2, "withings"),
        ]
        d2_oura = result[2]
        assert d2_oura.sleep.total_minutes == 421
        assert d2_oura.activity.steps == 11240
        assert len(d2_oura.workouts) == 3

    def test_idempotent(self, raw_by_category: dict) -> None:
        first = merge_raw(raw_by_category)
        second = merge_raw(raw_by_category)
        assert [r.to_dict() for r in first] == [r.to_dict() for r in second]

    def test_merge_of_normalized_matches_merge_raw(self, raw_by_category: dict) -> None:
        normalized = {c: normalize_many(c, raws) for c, raws in raw_by_category.items()}
        direct = merge(
            normalized[Category.SLEEP],
            normalized[Category.ACTIVITY],
            normalized[Category.BODY],
            normalized[Category.WORKOUT],
        )
        assert [r.to_dict() for r in direct] == [
            r.to_dict() for r in merge_raw(raw_by_category)
        ]

    def test_missing_categories_treated_as_empty(self) -> None:
        result = merge_raw({"sleep": [{"calendar_date": "2026-02-22", "sleep_score": 80}]})
        assert len(result) == 1
        assert result[0].sleep.sleep_score == 80


class TestFilterBySource:
    def test_filters_to_one_source(self, raw_by_category: dict) -> None:
        timeline = merge_raw(raw_by_category)
        withings = filter_by_source(timeline, "withings")
        assert {r.source for r in withings} == {"withings"}
        assert len(withings) == 2

    def test_none_keeps_everything(self, raw_by_category: dict) -> None:
        timeline = merge_raw(raw_by_category)
        assert filter_by_source(timeline, None) == timeline
