"""Daily merge engine.

Combines canonical records from the four independent category fetches into
one ``DailyMergedRecord`` per (date, source).  The keyed map lives only for
the duration of a single ``merge`` call, so the engine holds no state and is
safe to share across concurrent requests.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Mapping

from biotrend.wearables.base import (
    CanonicalActivity,
    CanonicalBody,
    CanonicalSleep,
    CanonicalWorkout,
    Category,
    DailyMergedRecord,
)
from biotrend.wearables.normalizer import normalize_many

logger = logging.getLogger("biotrend.wearables.merge")


def merge(
    sleep: Iterable[CanonicalSleep] = (),
    activity: Iterable[CanonicalActivity] = (),
    body: Iterable[CanonicalBody] = (),
    workouts: Iterable[CanonicalWorkout] = (),
) -> list[DailyMergedRecord]:
    """Merge per-category canonical records into a per-day timeline.

    Rules:
    1. The first record seen for a (date, source) creates the slot.
    2. A later sleep/activity/body record for the same key replaces only that
       category; other categories already placed on the day are untouched.
    3. Workouts are appended, never replaced.
    4. Days with partial coverage are kept; missing categories stay ``None``.

    Args:
        sleep:    Canonical sleep records.
        activity: Canonical activity records.
        body:     Canonical body records.
        workouts: Canonical workout records.

    Returns:
        Merged records sorted ascending by (date, source).
    """
    by_key: dict[tuple[date, str], DailyMergedRecord] = {}

    def slot(record_date: date, source: str) -> DailyMergedRecord:
        key = (record_date, source)
        entry = by_key.get(key)
        if entry is None:
            entry = DailyMergedRecord(date=record_date, source=source)
            by_key[key] = entry
        return entry

    for rec in sleep:
        entry = slot(rec.date, rec.source)
        if entry.sleep is not None:
            logger.debug("Replacing sleep for %s/%s", rec.date, rec.source)
        entry.sleep = rec

    for rec in activity:
        entry = slot(rec.date, rec.source)
        if entry.activity is not None:
            logger.debug("Replacing activity for %s/%s", rec.date, rec.source)
        entry.activity = rec

    for rec in body:
        entry = slot(rec.date, rec.source)
        if entry.body is not None:
            logger.debug("Replacing body for %s/%s", rec.date, rec.source)
        entry.body = rec

    for rec in workouts:
        slot(rec.date, rec.source).workouts.append(rec)

    return [by_key[key] for key in sorted(by_key)]


def filter_by_source(
    records: Iterable[DailyMergedRecord], source: str | None
) -> list[DailyMergedRecord]:
    """Keep only records from *source*; ``None`` keeps everything."""
    if not source:
        return list(records)
    return [r for r in records if r.source == source]


def merge_raw(
    raw_by_category: Mapping[Category | str, Iterable[dict]],
) -> list[DailyMergedRecord]:
    """Normalize raw provider lists keyed by category, then merge them.

    Categories missing from the mapping are treated as empty.
    """
    raw = {Category(k): v for k, v in raw_by_category.items()}
    return merge(
        normalize_many(Category.SLEEP, raw.get(Category.SLEEP, ())),
        normalize_many(Category.ACTIVITY, raw.get(Category.ACTIVITY, ())),
        normalize_many(Category.BODY, raw.get(Category.BODY, ())),
        normalize_many(Category.WORKOUT, raw.get(Category.WORKOUT, ())),
    )
