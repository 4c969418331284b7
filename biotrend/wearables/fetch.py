"""Concurrent category fetch orchestrator.

For one request, fans out one task per data category against the provider
gateway, waits for all of them, and normalizes the results.  Each category
is guarded on its own: a failing fetch degrades to an empty list and never
affects the other categories.

Usage::

    orchestrator = FetchOrchestrator(gateway)
    batch = await orchestrator.fetch_all(remote_user_id, DateRange.last_days(30))
    timeline = merge(batch.sleep, batch.activity, batch.body, batch.workouts)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from biotrend.wearables.base import (
    ALL_CATEGORIES,
    CanonicalActivity,
    CanonicalBody,
    CanonicalSleep,
    CanonicalWorkout,
    Category,
    DailyMergedRecord,
    DateRange,
    ProviderGateway,
)
from biotrend.wearables.merge_engine import merge
from biotrend.wearables.normalizer import normalize_many

logger = logging.getLogger("biotrend.wearables.fetch")


@dataclass
class CategoryBatch:
    """Normalized results of one fan-out.

    Attributes:
        linked:    False when the caller had no remote identity and nothing
                   was fetched; True otherwise, even if every list is empty.
        sleep:     Canonical sleep records.
        activity:  Canonical activity records.
        body:      Canonical body records.
        workouts:  Canonical workout records.
        failed:    Categories whose fetch raised and were replaced by [].
        requested: Categories that were fetched.
    """

    linked: bool
    sleep: list[CanonicalSleep] = field(default_factory=list)
    activity: list[CanonicalActivity] = field(default_factory=list)
    body: list[CanonicalBody] = field(default_factory=list)
    workouts: list[CanonicalWorkout] = field(default_factory=list)
    failed: list[Category] = field(default_factory=list)
    requested: tuple[Category, ...] = ()

    @classmethod
    def not_linked(cls) -> "CategoryBatch":
        return cls(linked=False)

    @property
    def is_empty(self) -> bool:
        return not (self.sleep or self.activity or self.body or self.workouts)

    @property
    def counts(self) -> dict[str, int]:
        return {
            "sleep": len(self.sleep),
            "activity": len(self.activity),
            "body": len(self.body),
            "workouts": len(self.workouts),
        }

    def merged(self) -> list[DailyMergedRecord]:
        """Merge this batch into a per-day timeline."""
        return merge(self.sleep, self.activity, self.body, self.workouts)


class FetchOrchestrator:
    """Request-scoped parallel fetch of provider categories.

    No retries happen here; those belong to the gateway.  Cancelling the
    awaiting task cancels every in-flight category fetch.
    """

    def __init__(self, gateway: ProviderGateway) -> None:
        self._gateway = gateway

    async def fetch_all(
        self,
        remote_user_id: str | None,
        date_range: DateRange,
        categories: Iterable[Category] = ALL_CATEGORIES,
    ) -> CategoryBatch:
        """Fetch and normalize the requested categories concurrently.

        Args:
            remote_user_id: Linked identity, or None for an unlinked user.
            date_range:     Inclusive window to fetch.
            categories:     Subset of categories to fetch (default: all four).

        Returns:
            CategoryBatch.  Unlinked callers get ``linked=False`` without any
            gateway call being made.
        """
        if remote_user_id is None:
            logger.debug("No remote identity linked; skipping fetch")
            return CategoryBatch.not_linked()

        requested = tuple(dict.fromkeys(Category(c) for c in categories))
        results = await asyncio.gather(
            *(self._guarded_fetch(remote_user_id, c, date_range) for c in requested)
        )

        raw_by_category: dict[Category, list[dict]] = {}
        failed: list[Category] = []
        for category, (records, ok) in zip(requested, results):
            raw_by_category[category] = records
            if not ok:
                failed.append(category)

        batch = CategoryBatch(
            linked=True,
            sleep=normalize_many(Category.SLEEP, raw_by_category.get(Category.SLEEP, [])),
            activity=normalize_many(Category.ACTIVITY, raw_by_category.get(Category.ACTIVITY, [])),
            body=normalize_many(Category.BODY, raw_by_category.get(Category.BODY, [])),
            workouts=normalize_many(Category.WORKOUT, raw_by_category.get(Category.WORKOUT, [])),
            failed=failed,
            requested=requested,
        )

        if failed and len(failed) == len(requested):
            logger.warning(
                "All %d category fetches failed for %s (%s → %s)",
                len(failed), remote_user_id, date_range.start, date_range.end,
            )
        logger.info(
            "Fetched %s for %s (%s → %s), failed=%s",
            batch.counts, remote_user_id, date_range.start, date_range.end,
            [c.value for c in failed],
        )
        return batch

    async def _guarded_fetch(
        self, remote_user_id: str, category: Category, date_range: DateRange
    ) -> tuple[list[dict], bool]:
        """Run one category fetch, converting any failure into ``([], False)``.

        ``asyncio.CancelledError`` is not an ``Exception`` and propagates.
        """
        try:
            records = await self._gateway.fetch_category(
                remote_user_id, category, date_range.start, date_range.end
            )
        except Exception as exc:
            logger.warning(
                "%s fetch failed for %s: %s", category.value, remote_user_id, exc
            )
            return [], False

        if records is None:
            return [], True
        if not isinstance(records, list):
            records = list(records)
        return records, True
