"""Historical statistics reporter.

Rollups over a merged timeline for an arbitrary lookback window.  Every
average counts only the records where the field is present; a missing value
is excluded from the denominator rather than treated as zero.
"""

from __future__ import annotations

import logging
from typing import Sequence

from biotrend.models.wearables import (
    ActivityStatistics,
    BodyStatistics,
    HistoricalStatistics,
    SleepStatistics,
    WorkoutStatistics,
)
from biotrend.wearables.base import DailyMergedRecord, round_half_up
from biotrend.wearables.config_loader import StatisticsConfig, get_analysis_config
from biotrend.wearables.errors import DateRangeError
from biotrend.wearables.trends import most_common, rounded_mean

logger = logging.getLogger("biotrend.wearables.statistics")


def per_week_rate(total: int, window_days: int, config: StatisticsConfig | None = None) -> float:
    """``total / window_days * 7`` rounded half up to ``rate_decimals`` places."""
    cfg = config or get_analysis_config().statistics
    if total == 0:
        return 0.0
    return round_half_up(total / window_days * cfg.days_per_week, cfg.rate_decimals)


def compute_statistics(
    merged: Sequence[DailyMergedRecord],
    window_days: int,
    config: StatisticsConfig | None = None,
) -> HistoricalStatistics:
    """Summarize a merged timeline.

    Args:
        merged:      Timeline sorted ascending by date.
        window_days: Lookback window the timeline covers; denominator for
                     per-week rates.
        config:      Statistics parameters (singleton if None).

    Returns:
        HistoricalStatistics.

    Raises:
        DateRangeError: If ``window_days`` is not a positive integer.
    """
    if isinstance(window_days, bool) or not isinstance(window_days, int) or window_days < 1:
        raise DateRangeError(f"window_days must be a positive integer, got {window_days!r}")

    cfg = config or get_analysis_config().statistics

    sleeps = [r.sleep for r in merged if r.sleep]
    activities = [r.activity for r in merged if r.activity]
    bodies = [r.body for r in merged if r.body]
    workouts = [w for r in merged for w in r.workouts]

    weights = [b.weight_kg for b in bodies if b.weight_kg is not None]

    stats = HistoricalStatistics(
        window_days=window_days,
        sleep=SleepStatistics(
            avg_duration=rounded_mean(s.total_minutes for s in sleeps),
            avg_score=rounded_mean(s.sleep_score for s in sleeps),
            avg_hrv=rounded_mean(s.avg_hrv_ms for s in sleeps),
        ),
        activity=ActivityStatistics(
            avg_steps=rounded_mean(a.steps for a in activities),
            avg_active_minutes=rounded_mean(a.active_minutes for a in activities),
            avg_calories_active=rounded_mean(a.calories_active for a in activities),
        ),
        body=BodyStatistics(
            latest_weight_kg=weights[-1] if weights else None,
            avg_resting_hr=rounded_mean(b.resting_hr_bpm for b in bodies),
            avg_hrv=rounded_mean(b.hrv_avg_ms for b in bodies),
        ),
        workouts=WorkoutStatistics(
            total_count=len(workouts),
            avg_per_week=per_week_rate(len(workouts), window_days, cfg),
            avg_duration=rounded_mean(w.duration_minutes for w in workouts),
            most_common_type=most_common(w.type for w in workouts),
        ),
    )
    logger.debug(
        "Computed statistics over %d days: %d sleep, %d activity, %d body, %d workouts",
        window_days, len(sleeps), len(activities), len(bodies), len(workouts),
    )
    return stats
