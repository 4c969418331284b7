"""Insights aggregator — per-family trend summaries over a merged timeline.

Each physiological domain (sleep, heart, recovery, activity) is reported as
one object or ``None`` when the window holds no samples for it.  A family is
never filled with a default trend when there is nothing to analyze.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from biotrend.models.wearables import (
    MESSAGE_NO_DATA,
    MESSAGE_NOT_LINKED,
    MESSAGE_OK,
    ActivityInsights,
    HeartInsights,
    InsightsReport,
    RecoveryInsights,
    ReportStatus,
    SleepInsights,
)
from biotrend.wearables.base import DailyMergedRecord, round_half_up
from biotrend.wearables.config_loader import TrendConfig, get_analysis_config
from biotrend.wearables.trends import classify_trend, mean, rounded_mean

logger = logging.getLogger("biotrend.wearables.insights")


def extract_series(
    merged: Sequence[DailyMergedRecord],
    getter: Callable[[DailyMergedRecord], float | None],
) -> list[float]:
    """Return the non-None values of *getter* in timeline order."""
    series: list[float] = []
    for record in merged:
        value = getter(record)
        if value is not None:
            series.append(value)
    return series


def _sleep_minutes(r: DailyMergedRecord) -> float | None:
    return r.sleep.total_minutes if r.sleep else None


def _sleep_score(r: DailyMergedRecord) -> float | None:
    return r.sleep.sleep_score if r.sleep else None


def _hrv(r: DailyMergedRecord) -> float | None:
    if r.body and r.body.hrv_avg_ms is not None:
        return r.body.hrv_avg_ms
    return r.sleep.avg_hrv_ms if r.sleep else None


def _resting_hr(r: DailyMergedRecord) -> float | None:
    return r.body.resting_hr_bpm if r.body else None


def _steps(r: DailyMergedRecord) -> float | None:
    return r.activity.steps if r.activity else None


def _active_minutes(r: DailyMergedRecord) -> float | None:
    return r.activity.active_minutes if r.activity else None


def _spo2(r: DailyMergedRecord) -> float | None:
    return r.body.spo2_pct if r.body else None


def _respiratory_rate(r: DailyMergedRecord) -> float | None:
    if r.sleep and r.sleep.respiratory_rate is not None:
        return r.sleep.respiratory_rate
    return r.body.respiratory_rate if r.body else None


def _lowest_hr(r: DailyMergedRecord) -> float | None:
    return r.sleep.lowest_hr_bpm if r.sleep else None


def _round1(value: float | None) -> float | None:
    return None if value is None else round_half_up(value, 1)


# ---------------------------------------------------------------------------
# Family builders
# ---------------------------------------------------------------------------


def build_sleep_insights(
    merged: Sequence[DailyMergedRecord], cfg: TrendConfig
) -> SleepInsights | None:
    durations = extract_series(merged, _sleep_minutes)
    if not durations:
        return None
    scores = extract_series(merged, _sleep_score)
    return SleepInsights(
        average_minutes=rounded_mean(durations),
        average_score=rounded_mean(scores),
        trend=classify_trend(durations, cfg).direction,
        quality_trend=classify_trend(scores, cfg).direction if scores else None,
    )


def build_heart_insights(
    merged: Sequence[DailyMergedRecord], cfg: TrendConfig
) -> HeartInsights | None:
    hrv = extract_series(merged, _hrv)
    resting = extract_series(merged, _resting_hr)
    if not hrv and not resting:
        return None
    return HeartInsights(
        average_hrv=rounded_mean(hrv),
        average_resting_hr=rounded_mean(resting),
        hrv_trend=classify_trend(hrv, cfg).direction if hrv else None,
        resting_hr_trend=classify_trend(resting, cfg).direction if resting else None,
    )


def build_recovery_insights(merged: Sequence[DailyMergedRecord]) -> RecoveryInsights | None:
    spo2 = extract_series(merged, _spo2)
    resp = extract_series(merged, _respiratory_rate)
    lowest = extract_series(merged, _lowest_hr)
    if not (spo2 or resp or lowest):
        return None
    return RecoveryInsights(
        average_spo2=_round1(mean(spo2)),
        average_respiratory_rate=_round1(mean(resp)),
        average_lowest_hr=rounded_mean(lowest),
    )


def build_activity_insights(
    merged: Sequence[DailyMergedRecord], cfg: TrendConfig
) -> ActivityInsights | None:
    steps = extract_series(merged, _steps)
    if not steps:
        return None
    return ActivityInsights(
        average_steps=rounded_mean(steps),
        average_active_minutes=rounded_mean(extract_series(merged, _active_minutes)),
        trend=classify_trend(steps, cfg).direction,
    )


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


def empty_report(status: ReportStatus, lookback_days: int) -> InsightsReport:
    """Report with every family ``None`` for the not-linked / no-data states."""
    message = MESSAGE_NOT_LINKED if status == ReportStatus.NOT_LINKED else MESSAGE_NO_DATA
    return InsightsReport(status=status, message=message, days_analyzed=lookback_days)


def build_insights(
    merged: Sequence[DailyMergedRecord],
    lookback_days: int,
    linked: bool = True,
    config: TrendConfig | None = None,
) -> InsightsReport:
    """Compose the insights report for a merged timeline.

    Args:
        merged:        Timeline sorted ascending by date.
        lookback_days: Length of the analyzed window.
        linked:        False when the user has no remote identity.
        config:        Trend parameters (singleton if None).

    Returns:
        InsightsReport in one of three states: not_linked, no_data, ok.
        A timeline with no metric feeding any family counts as no_data.
    """
    if not linked:
        return empty_report(ReportStatus.NOT_LINKED, lookback_days)
    if not merged:
        return empty_report(ReportStatus.NO_DATA, lookback_days)

    cfg = config or get_analysis_config().trend
    families = {
        "sleep": build_sleep_insights(merged, cfg),
        "heart": build_heart_insights(merged, cfg),
        "recovery": build_recovery_insights(merged),
        "activity": build_activity_insights(merged, cfg),
    }
    if all(family is None for family in families.values()):
        logger.debug("Timeline of %d days carries no reportable metric", len(merged))
        return empty_report(ReportStatus.NO_DATA, lookback_days)

    report = InsightsReport(
        status=ReportStatus.OK,
        message=MESSAGE_OK,
        days_analyzed=lookback_days,
        days_with_data=len({r.date for r in merged}),
        **families,
    )
    logger.debug(
        "Built insights over %d days (%d with data)", lookback_days, report.days_with_data
    )
    return report
