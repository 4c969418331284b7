"""Pydantic models for insights reports, historical statistics and connections."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from biotrend.models.base import BioTrendBase
from biotrend.wearables.trends import TrendDirection


# ---------- Insights ----------

class ReportStatus(str, Enum):
    NOT_LINKED = "not_linked"
    NO_DATA = "no_data"
    OK = "ok"


MESSAGE_NOT_LINKED = "No wearables connected"
MESSAGE_NO_DATA = "No data available for insights"
MESSAGE_OK = "Insights generated"


class SleepInsights(BioTrendBase):
    average_minutes: int
    average_score: int | None = None
    trend: TrendDirection
    quality_trend: TrendDirection | None = None


class HeartInsights(BioTrendBase):
    average_hrv: int | None = None
    average_resting_hr: int | None = None
    hrv_trend: TrendDirection | None = None
    resting_hr_trend: TrendDirection | None = None


class RecoveryInsights(BioTrendBase):
    average_spo2: float | None = None
    average_respiratory_rate: float | None = None
    average_lowest_hr: int | None = None


class ActivityInsights(BioTrendBase):
    average_steps: int
    average_active_minutes: int | None = None
    trend: TrendDirection


class InsightsReport(BioTrendBase):
    """Per-family insights.  A ``None`` family means insufficient data."""

    status: ReportStatus
    message: str
    days_analyzed: int = Field(ge=0)
    days_with_data: int = Field(default=0, ge=0)
    sleep: SleepInsights | None = None
    heart: HeartInsights | None = None
    recovery: RecoveryInsights | None = None
    activity: ActivityInsights | None = None

    @property
    def has_data(self) -> bool:
        return self.status == ReportStatus.OK.value


# ---------- Historical statistics ----------

class SleepStatistics(BioTrendBase):
    avg_duration: int | None = None
    avg_score: int | None = None
    avg_hrv: int | None = None


class ActivityStatistics(BioTrendBase):
    avg_steps: int | None = None
    avg_active_minutes: int | None = None
    avg_calories_active: int | None = None


class BodyStatistics(BioTrendBase):
    latest_weight_kg: float | None = None
    avg_resting_hr: int | None = None
    avg_hrv: int | None = None


class WorkoutStatistics(BioTrendBase):
    total_count: int = 0
    avg_per_week: float = 0.0
    avg_duration: int | None = None
    most_common_type: str | None = None


class HistoricalStatistics(BioTrendBase):
    window_days: int = Field(ge=1)
    sleep: SleepStatistics = Field(default_factory=SleepStatistics)
    activity: ActivityStatistics = Field(default_factory=ActivityStatistics)
    body: BodyStatistics = Field(default_factory=BodyStatistics)
    workouts: WorkoutStatistics = Field(default_factory=WorkoutStatistics)


# ---------- Historical data payload ----------

class DataPoints(BioTrendBase):
    sleep: int = 0
    activity: int = 0
    body: int = 0
    workouts: int = 0


class HistoricalSummary(BioTrendBase):
    days_of_data: int
    date_range: dict[str, str]
    data_points: DataPoints


class HistoricalData(BioTrendBase):
    summary: HistoricalSummary
    sleep: list[dict[str, Any]] = Field(default_factory=list)
    activity: list[dict[str, Any]] = Field(default_factory=list)
    body: list[dict[str, Any]] = Field(default_factory=list)
    workouts: list[dict[str, Any]] = Field(default_factory=list)


class HistoricalDataResponse(BioTrendBase):
    success: bool
    error: str | None = None
    historical_data: HistoricalData | None = None
    statistics: HistoricalStatistics | None = None


# ---------- Connections / sync ----------

class Connection(BioTrendBase):
    id: str
    user_id: str
    provider: str
    provider_name: str
    status: str
    connected_at: str | None = None
    last_synced_at: str | None = None
    source: str = "junction"


class ConnectLink(BioTrendBase):
    link_url: str
    link_token: str


class SyncSummary(BioTrendBase):
    success: bool = True
    message: str
    date_range: dict[str, str]
    records: DataPoints
