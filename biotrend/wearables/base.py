"""Canonical data models and collaborator interfaces for the wearable timeline.

Every provider record is normalized into one of the canonical category
records below (``CanonicalSleep`` / ``CanonicalActivity`` / ``CanonicalBody``
/ ``CanonicalWorkout``).  These types are the single source of truth consumed
by the merge engine, trend analyzer, statistics reporter and the service
layer.  Nothing downstream of the normalizer ever sees a raw provider dict.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from biotrend.wearables.errors import DateRangeError, GatewayError

logger = logging.getLogger("biotrend.wearables")


# ---------------------------------------------------------------------------
# Categories and date ranges
# ---------------------------------------------------------------------------


class Category(str, Enum):
    """Data categories exposed by the provider aggregation service."""

    SLEEP = "sleep"
    ACTIVITY = "activity"
    BODY = "body"
    WORKOUT = "workout"


#: Fetch order used by the orchestrator and the merge engine.
ALL_CATEGORIES: tuple[Category, ...] = (
    Category.SLEEP,
    Category.ACTIVITY,
    Category.BODY,
    Category.WORKOUT,
)


def _coerce_date(value: date | str | None, name: str) -> date:
    if value is None or value == "":
        raise DateRangeError(f"{name} is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise DateRangeError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date window passed to the provider gateway.

    Attributes:
        start: First day of the window.
        end:   Last day of the window (inclusive).
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise DateRangeError(
                f"start_date {self.start.isoformat()} is after end_date {self.end.isoformat()}"
            )

    @classmethod
    def parse(cls, start: date | str | None, end: date | str | None) -> "DateRange":
        """Build a range from caller input, failing fast on missing or bad values."""
        if start in (None, "") or end in (None, ""):
            raise DateRangeError("start_date and end_date are required")
        return cls(_coerce_date(start, "start_date"), _coerce_date(end, "end_date"))

    @classmethod
    def last_days(cls, days: int, today: date | None = None) -> "DateRange":
        """Return the window ending today and starting ``days`` days earlier."""
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise DateRangeError(f"days must be a positive integer, got {days!r}")
        end = today or date.today()
        return cls(end - timedelta(days=days), end)

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def as_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


# ---------------------------------------------------------------------------
# Canonical records
# ---------------------------------------------------------------------------


def _serialize(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    return value


class _RecordMixin:
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dict (dates as YYYY-MM-DD)."""
        return _serialize(asdict(self))  # type: ignore[call-overload]


@dataclass
class CanonicalSleep(_RecordMixin):
    """Canonical nightly sleep summary.

    Durations are whole minutes, rounded at normalization time.

    Attributes:
        date:             Calendar date the sleep belongs to.
        source:           Provider slug (e.g. 'oura', 'whoop').
        total_minutes:    Total sleep duration.
        deep_minutes:     Deep / slow-wave sleep.
        rem_minutes:      REM sleep.
        light_minutes:    Light sleep.
        awake_minutes:    Time awake during the sleep period.
        efficiency_score: Sleep efficiency (provider scale, typically 0–100).
        sleep_score:      Provider sleep quality score.
        avg_hrv_ms:       Average HRV during sleep.
        lowest_hr_bpm:    Lowest heart rate during sleep.
        respiratory_rate: Average breaths per minute.
    """

    date: date
    source: str
    total_minutes: int | None = None
    deep_minutes: int | None = None
    rem_minutes: int | None = None
    light_minutes: int | None = None
    awake_minutes: int | None = None
    efficiency_score: float | None = None
    sleep_score: float | None = None
    avg_hrv_ms: float | None = None
    lowest_hr_bpm: float | None = None
    respiratory_rate: float | None = None


@dataclass
class CanonicalActivity(_RecordMixin):
    """Canonical daily activity summary.

    Attributes:
        date:                       Calendar date.
        source:                     Provider slug.
        steps:                      Step count.
        active_minutes:             Minutes of active time.
        calories_active:            Active calorie burn (kcal).
        calories_total:             Total calorie burn (kcal).
        distance_meters:            Distance in whole meters.
        floors_climbed:             Floors climbed.
        sedentary_minutes:          Sedentary time.
        low_intensity_minutes:      Low intensity time.
        moderate_intensity_minutes: Moderate intensity time.
        high_intensity_minutes:     High intensity time.
        avg_hr_bpm:                 Average heart rate.
        max_hr_bpm:                 Maximum heart rate.
    """

    date: date
    source: str
    steps: int | None = None
    active_minutes: int | None = None
    calories_active: float | None = None
    calories_total: float | None = None
    distance_meters: int | None = None
    floors_climbed: int | None = None
    sedentary_minutes: int | None = None
    low_intensity_minutes: int | None = None
    moderate_intensity_minutes: int | None = None
    high_intensity_minutes: int | None = None
    avg_hr_bpm: float | None = None
    max_hr_bpm: float | None = None


@dataclass
class CanonicalBody(_RecordMixin):
    """Canonical body composition and cardiovascular snapshot.

    Attributes:
        date:             Calendar date.
        source:           Provider slug.
        weight_kg:        Body weight in kilograms.
        body_fat_pct:     Body fat percentage.
        bmi:              Body mass index.
        resting_hr_bpm:   Resting heart rate.
        hrv_avg_ms:       Average HRV.
        hrv_max_ms:       Maximum HRV.
        spo2_pct:         Blood oxygen saturation.
        respiratory_rate: Breaths per minute.
        temperature_c:    Body temperature in °C.
    """

    date: date
    source: str
    weight_kg: float | None = None
    body_fat_pct: float | None = None
    bmi: float | None = None
    resting_hr_bpm: float | None = None
    hrv_avg_ms: float | None = None
    hrv_max_ms: float | None = None
    spo2_pct: float | None = None
    respiratory_rate: float | None = None
    temperature_c: float | None = None


@dataclass
class CanonicalWorkout(_RecordMixin):
    """Canonical workout / exercise session.

    Attributes:
        date:             Calendar date the workout started.
        source:           Provider slug.
        type:             Sport name as reported by the provider.
        duration_minutes: Duration in whole minutes.
        calories:         Calories burned (kcal).
        distance_meters:  Distance in meters.
        avg_hr:           Average heart rate.
        max_hr:           Maximum heart rate.
        avg_speed:        Average speed (m/s).
    """

    date: date
    source: str
    type: str | None = None
    duration_minutes: int | None = None
    calories: float | None = None
    distance_meters: float | None = None
    avg_hr: float | None = None
    max_hr: float | None = None
    avg_speed: float | None = None


CanonicalRecord = CanonicalSleep | CanonicalActivity | CanonicalBody | CanonicalWorkout


@dataclass
class DailyMergedRecord(_RecordMixin):
    """All canonical data for one (date, source) pair.

    At most one sleep / activity / body record per key; workouts accumulate.
    A category with no data for the day is ``None``.
    """

    date: date
    source: str
    sleep: CanonicalSleep | None = None
    activity: CanonicalActivity | None = None
    body: CanonicalBody | None = None
    workouts: list[CanonicalWorkout] = field(default_factory=list)

    @property
    def key(self) -> tuple[date, str]:
        return (self.date, self.source)


# ---------------------------------------------------------------------------
# Collaborator payloads
# ---------------------------------------------------------------------------


@dataclass
class LinkToken:
    """Token returned by the link provider to start the device-linking widget."""

    link_token: str
    link_web_url: str = ""


@dataclass
class ProviderConnection:
    """One provider connected to a remote identity, as reported by the gateway."""

    slug: str
    name: str | None = None
    status: str = "connected"
    connected_at: str | None = None
    last_sync_at: str | None = None


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------


class ProviderGateway(ABC):
    """Retrieves raw provider payloads for a remote identity.

    Implementations may raise on any failure; the fetch orchestrator guards
    each category independently.
    """

    @abstractmethod
    async def fetch_category(
        self,
        remote_user_id: str,
        category: Category,
        start_date: date,
        end_date: date,
    ) -> list[dict]:
        """Return raw provider records for one category and date window.

        Args:
            remote_user_id: Identity used by the aggregation service.
            category:       Which data category to fetch.
            start_date:     First day (inclusive).
            end_date:       Last day (inclusive).

        Returns:
            List of raw, provider-shaped dicts.
        """

    async def connected_providers(self, remote_user_id: str) -> list[ProviderConnection]:
        """List providers connected to the identity.  Default: none."""
        return []

    async def deregister_provider(self, remote_user_id: str, provider: str) -> None:
        """Disconnect one provider from the identity.

        Raises:
            GatewayError: When the gateway has no way to deregister.
        """
        raise GatewayError(f"{type(self).__name__} cannot deregister providers")


class LinkProvider(ABC):
    """Maps local users to remote identities and starts device linking."""

    @abstractmethod
    async def get_remote_user_id(self, local_user_id: str) -> str | None:
        """Return the linked remote identity, or None when the user never linked."""

    @abstractmethod
    async def create_remote_user(self, local_user_id: str) -> str:
        """Create (or resolve) and remember a remote identity for the user."""

    @abstractmethod
    async def generate_link_token(self, remote_user_id: str) -> LinkToken:
        """Issue a link token for the device-linking flow."""


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves going up (2.5 → 3), unlike Python's banker's rounding."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_to_int(value: float) -> int:
    """Round half up to the nearest integer."""
    return int(round_half_up(value))
