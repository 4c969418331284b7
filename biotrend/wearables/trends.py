"""Directional trend classification and small descriptive aggregates.

One windowed-average comparison is shared by every metric series (sleep
duration, sleep score, HRV, resting heart rate, steps):

    window  = min(window_cap, n // 2)
    earlier = first ``window`` values
    recent  = last ``window`` values
    change  = (mean(recent) - mean(earlier)) / mean(earlier)

``change`` above the threshold is *improving*, below its negative is
*declining*, anything else is *stable*.  The direction is purely numeric;
for metrics where lower is better (resting heart rate) the caller interprets
it.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from biotrend.wearables.base import round_to_int
from biotrend.wearables.config_loader import TrendConfig, get_analysis_config

logger = logging.getLogger("biotrend.wearables.trends")


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


@dataclass(frozen=True)
class TrendResult:
    """Outcome of classifying one numeric series.

    Attributes:
        direction:       improving / declining / stable.
        recent_average:  Mean of the recent window (None below min_samples).
        earlier_average: Mean of the earlier window (None below min_samples).
        sample_size:     Number of values in the series.
        low_confidence:  True when ``stable`` was returned because the series
                         was too short or the earlier window averaged zero,
                         rather than because the change was within threshold.
    """

    direction: TrendDirection
    recent_average: float | None = None
    earlier_average: float | None = None
    sample_size: int = 0
    low_confidence: bool = False

    @property
    def change(self) -> float | None:
        """Relative change between windows, or None when undefined."""
        if self.recent_average is None or not self.earlier_average:
            return None
        return (self.recent_average - self.earlier_average) / self.earlier_average


def classify_trend(series: Sequence[float], config: TrendConfig | None = None) -> TrendResult:
    """Classify a chronologically ordered numeric series.

    Args:
        series: Values oldest first.  ``None`` entries must already be removed.
        config: Trend parameters (loaded from the singleton if None).

    Returns:
        TrendResult.  Never raises for numeric input; a zero earlier average
        yields ``stable`` instead of dividing by zero.
    """
    cfg = config or get_analysis_config().trend
    values = [float(v) for v in series]
    n = len(values)

    if n < cfg.min_samples:
        return TrendResult(TrendDirection.STABLE, sample_size=n, low_confidence=True)

    window = min(cfg.window_cap, n // 2)
    earlier_avg = sum(values[:window]) / window
    recent_avg = sum(values[-window:]) / window

    if earlier_avg == 0 or not math.isfinite(earlier_avg) or not math.isfinite(recent_avg):
        logger.debug("Trend baseline is zero or non-finite over %d samples", n)
        return TrendResult(
            TrendDirection.STABLE,
            recent_average=recent_avg,
            earlier_average=earlier_avg,
            sample_size=n,
            low_confidence=True,
        )

    change = (recent_avg - earlier_avg) / earlier_avg
    if change > cfg.change_threshold:
        direction = TrendDirection.IMPROVING
    elif change < -cfg.change_threshold:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE

    return TrendResult(direction, recent_avg, earlier_avg, n)


def mean(values: Iterable[float | None]) -> float | None:
    """Arithmetic mean of the non-None values, or None when there are none."""
    present = [float(v) for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def rounded_mean(values: Iterable[float | None]) -> int | None:
    """Mean of the non-None values rounded half up to an integer."""
    avg = mean(values)
    return None if avg is None else round_to_int(avg)


def most_common(values: Iterable[str | None]) -> str | None:
    """Most frequent non-empty value.

    Ties go to the value first encountered in iteration order, so the result
    depends on input order when counts are equal.
    """
    counts = Counter(v for v in values if v)
    if not counts:
        return None
    return counts.most_common(1)[0][0]
