"""BioTrend wearable data pipeline.

This package turns heterogeneous per-provider daily summaries into one
analysis-ready timeline and derives directional health trends from it.

Subpackages:
    gateway/ — Junction (Vital) aggregation API client and identity storage

Core modules:
    base          — Canonical records, DateRange and collaborator ABCs
    normalizer    — Field-priority tables and unit conversion per category
    merge_engine  — One merged record per (date, source)
    fetch         — Concurrent, failure-isolated category fetches
    trends        — Windowed-average trend classification
    insights      — Per-family insights report
    statistics    — Historical rollups over a lookback window
    config_loader — Load/validate/reload analysis_config.yaml
    providers     — Provider catalogue and connection ids
    service       — WearablesService, the request-level API
"""

from biotrend.wearables.base import (
    CanonicalActivity,
    CanonicalBody,
    CanonicalSleep,
    CanonicalWorkout,
    Category,
    DailyMergedRecord,
    DateRange,
    LinkProvider,
    ProviderGateway,
)
from biotrend.wearables.config_loader import AnalysisConfig, get_analysis_config

__all__ = [
    "Category",
    "DateRange",
    "CanonicalSleep",
    "CanonicalActivity",
    "CanonicalBody",
    "CanonicalWorkout",
    "DailyMergedRecord",
    "ProviderGateway",
    "LinkProvider",
    "AnalysisConfig",
    "get_analysis_config",
]
