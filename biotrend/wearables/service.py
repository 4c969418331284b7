"""Wearables service — the exposed API over the analysis core.

Ties the collaborators together for one request:

    LinkProvider (identity) → FetchOrchestrator (gateway fan-out)
        → normalizer → merge engine → insights / statistics

Caller input (date ranges, lookback days) is validated before any identity
lookup or fetch happens.  An unlinked user is a valid empty state for every
read operation; only ``sync_data`` treats it as an error.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable

from biotrend.config import Settings, get_settings
from biotrend.models.wearables import (
    Connection,
    ConnectLink,
    DataPoints,
    HistoricalData,
    HistoricalDataResponse,
    HistoricalSummary,
    InsightsReport,
    SyncSummary,
)
from biotrend.wearables.base import (
    Category,
    DailyMergedRecord,
    DateRange,
    LinkProvider,
    ProviderGateway,
)
from biotrend.wearables.config_loader import AnalysisConfig, get_analysis_config
from biotrend.wearables.errors import NotAuthorizedError, NotLinkedError
from biotrend.wearables.fetch import FetchOrchestrator
from biotrend.wearables.insights import build_insights
from biotrend.wearables.merge_engine import filter_by_source
from biotrend.wearables.providers import (
    connection_id,
    internal_provider,
    parse_connection_id,
    provider_display_name,
)
from biotrend.wearables.statistics import compute_statistics

logger = logging.getLogger("biotrend.wearables.service")

# Insights, the daily view and sync skip workouts.
DAILY_CATEGORIES: tuple[Category, ...] = (Category.SLEEP, Category.ACTIVITY, Category.BODY)

NOT_CONNECTED_ERROR = "No wearable connected"
SYNC_MESSAGE = "Data sync initiated via Junction"


class WearablesService:
    """Request-level entry points for wearable data.

    Args:
        gateway:         Provider gateway used for every fetch.
        link_provider:   Resolves local users to remote identities.
        settings:        Settings override (``get_settings()`` if None).
        analysis_config: Trend/statistics parameters (singleton if None).
        clock:           Returns today's date; injectable for tests.
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        link_provider: LinkProvider,
        settings: Settings | None = None,
        analysis_config: AnalysisConfig | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self._gateway = gateway
        self._link = link_provider
        self._settings = settings or get_settings()
        self._analysis_config = analysis_config
        self._clock = clock or date.today
        self._orchestrator = FetchOrchestrator(gateway)

    @property
    def analysis_config(self) -> AnalysisConfig:
        return self._analysis_config or get_analysis_config()

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def get_connections(self, local_user_id: str) -> list[Connection]:
        """List the providers connected for a user; ``[]`` when not linked."""
        remote_user_id = await self._link.get_remote_user_id(local_user_id)
        if not remote_user_id:
            return []

        providers = await self._gateway.connected_providers(remote_user_id)
        now = datetime.now(timezone.utc).isoformat()
        return [
            Connection(
                id=connection_id(remote_user_id, p.slug),
                user_id=local_user_id,
                provider=internal_provider(p.slug),
                provider_name=provider_display_name(p.slug, p.name),
                status="connected" if p.status == "connected" else "disconnected",
                connected_at=p.connected_at or now,
                last_synced_at=p.last_sync_at,
            )
            for p in providers
        ]

    async def get_connect_link(self, local_user_id: str) -> ConnectLink:
        """Return a device-linking URL, creating the remote identity on first use."""
        remote_user_id = await self._link.get_remote_user_id(local_user_id)
        if not remote_user_id:
            remote_user_id = await self._link.create_remote_user(local_user_id)
            logger.info("Created remote identity %s for %s", remote_user_id, local_user_id)

        token = await self._link.generate_link_token(remote_user_id)
        return ConnectLink(link_url=token.link_web_url, link_token=token.link_token)

    async def disconnect_device(self, local_user_id: str, connection_id: str) -> None:
        """Disconnect the provider named by *connection_id*.

        Raises:
            NotAuthorizedError:     The user is not linked or the id is not theirs.
            InvalidConnectionError: The id has no provider part.
        """
        remote_user_id = await self._link.get_remote_user_id(local_user_id)
        if not remote_user_id:
            raise NotAuthorizedError("Not authorized to disconnect this device")

        slug = parse_connection_id(connection_id, remote_user_id)
        await self._gateway.deregister_provider(remote_user_id, slug)
        logger.info("Disconnected %s for user %s", slug, local_user_id)

    # ------------------------------------------------------------------
    # Timelines
    # ------------------------------------------------------------------

    async def get_merged_timeline(
        self,
        local_user_id: str,
        start_date: date | str | None,
        end_date: date | str | None,
    ) -> list[DailyMergedRecord]:
        """Merged timeline of all four categories for an explicit date window.

        Raises:
            DateRangeError: Missing or invalid dates, or start after end.
        """
        date_range = DateRange.parse(start_date, end_date)
        remote_user_id = await self._link.get_remote_user_id(local_user_id)
        batch = await self._orchestrator.fetch_all(remote_user_id, date_range)
        return batch.merged()

    async def get_biometric_data(
        self,
        local_user_id: str,
        start_date: date | str | None,
        end_date: date | str | None,
        provider: str | None = None,
    ) -> list[DailyMergedRecord]:
        """Daily sleep/activity/body view, optionally limited to one provider source.

        Raises:
            DateRangeError: Missing or invalid dates, or start after end.
        """
        date_range = DateRange.parse(start_date, end_date)
        remote_user_id = await self._link.get_remote_user_id(local_user_id)
        batch = await self._orchestrator.fetch_all(remote_user_id, date_range, DAILY_CATEGORIES)
        return filter_by_source(batch.merged(), provider)

    async def sync_data(self, local_user_id: str) -> SyncSummary:
        """Pull the last ``sync_lookback_days`` of daily data from the gateway.

        Raises:
            NotLinkedError: The user has no remote identity.
        """
        date_range = DateRange.last_days(self._settings.sync_lookback_days, self._clock())
        remote_user_id = await self._link.get_remote_user_id(local_user_id)
        if not remote_user_id:
            raise NotLinkedError("No wearables connected")

        batch = await self._orchestrator.fetch_all(remote_user_id, date_range, DAILY_CATEGORIES)
        logger.info("Synced %s for user %s", batch.counts, local_user_id)
        return SyncSummary(
            message=SYNC_MESSAGE,
            date_range=date_range.as_dict(),
            records=DataPoints(**batch.counts),
        )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def get_insights(self, local_user_id: str, days: int | None = None) -> InsightsReport:
        """Trend insights over the last *days* (``default_insights_days`` if None).

        Raises:
            DateRangeError: If *days* is not a positive integer.
        """
        days = self._settings.default_insights_days if days is None else days
        date_range = DateRange.last_days(days, self._clock())

        remote_user_id = await self._link.get_remote_user_id(local_user_id)
        batch = await self._orchestrator.fetch_all(remote_user_id, date_range, DAILY_CATEGORIES)
        report = build_insights(
            batch.merged(), days, linked=batch.linked, config=self.analysis_config.trend
        )
        logger.info(
            "Insights for user %s over %d days: %s", local_user_id, days, report.status
        )
        return report

    async def get_historical_data(
        self, local_user_id: str, days: int | None = None
    ) -> HistoricalDataResponse:
        """Canonical records and statistics over the last *days*.

        Returns a response with ``success=False`` when the user is not linked.

        Raises:
            DateRangeError: If *days* is not a positive integer.
        """
        days = self._settings.default_history_days if days is None else days
        date_range = DateRange.last_days(days, self._clock())

        remote_user_id = await self._link.get_remote_user_id(local_user_id)
        if not remote_user_id:
            return HistoricalDataResponse(success=False, error=NOT_CONNECTED_ERROR)

        batch = await self._orchestrator.fetch_all(remote_user_id, date_range)
        merged = batch.merged()

        historical = HistoricalData(
            summary=HistoricalSummary(
                days_of_data=days,
                date_range=date_range.as_dict(),
                data_points=DataPoints(**batch.counts),
            ),
            sleep=[r.to_dict() for r in batch.sleep],
            activity=[r.to_dict() for r in batch.activity],
            body=[r.to_dict() for r in batch.body],
            workouts=[r.to_dict() for r in batch.workouts],
        )
        statistics = compute_statistics(merged, days, self.analysis_config.statistics)
        logger.info(
            "Historical data for user %s over %d days: %s", local_user_id, days, batch.counts
        )
        return HistoricalDataResponse(
            success=True, historical_data=historical, statistics=statistics
        )
