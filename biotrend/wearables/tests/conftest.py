"""Shared fixtures, fake collaborators and mock API responses for wearable tests."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from biotrend.config import Settings
from biotrend.wearables.base import (
    Category,
    LinkProvider,
    LinkToken,
    ProviderConnection,
    ProviderGateway,
)
from biotrend.wearables.config_loader import AnalysisConfig, load_analysis_config

# Fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"

TEST_USER_ID = "user-123"
TEST_REMOTE_ID = "jx_9f2c_user"
TEST_TODAY = date(2026, 2, 24)


def load_fixture(name: str) -> dict:
    return json.loads((FIXTURES_DIR / name).read_text())


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeGateway(ProviderGateway):
    """In-memory gateway returning canned raw records per category.

    A category listed in ``failing`` raises instead of returning data.
    Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        records: dict[Category, list[dict]] | None = None,
        failing: set[Category] | None = None,
        providers: list[ProviderConnection] | None = None,
    ) -> None:
        self.records = records or {}
        self.failing = failing or set()
        self.providers = providers or []
        self.calls: list[tuple[str, Category, date, date]] = []
        self.deregistered: list[tuple[str, str]] = []

    async def fetch_category(
        self,
        remote_user_id: str,
        category: Category,
        start_date: date,
        end_date: date,
    ) -> list[dict]:
        self.calls.append((remote_user_id, category, start_date, end_date))
        if category in self.failing:
            raise RuntimeError(f"{category.value} upstream unavailable")
        return list(self.records.get(category, []))

    async def connected_providers(self, remote_user_id: str) -> list[ProviderConnection]:
        return list(self.providers)

    async def deregister_provider(self, remote_user_id: str, provider: str) -> None:
        self.deregistered.append((remote_user_id, provider))


class FakeLinkProvider(LinkProvider):
    """Dict-backed identity mapping with predictable remote ids."""

    def __init__(self, identities: dict[str, str] | None = None) -> None:
        self.identities = dict(identities or {})
        self.lookups = 0

    async def get_remote_user_id(self, local_user_id: str) -> str | None:
        self.lookups += 1
        return self.identities.get(local_user_id)

    async def create_remote_user(self, local_user_id: str) -> str:
        remote = f"remote_{local_user_id}"
        self.identities[local_user_id] = remote
        return remote

    async def generate_link_token(self, remote_user_id: str) -> LinkToken:
        return LinkToken(
            link_token=f"tok_{remote_user_id}",
            link_web_url=f"https://link.example.test/{remote_user_id}",
        )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def analysis_config() -> AnalysisConfig:
    """Load the real analysis config for tests."""
    return load_analysis_config()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        junction_api_key="test_api_key",
        junction_region="us",
        junction_env="sandbox",
        _env_file=None,
    )


# ---------------------------------------------------------------------------
# JSON fixture loaders
# ---------------------------------------------------------------------------


@pytest.fixture
def junction_sleep_raw() -> list[dict]:
    return load_fixture("junction_sleep.json")["sleep"]


@pytest.fixture
def legacy_sleep_raw() -> dict:
    return load_fixture("legacy_sleep.json")


@pytest.fixture
def junction_activity_raw() -> list[dict]:
    return load_fixture("junction_activity.json")["activity"]


@pytest.fixture
def junction_body_raw() -> list[dict]:
    return load_fixture("junction_body.json")["body"]


@pytest.fixture
def junction_workouts_raw() -> list[dict]:
    return load_fixture("junction_workouts.json")["workouts"]


@pytest.fixture
def raw_by_category(
    junction_sleep_raw: list[dict],
    junction_activity_raw: list[dict],
    junction_body_raw: list[dict],
    junction_workouts_raw: list[dict],
) -> dict[Category, list[dict]]:
    return {
        Category.SLEEP: junction_sleep_raw,
        Category.ACTIVITY: junction_activity_raw,
        Category.BODY: junction_body_raw,
        Category.WORKOUT: junction_workouts_raw,
    }


# ---------------------------------------------------------------------------
# Collaborator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def gateway(raw_by_category: dict[Category, list[dict]]) -> FakeGateway:
    return FakeGateway(records=raw_by_category)


@pytest.fixture
def link_provider() -> FakeLinkProvider:
    return FakeLinkProvider({TEST_USER_ID: TEST_REMOTE_ID})
