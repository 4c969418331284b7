"""Provider slugs, display names, and connection id helpers.

Connection ids have the form ``{remote_user_id}_{provider_slug}``.  Remote ids
may themselves contain underscores, so parsing always strips the caller's
known remote id as a prefix instead of splitting on ``_``.
"""

from __future__ import annotations

from biotrend.wearables.errors import InvalidConnectionError, NotAuthorizedError

# Aggregation-service slug → internal provider slug
PROVIDER_MAP: dict[str, str] = {
    "fitbit": "fitbit",
    "oura": "oura",
    "whoop": "whoop",
    "garmin": "garmin",
    "apple_health_kit": "apple",
    "google_fit": "google",
    "strava": "strava",
    "withings": "withings",
    "polar": "polar",
    "eight_sleep": "eight_sleep",
    "cronometer": "cronometer",
    "libre": "libre",
    "dexcom": "dexcom",
}

# Internal provider slug → display name
PROVIDER_DISPLAY_NAMES: dict[str, str] = {
    "fitbit": "Fitbit",
    "oura": "Oura Ring",
    "whoop": "WHOOP",
    "garmin": "Garmin",
    "apple": "Apple Health",
    "google": "Google Fit",
    "strava": "Strava",
    "withings": "Withings",
    "polar": "Polar",
    "eight_sleep": "Eight Sleep",
    "cronometer": "Cronometer",
    "libre": "Freestyle Libre",
    "dexcom": "Dexcom",
}


def internal_provider(slug: str) -> str:
    """Map an aggregation-service slug to our slug (unknown slugs pass through)."""
    return PROVIDER_MAP.get(slug, slug)


def provider_display_name(slug: str, fallback: str | None = None) -> str:
    """Return a human-friendly name for an aggregation-service slug."""
    return PROVIDER_DISPLAY_NAMES.get(internal_provider(slug)) or fallback or slug


def connection_id(remote_user_id: str, slug: str) -> str:
    return f"{remote_user_id}_{slug}"


def parse_connection_id(connection_id: str, remote_user_id: str) -> str:
    """Extract the provider slug from a connection id owned by *remote_user_id*.

    Raises:
        NotAuthorizedError:     The id does not belong to this identity.
        InvalidConnectionError: The id carries no provider slug.
    """
    prefix = f"{remote_user_id}_"
    if not connection_id.startswith(prefix):
        raise NotAuthorizedError("Not authorized to disconnect this device")
    slug = connection_id[len(prefix):]
    if not slug:
        raise InvalidConnectionError("Invalid connection ID")
    return slug
