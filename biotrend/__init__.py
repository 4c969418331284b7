"""BioTrend — daily biometric timeline and trend analysis for wearable data."""

__version__ = "0.1.0"
