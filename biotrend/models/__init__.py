"""Pydantic response models produced for the presentation layer."""
