"""Temporal qualifier module."""

from .resolver import TemporalResolver, check_range

__all__ = ["TemporalResolver", "check_range"]
