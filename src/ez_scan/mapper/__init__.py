"""Result row mapping module."""

from .mapper import ResultRowMapper

__all__ = [
    "ResultRowMapper",
]
