"""Evaluation backend module."""

from .base import EvaluationBackend, BackendResponse
from .http import HttpEvaluationBackend
from .local import LocalEvaluationBackend, Instrument

__all__ = [
    "EvaluationBackend",
    "BackendResponse",
    "HttpEvaluationBackend",
    "LocalEvaluationBackend",
    "Instrument",
]
