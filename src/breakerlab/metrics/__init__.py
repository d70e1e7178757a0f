from __future__ import annotations

from breakerlab.metrics.aggregator import summarize
from breakerlab.metrics.models import CallEvent, CallOutcome, CallStats, ErrorType, RunSummary

__all__ = ["CallEvent", "CallOutcome", "CallStats", "ErrorType", "RunSummary", "summarize"]
