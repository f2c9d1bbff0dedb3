"""Public surface for the event-driven ETL pipeline.

This module provides a stable import path for stage hosts and tools.
It re-exports the stage handlers, typed events, and config model.
"""

from __future__ import annotations

from core.config import EtlConfig
from core.errors import ErrorKind, EtlError
from events.envelope import (
    EventEnvelope,
    EventKind,
    ExtractedPayload,
    JobStartedPayload,
    LoadedPayload,
    TransformedPayload,
    decode_event,
)
from events.routing import PIPELINE_RULES, EventRule
from stages.concurrency import ConcurrencyGovernor, StageName
from stages.handlers import extract_handler, load_handler, observe_handler, transform_handler

__all__ = [
    "ConcurrencyGovernor",
    "ErrorKind",
    "EtlConfig",
    "EtlError",
    "EventEnvelope",
    "EventKind",
    "EventRule",
    "ExtractedPayload",
    "JobStartedPayload",
    "LoadedPayload",
    "PIPELINE_RULES",
    "StageName",
    "TransformedPayload",
    "decode_event",
    "extract_handler",
    "load_handler",
    "observe_handler",
    "transform_handler",
]
