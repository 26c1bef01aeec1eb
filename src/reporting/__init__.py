"""Report publishing and display.

Classes:
    ReportSink: Abstract publish boundary
    JsonFileSink: Canonical JSON report export
    AuditSink: YAML audit log storage and retrieval
    LoggingSink: One-line log summary
    CleanupReporter: Rich terminal rendering
"""

from __future__ import annotations

from src.reporting.reporter import CleanupReporter
from src.reporting.sinks import AuditSink, JsonFileSink, LoggingSink, ReportSink

__all__ = [
    "AuditSink",
    "CleanupReporter",
    "JsonFileSink",
    "LoggingSink",
    "ReportSink",
]
