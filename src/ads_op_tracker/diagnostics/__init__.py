"""Failure diagnosis for tracked operations.

Rules classify known failure signatures (rate limiting, partial completion,
configuration drift) and attach auto-fix descriptors the retry engine can
execute after user confirmation.
"""

from ads_op_tracker.diagnostics.engine import DiagnosticEngine
from ads_op_tracker.diagnostics.findings import Finding, Fix, FixType, Severity
from ads_op_tracker.diagnostics.loader import load_diagnostics_config
from ads_op_tracker.diagnostics.models import DiagnosticsConfig
from ads_op_tracker.diagnostics.rules import DEFAULT_RULES, DiagnosticRule

__all__ = [
    "DEFAULT_RULES",
    "DiagnosticEngine",
    "DiagnosticRule",
    "DiagnosticsConfig",
    "Finding",
    "Fix",
    "FixType",
    "Severity",
    "load_diagnostics_config",
]
