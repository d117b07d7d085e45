"""
Diagnostics sink writing error and debug traces to date-named files.
"""

from hostlog.diagnostics.sink import DiagnosticsSink

__all__ = ["DiagnosticsSink"]
