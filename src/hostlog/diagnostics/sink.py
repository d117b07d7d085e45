"""
Durable error/debug traces, one file per day.

Layout::

    <root>/Errors/<YYYY-MM-DD>.log
    <root>/Debug/<YYYY-MM-DD>.log

Failures here are logged to the console and otherwise ignored; they never
reach message processing.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

ERRORS_DIR = "Errors"
DEBUG_DIR = "Debug"


class DiagnosticsSink:
    """
    Appends timestamped lines to the error and debug trees.

    Usage:
        sink = DiagnosticsSink(config.diagnostics_path, errors_enabled=True)
        sink.record_error("write error from 10.0.0.5: disk full")
    """

    def __init__(
        self,
        root: Union[str, Path],
        errors_enabled: bool = False,
        debug_enabled: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize diagnostics sink.

        Args:
            root: Diagnostics root (usually LogPath/ScriptLogs)
            errors_enabled: Record errors
            debug_enabled: Record debug traces (high volume)
            clock: Time source, for tests
        """
        self.root = Path(root)
        self.errors_enabled = errors_enabled
        self.debug_enabled = debug_enabled
        self._clock = clock or datetime.now

    @property
    def enabled(self) -> bool:
        return self.errors_enabled or self.debug_enabled

    def path_for(self, category: str, when: datetime) -> Path:
        """File that a record made at ``when`` goes to."""
        return self.root / category / f"{when:%Y-%m-%d}.log"

    def record_error(self, message: str) -> None:
        """Append an error line; no-op when errors are disabled."""
        if self.errors_enabled:
            self._append(ERRORS_DIR, message)

    def record_debug(self, message: str) -> None:
        """Append a debug line; no-op when debug tracing is disabled."""
        if self.debug_enabled:
            self._append(DEBUG_DIR, message)

    def _append(self, category: str, message: str) -> None:
        now = self._clock()
        path = self.path_for(category, now)
        line = f"{now.isoformat(timespec='seconds')} {message}\n"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.warning(f"Diagnostics write to {path} failed: {e}")
