"""
Appends messages to per-host log files, rotating them by size.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from hostlog.core.models import ErrorKind, ProcessingError, WriteResult
from hostlog.receiver.rotator import Rotator

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"


class LogWriter:
    """
    Appends one line per message to ``<directory>/<filename>``.

    The size check runs before each append against the size on disk at
    that moment, so a file may slightly exceed ``max_log_size`` before it
    is rotated, and the message that triggers a rotation is the first one
    written to the fresh file.
    """

    def __init__(self, max_log_size: int, rotator: Optional[Rotator] = None):
        """
        Initialize log writer.

        Args:
            max_log_size: Size in bytes above which the file is rotated
            rotator: Rotator invoked when the threshold is exceeded
                (defaults to unlimited retention)
        """
        if max_log_size < 1:
            raise ValueError("max_log_size must be >= 1")
        self.max_log_size = max_log_size
        self.rotator = rotator or Rotator()

    def needs_rotation(self, path: Path) -> bool:
        """
        Check whether a file is over the threshold.

        Raises:
            OSError: If the file exists but cannot be inspected
        """
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return False
        return size > self.max_log_size

    def write(self, directory_path: Union[str, Path], filename: str, body: str) -> WriteResult:
        """
        Append a message, rotating the file first if it is over the threshold.

        A failed rotation is recorded on the result but does not stop the
        append.

        Args:
            directory_path: Host log directory
            filename: Target file name inside the directory
            body: Message text without line terminator

        Returns:
            WriteResult; ``error`` is set if the message was dropped
        """
        directory = Path(directory_path)
        path = directory / filename
        result = WriteResult(path=path)

        try:
            rotate = self.needs_rotation(path)
        except OSError as e:
            result.error = ProcessingError(
                kind=ErrorKind.WRITE,
                message=f"cannot stat {path}: {e}",
                filename=filename,
            )
            return result

        if rotate:
            result.rotation = self.rotator.rotate(directory, filename)

        data = body + LINE_TERMINATOR
        try:
            with open(path, "a", encoding="utf-8", newline="") as f:
                f.write(data)
        except OSError as e:
            result.error = ProcessingError(
                kind=ErrorKind.WRITE,
                message=f"cannot append to {path}: {e}",
                filename=filename,
            )
            return result

        result.bytes_written = len(data.encode("utf-8"))
        return result
