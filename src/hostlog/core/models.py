"""
Data models shared by the receiver components.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Where in the pipeline a message was lost or degraded."""

    TRANSPORT = "transport"
    PARSE = "parse"
    DIRECTORY = "directory"
    WRITE = "write"
    ROTATION = "rotation"


class ProcessingError(BaseModel):
    """
    A failure converted into a value.

    Components return these instead of raising so that the receive loop
    can log the failure and move on to the next datagram.
    """

    kind: ErrorKind
    message: str
    remote_address: Optional[str] = None
    filename: Optional[str] = None

    def describe(self) -> str:
        """One-line description for console and diagnostics output."""
        parts = [f"{self.kind.value} error"]
        if self.remote_address:
            parts.append(f"from {self.remote_address}")
        if self.filename:
            parts.append(f"for '{self.filename}'")
        return f"{' '.join(parts)}: {self.message}"


class Datagram(BaseModel):
    """One received UDP payload and the address it came from."""

    remote_address: str
    payload: bytes


class LogMessage(BaseModel):
    """A parsed ``<filename>:<body>`` payload."""

    target_filename: str
    body: str


class HostEntry(BaseModel):
    """Directory assigned to a remote host for the lifetime of the process."""

    remote_address: str
    directory_path: Path
    first_seen: datetime = Field(default_factory=datetime.now)


class RotationResult(BaseModel):
    """Outcome of rotating one active log file."""

    directory_path: Path
    filename: str
    deleted: List[str] = Field(default_factory=list)
    renamed: List[Tuple[str, str]] = Field(default_factory=list)
    error: Optional[ProcessingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class WriteResult(BaseModel):
    """Outcome of appending one message to a log file."""

    path: Path
    bytes_written: int = 0
    rotation: Optional[RotationResult] = None
    error: Optional[ProcessingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def rotated(self) -> bool:
        return self.rotation is not None and self.rotation.ok


class ReceiverStats(BaseModel):
    """Counters kept by the receive loop."""

    received: int = 0
    written: int = 0
    dropped: int = 0
    rotations: int = 0
    errors: Dict[ErrorKind, int] = Field(default_factory=dict)

    def record_error(self, error: ProcessingError) -> None:
        self.errors[error.kind] = self.errors.get(error.kind, 0) + 1

    def summary(self) -> str:
        error_text = ", ".join(
            f"{kind.value}={count}" for kind, count in sorted(self.errors.items())
        ) or "none"
        return (
            f"received={self.received} written={self.written} "
            f"dropped={self.dropped} rotations={self.rotations} errors: {error_text}"
        )
