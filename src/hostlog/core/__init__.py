"""
Core module for hostlog.

Contains configuration and the data models shared by the receiver components.
"""

from hostlog.core.config import ReceiverConfig, load_config_file
from hostlog.core.models import (
    Datagram,
    ErrorKind,
    HostEntry,
    LogMessage,
    ProcessingError,
    ReceiverStats,
    RotationResult,
    WriteResult,
)

__all__ = [
    "Datagram",
    "ErrorKind",
    "HostEntry",
    "LogMessage",
    "ProcessingError",
    "ReceiverConfig",
    "ReceiverStats",
    "RotationResult",
    "WriteResult",
    "load_config_file",
]
