"""
Message routing and rotation for received datagrams.
"""

from hostlog.receiver.parser import parse, validate_filename
from hostlog.receiver.registry import HostRegistry
from hostlog.receiver.rotator import Rotator, find_archives
from hostlog.receiver.service import ReceiverService, build_service
from hostlog.receiver.transport import TransportClosedError, UdpTransport, send_message
from hostlog.receiver.writer import LogWriter

__all__ = [
    "HostRegistry",
    "LogWriter",
    "ReceiverService",
    "Rotator",
    "TransportClosedError",
    "UdpTransport",
    "build_service",
    "find_archives",
    "parse",
    "send_message",
    "validate_filename",
]
