"""
Shared fixtures for the hostlog test suite.
"""

from pathlib import Path
from typing import List, Union

import pytest

from hostlog.core.models import Datagram, ProcessingError
from hostlog.receiver.registry import HostRegistry
from hostlog.receiver.rotator import Rotator
from hostlog.receiver.service import ReceiverService
from hostlog.receiver.transport import TransportClosedError
from hostlog.receiver.writer import LogWriter


class FakeTransport:
    """
    In-memory transport.

    Hands out queued items in order. Requests a stop on the service when the
    last item is handed out; raises TransportClosedError if asked for more.
    """

    def __init__(self, items: List[Union[Datagram, ProcessingError]]):
        self.items = list(items)
        self.service = None
        self.opened = False
        self.closed = False
        self.receive_calls = 0

    def open(self) -> None:
        self.opened = True

    def receive(self):
        self.receive_calls += 1
        if not self.items:
            raise TransportClosedError("no more datagrams")
        item = self.items.pop(0)
        if not self.items and self.service is not None:
            self.service.stop()
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_service(tmp_path: Path):
    """Factory building a ReceiverService over a FakeTransport."""

    def _make(items, max_log_size=1024, max_archive_files=0, diagnostics=None):
        transport = FakeTransport(items)
        service = ReceiverService(
            transport=transport,
            registry=HostRegistry(tmp_path / "logs"),
            writer=LogWriter(max_log_size, Rotator(max_archive_files)),
            diagnostics=diagnostics,
        )
        transport.service = service
        return service

    return _make
