"""
Receive loop for the hostlog receiver.

A single worker blocks on the transport, then runs parser, host registry,
log writer and rotator to completion before asking for the next datagram.
Only one message is in flight at a time, so the registry and the files it
points to are never touched concurrently.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

from hostlog.core.config import ReceiverConfig
from hostlog.core.models import Datagram, ProcessingError, ReceiverStats
from hostlog.diagnostics.sink import DiagnosticsSink
from hostlog.receiver.parser import parse
from hostlog.receiver.registry import HostRegistry
from hostlog.receiver.rotator import Rotator
from hostlog.receiver.transport import TransportClosedError, UdpTransport
from hostlog.receiver.writer import LogWriter

logger = logging.getLogger(__name__)


class ReceiverService:
    """
    Routes datagrams into per-host log files.

    The transport only needs ``open()``, ``receive()`` and ``close()``;
    ``receive()`` returns a Datagram or a ProcessingError and raises
    TransportClosedError when the socket is gone.

    Stop requests are honoured only after a datagram has been fully
    processed. A pending receive is never interrupted.
    """

    def __init__(
        self,
        transport,
        registry: HostRegistry,
        writer: LogWriter,
        diagnostics: Optional[DiagnosticsSink] = None,
    ):
        """
        Initialize receiver service.

        Args:
            transport: Datagram source (e.g. UdpTransport)
            registry: Host registry owning the per-host directories
            writer: Log writer (with its rotator)
            diagnostics: Optional sink for durable error/debug traces
        """
        self.transport = transport
        self.registry = registry
        self.writer = writer
        self.diagnostics = diagnostics
        self.stats = ReceiverStats()
        self._stop = threading.Event()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Ask the loop to exit after the datagram currently being handled."""
        self._stop.set()

    def process_datagram(self, datagram: Datagram) -> Optional[ProcessingError]:
        """
        Parse, route and write one datagram.

        Args:
            datagram: Received datagram

        Returns:
            The error that caused the message to be dropped, or None if it
            was written. Rotation failures are reported but do not drop the
            message.
        """
        self.stats.received += 1
        address = datagram.remote_address

        message = parse(datagram.payload)
        if isinstance(message, ProcessingError):
            message.remote_address = address
            return self._drop(message)

        directory = self.registry.resolve_directory(address)
        if isinstance(directory, ProcessingError):
            return self._drop(directory)

        result = self.writer.write(directory, message.target_filename, message.body)

        if result.rotation is not None:
            if result.rotation.ok:
                self.stats.rotations += 1
                self._debug(f"Rotated {result.path}")
            else:
                result.rotation.error.remote_address = address
                self._report(result.rotation.error)

        if result.error is not None:
            result.error.remote_address = address
            return self._drop(result.error)

        self.stats.written += 1
        self._debug(f"{address} -> {result.path} ({result.bytes_written} bytes)")
        return None

    def run(self) -> None:
        """
        Open the transport and process datagrams until stopped.

        Raises:
            TransportClosedError: If the socket fails irrecoverably; the
                transport is closed before the error propagates
        """
        self.transport.open()
        try:
            while True:
                item = self.transport.receive()
                if isinstance(item, ProcessingError):
                    self._report(item)
                else:
                    self.process_datagram(item)

                if self.stop_requested:
                    logger.info("Stop requested, leaving receive loop")
                    break
        except TransportClosedError as e:
            logger.error(f"Fatal transport error: {e}", exc_info=True)
            if self.diagnostics:
                self.diagnostics.record_error(f"fatal transport error: {e}")
            raise
        finally:
            self.transport.close()
            logger.info(f"Receiver stopped: {self.stats.summary()}")
            for entry in self.registry.entries():
                logger.info(
                    f"Host {entry.remote_address} first seen "
                    f"{entry.first_seen:%Y-%m-%d %H:%M:%S} -> {entry.directory_path}"
                )

    def _report(self, error: ProcessingError) -> None:
        self.stats.record_error(error)
        text = error.describe()
        logger.warning(text)
        if self.diagnostics:
            self.diagnostics.record_error(text)

    def _drop(self, error: ProcessingError) -> ProcessingError:
        self.stats.dropped += 1
        self._report(error)
        return error

    def _debug(self, text: str) -> None:
        logger.debug(text)
        if self.diagnostics:
            self.diagnostics.record_debug(text)


def build_service(config: ReceiverConfig, transport=None) -> ReceiverService:
    """
    Wire up a ReceiverService from configuration.

    Args:
        config: Receiver configuration
        transport: Datagram source (defaults to a UdpTransport on the configured port)

    Returns:
        Ready-to-run ReceiverService
    """
    log_path = Path(config.log_path)
    log_path.mkdir(parents=True, exist_ok=True)

    if transport is None:
        transport = UdpTransport(
            bind_address=config.bind_address,
            port=config.port,
            buffer_size=config.buffer_size,
        )

    diagnostics = None
    if config.log_errors or config.log_debug:
        diagnostics = DiagnosticsSink(
            config.diagnostics_path,
            errors_enabled=config.log_errors,
            debug_enabled=config.log_debug,
        )

    rotator = Rotator(max_archive_files=config.max_archive_files)
    writer = LogWriter(max_log_size=config.max_log_size, rotator=rotator)
    return ReceiverService(
        transport=transport,
        registry=HostRegistry(log_path),
        writer=writer,
        diagnostics=diagnostics,
    )
