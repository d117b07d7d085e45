"""
Tests for the receive loop: routing, ordering, retention and failure isolation.
"""

import logging
from datetime import datetime
from pathlib import Path

import pytest

from hostlog.core.models import Datagram, ErrorKind, ProcessingError
from hostlog.diagnostics.sink import DiagnosticsSink
from hostlog.receiver.rotator import find_archives
from hostlog.receiver.transport import TransportClosedError


def datagram(address: str, text: str) -> Datagram:
    return Datagram(remote_address=address, payload=text.encode("utf-8"))


def _read_in_rotation_order(directory: Path, filename: str):
    """All lines of a log, oldest archive first, active file last."""
    lines = []
    for index in reversed(find_archives(directory, filename)):
        lines.extend((directory / f"{filename}.{index}").read_text(encoding="utf-8").splitlines())
    active = directory / filename
    if active.exists():
        lines.extend(active.read_text(encoding="utf-8").splitlines())
    return lines


class TestRouting:
    """Per-host routing of parsed messages."""

    def test_same_filename_from_two_hosts(self, tmp_path: Path, make_service):
        service = make_service([])
        service.process_datagram(datagram("10.0.0.5", "app.log:from five"))
        service.process_datagram(datagram("10.0.0.6", "app.log:from six"))

        logs = tmp_path / "logs"
        assert (logs / "10.0.0.5" / "app.log").read_text(encoding="utf-8") == "from five\n"
        assert (logs / "10.0.0.6" / "app.log").read_text(encoding="utf-8") == "from six\n"
        assert service.stats.written == 2

    def test_invalid_filename_writes_nothing(self, tmp_path: Path, make_service):
        service = make_service([])
        error = service.process_datagram(datagram("10.0.0.5", "../escape.log:evil"))

        assert error.kind == ErrorKind.PARSE
        assert error.remote_address == "10.0.0.5"
        assert not (tmp_path / "logs").exists()
        assert service.stats.dropped == 1
        assert service.stats.errors == {ErrorKind.PARSE: 1}
        assert "10.0.0.5" not in service.registry

    def test_directory_error_is_retried_on_next_message(self, tmp_path: Path, make_service):
        service = make_service([])
        logs = tmp_path / "logs"
        logs.mkdir()
        blocker = logs / "10.0.0.5"
        blocker.write_text("", encoding="utf-8")

        error = service.process_datagram(datagram("10.0.0.5", "app.log:first"))
        assert error.kind == ErrorKind.DIRECTORY

        blocker.unlink()
        assert service.process_datagram(datagram("10.0.0.5", "app.log:second")) is None
        assert (blocker / "app.log").read_text(encoding="utf-8") == "second\n"

    def test_write_error_drops_only_that_message(self, tmp_path: Path, make_service):
        service = make_service([], max_log_size=1_000_000)
        service.process_datagram(datagram("10.0.0.5", "app.log:ok"))
        # A directory where the log file should be makes the append fail
        (tmp_path / "logs" / "10.0.0.5" / "broken.log").mkdir()

        error = service.process_datagram(datagram("10.0.0.5", "broken.log:lost"))
        assert error.kind == ErrorKind.WRITE
        assert service.process_datagram(datagram("10.0.0.5", "app.log:still ok")) is None
        assert service.stats.written == 2
        assert service.stats.dropped == 1


class TestRotationProperties:
    """Ordering and retention across many rotations."""

    def test_bodies_read_back_in_order(self, tmp_path: Path, make_service):
        service = make_service([], max_log_size=50, max_archive_files=0)
        bodies = [f"message {n:03d} with: colons" for n in range(40)]
        for text in bodies:
            assert service.process_datagram(datagram("10.0.0.5", f"app.log:{text}")) is None

        directory = tmp_path / "logs" / "10.0.0.5"
        assert _read_in_rotation_order(directory, "app.log") == bodies
        assert service.stats.rotations > 0

    def test_archive_count_never_exceeds_limit(self, tmp_path: Path, make_service):
        service = make_service([], max_log_size=30, max_archive_files=3)
        directory = tmp_path / "logs" / "10.0.0.5"
        for n in range(50):
            service.process_datagram(datagram("10.0.0.5", f"app.log:line {n:02d} padding"))
            archives = find_archives(directory, "app.log")
            assert len(archives) <= 3
            assert archives == list(range(1, len(archives) + 1))

        # Newest lines survive in order
        lines = _read_in_rotation_order(directory, "app.log")
        assert lines[-1] == "line 49 padding"
        assert lines == sorted(lines)

    def test_unlimited_archive_count_is_non_decreasing(self, tmp_path: Path, make_service):
        service = make_service([], max_log_size=30, max_archive_files=0)
        directory = tmp_path / "logs" / "10.0.0.5"
        previous = 0
        for n in range(30):
            service.process_datagram(datagram("10.0.0.5", f"app.log:line {n:02d} padding"))
            count = len(find_archives(directory, "app.log"))
            assert count >= previous
            previous = count
        assert previous == service.stats.rotations


class TestRunLoop:
    """Loop control and transport failures."""

    def test_processes_until_stop(self, tmp_path: Path, make_service):
        service = make_service([
            datagram("10.0.0.5", "app.log:one"),
            datagram("10.0.0.5", "app.log:two"),
            datagram("10.0.0.6", "other.log:three"),
        ])
        service.run()

        assert service.transport.opened
        assert service.transport.closed
        assert service.transport.receive_calls == 3
        assert service.stats.received == 3
        assert service.stats.written == 3

    def test_stop_is_checked_only_after_processing(self, make_service):
        service = make_service([
            datagram("10.0.0.5", "app.log:one"),
            datagram("10.0.0.5", "app.log:two"),
        ])
        service.stop()
        service.run()

        assert service.transport.receive_calls == 1
        assert service.stats.written == 1

    def test_transport_error_does_not_end_loop(self, make_service):
        service = make_service([
            ProcessingError(kind=ErrorKind.TRANSPORT, message="connection reset"),
            datagram("10.0.0.5", "app.log:after error"),
        ])
        service.run()

        assert service.stats.errors[ErrorKind.TRANSPORT] == 1
        assert service.stats.written == 1
        assert service.stats.dropped == 0

    def test_shutdown_lists_hosts_seen(self, make_service, caplog: pytest.LogCaptureFixture):
        service = make_service([
            datagram("10.0.0.5", "app.log:one"),
            datagram("10.0.0.6", "app.log:two"),
        ])
        with caplog.at_level(logging.INFO, logger="hostlog.receiver.service"):
            service.run()

        assert [entry.remote_address for entry in service.registry.entries()] == ["10.0.0.5", "10.0.0.6"]
        assert "Host 10.0.0.5 first seen" in caplog.text
        assert "Host 10.0.0.6 first seen" in caplog.text

    def test_fatal_transport_error_closes_socket(self, make_service):
        service = make_service([datagram("10.0.0.5", "app.log:one")])
        service.transport.service = None

        with pytest.raises(TransportClosedError):
            service.run()

        assert service.transport.closed
        assert service.stats.written == 1


class TestDiagnostics:
    """Errors and debug traces reach the diagnostics sink."""

    def test_errors_and_debug_recorded(self, tmp_path: Path, make_service):
        sink = DiagnosticsSink(
            tmp_path / "diag",
            errors_enabled=True,
            debug_enabled=True,
            clock=lambda: datetime(2026, 10, 19, 12, 0, 0),
        )
        service = make_service([], diagnostics=sink)

        service.process_datagram(datagram("10.0.0.9", "no delimiter"))
        service.process_datagram(datagram("10.0.0.9", "app.log:fine"))

        errors = (tmp_path / "diag" / "Errors" / "2026-10-19.log").read_text(encoding="utf-8")
        assert "parse error from 10.0.0.9" in errors
        debug = (tmp_path / "diag" / "Debug" / "2026-10-19.log").read_text(encoding="utf-8")
        assert "10.0.0.9 ->" in debug

    def test_rotation_failure_is_reported_and_message_kept(self, tmp_path: Path, make_service):
        sink = DiagnosticsSink(
            tmp_path / "diag",
            errors_enabled=True,
            clock=lambda: datetime(2026, 10, 19, 12, 0, 0),
        )
        service = make_service([], max_log_size=100, diagnostics=sink)
        directory = tmp_path / "logs" / "10.0.0.5"
        directory.mkdir(parents=True)
        (directory / "app.log").write_text("a" * 200 + "\n", encoding="utf-8")
        (directory / "app.log.1").write_text("old\n", encoding="utf-8")
        # A non-empty directory cannot be replaced by a file, so the shift fails
        (directory / "app.log.2").mkdir()
        (directory / "app.log.2" / "keep").write_text("x", encoding="utf-8")

        assert service.process_datagram(datagram("10.0.0.5", "app.log:survives")) is None

        assert service.stats.errors == {ErrorKind.ROTATION: 1}
        assert service.stats.rotations == 0
        assert service.stats.written == 1
        assert service.stats.dropped == 0
        errors = (tmp_path / "diag" / "Errors" / "2026-10-19.log").read_text(encoding="utf-8")
        assert "rotation error from 10.0.0.5 for 'app.log'" in errors
        lines = (directory / "app.log").read_text(encoding="utf-8").splitlines()
        assert lines[-1] == "survives"
        assert (directory / "app.log.1").read_text(encoding="utf-8") == "old\n"
