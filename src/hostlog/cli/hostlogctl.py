#!/usr/bin/env python3
"""
hostlogctl - hostlog operational CLI

- Run the receiver (hostlogctl serve)
- Send a message as an agent would (hostlogctl send)
- Check a deployment (hostlogctl doctor)
- Version info (hostlogctl version)
"""

import argparse
import logging
import os
import signal
import sys
from typing import Any, Dict

from pydantic import ValidationError

from hostlog import __version__
from hostlog.core.config import ReceiverConfig, load_config_file
from hostlog.receiver.service import ReceiverService, build_service
from hostlog.receiver.transport import TransportClosedError, UdpTransport, send_message

logger = logging.getLogger(__name__)


class Colors:
    """ANSI color codes for terminal output."""

    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colorize(text: str, color: str) -> str:
    """Colorize text if stdout is a TTY."""
    if sys.stdout.isatty():
        return f"{color}{text}{Colors.RESET}"
    return text


def format_check_result(name: str, status: str, message: str, width: int = 30) -> str:
    """Format a check result line."""
    padding = " " * max(1, width - len(name))

    if status == "OK":
        status_str = colorize("[OK]", Colors.GREEN)
    elif status == "WARN":
        status_str = colorize("[WARN]", Colors.YELLOW)
    else:  # ERROR
        status_str = colorize("[ERROR]", Colors.RED)

    return f"{name}:{padding}{status_str} {message}"


def setup_logging(log_level: str):
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def config_overrides(args) -> Dict[str, Any]:
    """Collect the config values given explicitly on the command line."""
    mapping = {
        "port": getattr(args, "port", None),
        "bind_address": getattr(args, "bind", None),
        "log_path": getattr(args, "log_path", None),
        "max_log_size": getattr(args, "max_log_size", None),
        "max_archive_files": getattr(args, "max_archive_files", None),
        "log_errors": getattr(args, "log_errors", None),
        "log_debug": getattr(args, "log_debug", None),
        "log_level": getattr(args, "log_level", None),
    }
    return {key: value for key, value in mapping.items() if value is not None}


def resolve_config(args) -> ReceiverConfig:
    """
    Build the effective configuration.

    Precedence: command line, then config file, then environment, then defaults.
    """
    overrides = config_overrides(args)
    if getattr(args, "config", None):
        return load_config_file(args.config, **overrides)
    return ReceiverConfig(**overrides)


def install_stop_handlers(service: ReceiverService) -> None:
    """Make SIGINT/SIGTERM request a stop at the next safe point."""

    def _handler(signum, frame):
        logger.info(
            f"Received signal {signum}, stopping after the next datagram "
            f"(press Ctrl-C again to exit immediately)"
        )
        service.stop()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _handler)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handler)


def cmd_serve(args) -> int:
    """
    Run the receiver until stopped.

    Returns:
        Exit code (0 on clean shutdown, 1 on startup or fatal transport failure)
    """
    try:
        config = resolve_config(args)
    except (ValidationError, ValueError, OSError) as e:
        print(colorize(f"✗ Invalid configuration: {e}", Colors.RED), file=sys.stderr)
        return 1

    setup_logging(config.log_level)

    logger.info("=" * 60)
    logger.info(f"hostlog receiver {__version__}")
    logger.info("=" * 60)
    logger.info(f"Port: {config.port}")
    logger.info(f"Log path: {config.log_path}")
    logger.info(f"Max log size: {config.max_log_size} bytes")
    logger.info(f"Max archive files: {config.max_archive_files or 'unlimited'}")
    logger.info(f"Diagnostics: errors={config.log_errors} debug={config.log_debug}")
    logger.info("=" * 60)

    try:
        service = build_service(config)
    except OSError as e:
        logger.error(f"Cannot prepare log path {config.log_path}: {e}")
        return 1

    install_stop_handlers(service)

    try:
        service.run()
    except TransportClosedError:
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except OSError as e:
        logger.error(f"Cannot listen on {config.bind_address}:{config.port}: {e}")
        return 1

    return 0


def cmd_send(args) -> int:
    """
    Send one message to a receiver.

    Returns:
        Exit code (0 on success, non-zero on failure)
    """
    try:
        sent = send_message(args.host, args.port, args.filename, args.message)
    except OSError as e:
        print(colorize(f"✗ Failed to send message: {e}", Colors.RED), file=sys.stderr)
        return 1

    print(colorize(f"✓ Sent {sent} bytes to {args.host}:{args.port}", Colors.GREEN))
    return 0


def check_log_path(config: ReceiverConfig) -> tuple[str, str]:
    """Check that the log root exists (or can be created) and is writable."""
    try:
        config.log_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return "ERROR", f"cannot create {config.log_path}: {e}"
    if not os.access(config.log_path, os.W_OK):
        return "ERROR", f"{config.log_path} is not writable"
    return "OK", f"{config.log_path.resolve()} is writable"


def check_port(config: ReceiverConfig) -> tuple[str, str]:
    """Check that the UDP port can be bound."""
    # Without SO_REUSEADDR the bind fails while another receiver holds the port
    transport = UdpTransport(
        config.bind_address, config.port, config.buffer_size, reuse_address=False
    )
    try:
        transport.open()
    except OSError as e:
        return "ERROR", f"cannot bind {config.bind_address}:{config.port}: {e}"
    finally:
        transport.close()
    return "OK", f"{config.bind_address}:{config.port} can be bound"


def cmd_doctor(args) -> int:
    """
    Print the effective configuration and run deployment checks.

    Returns:
        Exit code (0 on success, non-zero on critical failure)
    """
    print(colorize("\nhostlog doctor", Colors.BOLD))
    print(colorize("=" * 60, Colors.BOLD))
    print()

    try:
        config = resolve_config(args)
    except (ValidationError, ValueError, OSError) as e:
        print(format_check_result("Configuration", "ERROR", str(e)))
        return 1

    for name, value in config.model_dump().items():
        print(f"  {name:<20} {value}")
    print()

    all_ok = True
    for name, check in (("Log path", check_log_path), ("UDP port", check_port)):
        status, message = check(config)
        print(format_check_result(name, status, message))
        if status == "ERROR":
            all_ok = False

    if config.max_archive_files == 0:
        print(format_check_result("Retention", "WARN", "unlimited archives (MaxArchiveFiles=0)"))
    else:
        print(format_check_result("Retention", "OK", f"{config.max_archive_files} archives per log"))

    print()
    if all_ok:
        print(colorize("✓ All critical checks passed", Colors.GREEN))
        return 0
    else:
        print(colorize("✗ One or more critical checks failed", Colors.RED))
        return 1


def cmd_version(args) -> int:
    """
    Print version information.

    Returns:
        Exit code (always 0)
    """
    print(f"hostlogctl version {__version__}")
    return 0


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--port", type=int, help="UDP listen port (default: 2000)")
    parser.add_argument("--bind", help="Local bind address (default: 0.0.0.0)")
    parser.add_argument("--log-path", help="Root directory for per-host logs")
    parser.add_argument("--max-log-size", type=int, help="Rotation threshold in bytes")
    parser.add_argument(
        "--max-archive-files",
        type=int,
        help="Archives kept per log file, 0 = unlimited"
    )
    parser.add_argument(
        "--log-errors",
        action="store_true",
        default=None,
        help="Record errors under <log-path>/ScriptLogs/Errors"
    )
    parser.add_argument(
        "--log-debug",
        action="store_true",
        default=None,
        help="Record debug traces under <log-path>/ScriptLogs/Debug"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for hostlogctl."""
    parser = argparse.ArgumentParser(
        description="hostlog UDP log receiver",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hostlogctl serve --log-path /var/log/hostlog --max-archive-files 5
  hostlogctl send 127.0.0.1 app.log "service started"
  hostlogctl doctor --config hostlog.yaml
  hostlogctl version

Environment variables:
  HOSTLOG_PORT, HOSTLOG_LOG_PATH, HOSTLOG_MAX_LOG_SIZE, HOSTLOG_MAX_ARCHIVE_FILES,
  HOSTLOG_LOG_ERRORS, HOSTLOG_LOG_DEBUG, HOSTLOG_LOG_LEVEL
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the receiver"
    )
    _add_config_arguments(serve_parser)
    serve_parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Console log level (default: from config)"
    )

    # send command
    send_parser = subparsers.add_parser(
        "send",
        help="Send one <filename>:<message> datagram"
    )
    send_parser.add_argument("host", help="Receiver address")
    send_parser.add_argument("filename", help="Target log file name")
    send_parser.add_argument("message", help="Message text")
    send_parser.add_argument(
        "--port",
        type=int,
        default=2000,
        help="Receiver port (default: 2000)"
    )

    # doctor command
    doctor_parser = subparsers.add_parser(
        "doctor",
        help="Show effective configuration and run checks"
    )
    _add_config_arguments(doctor_parser)

    # version command
    subparsers.add_parser(
        "version",
        help="Show version information"
    )

    return parser


def main(argv=None):
    """Main entry point for hostlogctl CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    # Dispatch to command handlers
    if args.command == "serve":
        return cmd_serve(args)
    elif args.command == "send":
        return cmd_send(args)
    elif args.command == "doctor":
        return cmd_doctor(args)
    elif args.command == "version":
        return cmd_version(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
