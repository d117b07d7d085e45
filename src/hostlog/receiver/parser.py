"""
Message parser for ``<filename>:<body>`` payloads.

Validation is purely syntactic: nothing here touches the filesystem.
"""

import logging
import re
from typing import Optional, Union

from hostlog.core.models import ErrorKind, LogMessage, ProcessingError

logger = logging.getLogger(__name__)

DELIMITER = ":"

# Portable set: rejected on every platform so a log tree can be moved between hosts
FORBIDDEN_CHARACTERS = frozenset('<>:"/\\|?*\0')
RESERVED_NAMES = frozenset({".", ".."})
MAX_FILENAME_BYTES = 255

# Names like app.log.3 share the archive namespace of app.log
ARCHIVE_SUFFIX = re.compile(r"\.[0-9]+$")


def validate_filename(filename: str) -> Optional[str]:
    """
    Check that a filename is a single valid path component.

    Args:
        filename: Candidate file name

    Returns:
        A reason string if the name is invalid, otherwise None
    """
    if not filename:
        return "empty filename"
    if filename in RESERVED_NAMES:
        return f"reserved filename '{filename}'"
    for char in filename:
        if char in FORBIDDEN_CHARACTERS or ord(char) < 32:
            return f"forbidden character {char!r} in filename"
    if len(filename.encode("utf-8")) > MAX_FILENAME_BYTES:
        return f"filename longer than {MAX_FILENAME_BYTES} bytes"
    return None


def parse(payload: bytes) -> Union[LogMessage, ProcessingError]:
    """
    Split a raw payload into target filename and body.

    The filename is everything before the first ``:``; the body is
    everything after it, later colons included.

    Args:
        payload: Raw datagram bytes

    Returns:
        LogMessage on success, ProcessingError(kind=parse) otherwise
    """
    text = payload.decode("utf-8", errors="replace")

    filename, sep, body = text.partition(DELIMITER)
    if not sep:
        return ProcessingError(
            kind=ErrorKind.PARSE,
            message="missing ':' delimiter",
        )

    reason = validate_filename(filename)
    if reason:
        return ProcessingError(
            kind=ErrorKind.PARSE,
            message=f"invalid filename: {reason}",
            filename=filename,
        )

    if ARCHIVE_SUFFIX.search(filename):
        logger.warning(
            f"Filename '{filename}' looks like an archive of "
            f"'{ARCHIVE_SUFFIX.sub('', filename)}' and may be renamed or deleted by its rotation"
        )

    # The writer adds its own line terminator
    if body.endswith("\r\n"):
        body = body[:-2]
    elif body.endswith("\n"):
        body = body[:-1]

    return LogMessage(target_filename=filename, body=body)
