"""
Size-based rotation of per-host log files.

Archives are named ``<filename>.<n>``. Suffix 1 is always the most recently
rotated file and the highest suffix is the oldest; suffixes stay dense
(1..k) after every completed rotation.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Union

from hostlog.core.models import ErrorKind, ProcessingError, RotationResult

logger = logging.getLogger(__name__)


def archive_name(filename: str, index: int) -> str:
    """Name of the archive with the given suffix."""
    return f"{filename}.{index}"


def find_archives(directory_path: Union[str, Path], filename: str) -> List[int]:
    """
    Scan a directory for archives of a log file.

    Args:
        directory_path: Host log directory
        filename: Active log file name

    Returns:
        Sorted list of archive suffixes present on disk

    Raises:
        OSError: If the directory cannot be listed
    """
    pattern = re.compile(re.escape(filename) + r"\.([1-9][0-9]*)")
    suffixes = []
    with os.scandir(directory_path) as entries:
        for entry in entries:
            match = pattern.fullmatch(entry.name)
            if match and entry.is_file():
                suffixes.append(int(match.group(1)))
    return sorted(suffixes)


class Rotator:
    """
    Renumbers and retires archive files.

    Usage:
        rotator = Rotator(max_archive_files=5)
        result = rotator.rotate(Path("logs/10.0.0.5"), "app.log")
        if not result.ok:
            ...
    """

    def __init__(self, max_archive_files: int = 0):
        """
        Initialize rotator.

        Args:
            max_archive_files: Archives kept per log file (0 = unlimited)
        """
        if max_archive_files < 0:
            raise ValueError("max_archive_files must be >= 0")
        self.max_archive_files = max_archive_files

    def rotate(self, directory_path: Union[str, Path], filename: str) -> RotationResult:
        """
        Rotate ``filename`` to ``filename.1``, shifting older archives up.

        Deletion of archives beyond the retention limit happens before any
        rename so that no rename ever targets an existing name. The new
        active file is not created here; the next append creates it.

        Args:
            directory_path: Host log directory
            filename: Active log file name

        Returns:
            RotationResult; on failure ``error`` is set and the steps already
            performed are listed in ``deleted`` and ``renamed``
        """
        directory = Path(directory_path)
        result = RotationResult(directory_path=directory, filename=filename)

        try:
            suffixes = find_archives(directory, filename)
        except OSError as e:
            return self._fail(result, f"cannot scan {directory}: {e}")

        # Retire the oldest archives first
        if self.max_archive_files > 0:
            while suffixes and len(suffixes) >= self.max_archive_files:
                oldest = suffixes.pop()
                name = archive_name(filename, oldest)
                try:
                    (directory / name).unlink()
                except OSError as e:
                    return self._fail(result, f"cannot delete {name}: {e}")
                result.deleted.append(name)
                logger.debug(f"Deleted archive {directory / name}")

        # An earlier aborted rotation can leave gaps; close them before shifting
        if suffixes != list(range(1, len(suffixes) + 1)):
            for position, index in enumerate(suffixes, start=1):
                if index == position:
                    continue
                source = archive_name(filename, index)
                target = archive_name(filename, position)
                try:
                    os.rename(directory / source, directory / target)
                except OSError as e:
                    return self._fail(result, f"cannot rename {source} to {target}: {e}")
                result.renamed.append((source, target))
                logger.warning(f"Closed archive gap: {directory / source} -> {target}")
            suffixes = list(range(1, len(suffixes) + 1))

        # Highest surviving suffix first, so nothing is overwritten
        for index in reversed(suffixes):
            source = archive_name(filename, index)
            target = archive_name(filename, index + 1)
            try:
                os.rename(directory / source, directory / target)
            except OSError as e:
                return self._fail(result, f"cannot rename {source} to {target}: {e}")
            result.renamed.append((source, target))

        target = archive_name(filename, 1)
        try:
            os.rename(directory / filename, directory / target)
        except OSError as e:
            return self._fail(result, f"cannot rename {filename} to {target}: {e}")
        result.renamed.append((filename, target))

        logger.info(
            f"Rotated {directory / filename} "
            f"({len(suffixes) + 1} archives, {len(result.deleted)} deleted)"
        )
        return result

    def _fail(self, result: RotationResult, message: str) -> RotationResult:
        result.error = ProcessingError(
            kind=ErrorKind.ROTATION,
            message=message,
            filename=result.filename,
        )
        return result
