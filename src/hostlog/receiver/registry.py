"""
Host registry: maps remote addresses to their log directories.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from hostlog.core.models import ErrorKind, HostEntry, ProcessingError

logger = logging.getLogger(__name__)


class HostRegistry:
    """
    In-memory mapping from remote address to log directory.

    Directories are created lazily on first contact. Entries are never
    evicted. The registry is owned by a single worker; the exists-then-create
    sequence is not safe to share between concurrent workers.
    """

    def __init__(self, root_log_path: Union[str, Path]):
        """
        Initialize host registry.

        Args:
            root_log_path: Directory under which one directory per host is created
        """
        self.root_log_path = Path(root_log_path)
        self._entries: Dict[str, HostEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, remote_address: str) -> bool:
        return remote_address in self._entries

    def entries(self) -> List[HostEntry]:
        """Hosts seen so far, in order of first contact."""
        return list(self._entries.values())

    def get(self, remote_address: str) -> Optional[HostEntry]:
        """Return the entry for a host, if it has been seen."""
        return self._entries.get(remote_address)

    def resolve_directory(self, remote_address: str) -> Union[Path, ProcessingError]:
        """
        Return the log directory for a host, creating it on first contact.

        Args:
            remote_address: Sender address (IP only)

        Returns:
            Directory path, or ProcessingError(kind=directory) if it could not
            be created. No entry is recorded on failure, so the next message
            from the same host retries.
        """
        entry = self._entries.get(remote_address)
        if entry is not None:
            return entry.directory_path

        directory = self.root_log_path / remote_address
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ProcessingError(
                kind=ErrorKind.DIRECTORY,
                message=f"cannot create {directory}: {e}",
                remote_address=remote_address,
            )

        self._entries[remote_address] = HostEntry(
            remote_address=remote_address,
            directory_path=directory,
        )
        logger.info(f"New host {remote_address} -> {directory}")
        return directory
