"""Scoped read access to user-selected backup files.

A provider hands out access to one file for the duration of an
``async with`` block and always gives it back, whether the block finishes,
raises or is cancelled.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncContextManager, AsyncIterator, Protocol, Union

from homeledger.core.exceptions import BackupIOError

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class FileAccessProvider(Protocol):
    def access(self, path: PathLike) -> AsyncContextManager[Path]:
        ...


class LocalFileAccess:
    """Plain filesystem access with an existence and permission check up front."""

    def __init__(self):
        self.open_grants = 0
        self.total_grants = 0

    @asynccontextmanager
    async def access(self, path: PathLike) -> AsyncIterator[Path]:
        path = Path(path)
        if not path.is_file():
            raise BackupIOError(f"Backup file not found: {path}")
        if not os.access(path, os.R_OK):
            raise BackupIOError(f"Permission denied reading backup file: {path}")

        self.open_grants += 1
        self.total_grants += 1
        logger.debug(f"Granted read access to {path}")
        try:
            yield path
        finally:
            self.open_grants -= 1
            logger.debug(f"Released read access to {path}")
