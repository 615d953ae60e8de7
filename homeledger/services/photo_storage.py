"""Photo files behind their opaque image identifiers.

Photos and receipts only store an ``image_identifier``; the bytes live in a
photo store. Backup archives read through it on export and write back through
it on restore.
"""
import asyncio
import logging
import os
from pathlib import Path
from typing import Protocol, Union

from homeledger.core.exceptions import PhotoStorageError

logger = logging.getLogger(__name__)


class PhotoStorage(Protocol):
    async def load(self, image_identifier: str) -> bytes:
        ...

    async def save(self, image_identifier: str, data: bytes) -> None:
        ...


class LocalPhotoStorage:
    """One flat directory, one file per identifier."""

    def __init__(self, directory: Union[str, "os.PathLike[str]"]):
        self.directory = Path(directory)

    def path_for(self, image_identifier: str) -> Path:
        # Identifiers are plain file names; anything that could leave the directory is refused
        if not image_identifier or image_identifier == ".." or Path(image_identifier).name != image_identifier:
            raise PhotoStorageError(f"Invalid photo identifier: {image_identifier!r}")
        return self.directory / image_identifier

    async def load(self, image_identifier: str) -> bytes:
        path = self.path_for(image_identifier)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise PhotoStorageError(f"Could not load photo {image_identifier}", cause=e) from e

    async def save(self, image_identifier: str, data: bytes) -> None:
        path = self.path_for(image_identifier)
        partial = path.with_name(f"{path.name}.part")

        def _write():
            self.directory.mkdir(parents=True, exist_ok=True)
            partial.write_bytes(data)
            os.replace(partial, path)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.error(f"Failed to save photo {image_identifier}: {e}")
            raise PhotoStorageError(f"Could not save photo {image_identifier}", cause=e) from e
        logger.debug(f"Saved photo {image_identifier} ({len(data)} bytes)")
