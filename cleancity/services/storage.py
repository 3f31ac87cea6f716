"""Photo storage for complaint images.

The lifecycle engine treats storage as a synchronous black box: it hands
over an :class:`~cleancity.models.complaint.ImageUpload` and gets back an
opaque path string.  :meth:`FileStorage.discard` lets the engine remove a
file it stored for a transition that then failed to commit.
"""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePath
from typing import Protocol, runtime_checkable
from uuid import uuid4

import structlog

from cleancity.models.complaint import ImageUpload
from cleancity.services.errors import InvalidArgumentError

logger = structlog.get_logger(__name__)

_DEFAULT_MAX_BYTES = 5 * 1024 * 1024


@runtime_checkable
class FileStorage(Protocol):
    """Storage backend interface."""

    async def store(self, upload: ImageUpload) -> str: ...

    async def discard(self, path: str) -> None: ...


def validate_image(upload: ImageUpload, *, max_bytes: int = _DEFAULT_MAX_BYTES) -> None:
    """Reject anything that is not a non-empty image within the size limit."""
    if not upload.content_type.lower().startswith("image/"):
        raise InvalidArgumentError(
            "Only images are allowed",
            details={"filename": upload.filename, "content_type": upload.content_type},
        )
    if upload.size == 0:
        raise InvalidArgumentError("Image is empty", details={"filename": upload.filename})
    if upload.size > max_bytes:
        raise InvalidArgumentError(
            f"Image exceeds {max_bytes} bytes",
            details={"filename": upload.filename, "size": upload.size},
        )


class LocalFileStorage:
    """Writes uploads to a local directory under random names.

    Returned paths are relative to *root* (``"<uuid>.<ext>"``) so they stay
    valid if the directory is mounted somewhere else.
    """

    __slots__ = ("_max_bytes", "_root")

    def __init__(self, root: str | Path, *, max_bytes: int = _DEFAULT_MAX_BYTES) -> None:
        self._root = Path(root)
        self._max_bytes = max_bytes

    @property
    def root(self) -> Path:
        return self._root

    async def store(self, upload: ImageUpload) -> str:
        validate_image(upload, max_bytes=self._max_bytes)
        suffix = PurePath(upload.filename).suffix.lower()[:10]
        name = f"{uuid4().hex}{suffix}"
        await asyncio.to_thread(self._write, name, upload.data)
        logger.info("storage.stored", path=name, size=upload.size)
        return name

    async def discard(self, path: str) -> None:
        target = self._root / PurePath(path).name
        await asyncio.to_thread(target.unlink, missing_ok=True)
        logger.info("storage.discarded", path=path)

    def _write(self, name: str, data: bytes) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        (self._root / name).write_bytes(data)
