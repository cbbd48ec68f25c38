"""Filesystem blob store rooted at a local directory."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .._utils import join_path, logger
from ..base import BaseBlobStore, BlobNotFoundError


def _write_file(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


def _remove_file(target: Path) -> bool:
    if not target.is_file():
        return False
    target.unlink(missing_ok=True)
    return True


@dataclass
class LocalBlobStore(BaseBlobStore):
    """File I/O runs in worker threads so large snapshots do not block the event loop."""

    def __post_init__(self):
        self.root = Path(self.global_config.get("local_blob_dir", "./backups")).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / join_path(path)).resolve()
        if self.root != target and self.root not in target.parents:
            raise ValueError(f"Blob path escapes storage root: {path}")
        return target

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        content_disposition: Optional[str] = None,
    ) -> str:
        target = self._resolve(path)
        await asyncio.to_thread(_write_file, target, data)
        logger.debug(f"Stored blob {path} ({len(data):,} bytes, {content_type})")
        return target.as_uri()

    async def get(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except (FileNotFoundError, IsADirectoryError):
            raise BlobNotFoundError(path)

    async def delete(self, path: str) -> bool:
        return await asyncio.to_thread(_remove_file, self._resolve(path))
