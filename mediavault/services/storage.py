"""Media storage: the save-directory tree and per-job scratch directories"""

import asyncio
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from ..config import settings
from .log_service import log_service

STORAGE_KINDS = ("image", "video")


class MediaStorage:
    """Stores artifacts under <save>/image and <save>/video"""

    def __init__(self, save_dir: Optional[Path] = None, temp_dir: Optional[Path] = None):
        self.save_dir = Path(save_dir or settings.SAVE_DIR)
        self.temp_dir = temp_dir or settings.TEMP_DIR

    def directory(self, kind: str) -> Path:
        """Save directory for 'image' or 'video' artifacts, created on demand"""
        if kind not in STORAGE_KINDS:
            raise ValueError(f"Unknown storage kind: {kind}")
        path = self.save_dir / kind
        path.mkdir(parents=True, exist_ok=True)
        return path

    def path_for(self, kind: str, filename: str) -> Path:
        return self.directory(kind) / filename

    async def copy(self, kind: str, source: Path, filename: str) -> Path:
        destination = self.path_for(kind, filename)
        await asyncio.to_thread(shutil.copyfile, source, destination)
        return destination

    async def write_text(self, kind: str, filename: str, content: str) -> Path:
        destination = self.path_for(kind, filename)
        await asyncio.to_thread(destination.write_text, content, encoding="utf-8")
        return destination

    async def write_bytes(self, kind: str, filename: str, content: bytes) -> Path:
        destination = self.path_for(kind, filename)
        await asyncio.to_thread(destination.write_bytes, content)
        return destination

    @asynccontextmanager
    async def scratch_directory(self, prefix: str = "mediavault-") -> AsyncIterator[Path]:
        """Temporary working directory, removed on every exit path"""
        if self.temp_dir:
            Path(self.temp_dir).mkdir(parents=True, exist_ok=True)
        path = Path(
            await asyncio.to_thread(
                tempfile.mkdtemp, prefix=prefix, dir=str(self.temp_dir) if self.temp_dir else None
            )
        )
        try:
            yield path
        finally:
            await asyncio.to_thread(shutil.rmtree, path, True)
            log_service.debug(f"Removed scratch directory {path}")


async def remove_file(path: Path):
    """Delete a source file after it has been indexed"""
    await asyncio.to_thread(Path(path).unlink, True)
