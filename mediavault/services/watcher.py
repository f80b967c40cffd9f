"""Watched directory observer"""

import os
from pathlib import Path
from typing import Callable, Iterator, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from ..config import Settings, settings
from .log_service import log_service


def iter_files(directory: Path, config: Settings = settings) -> Iterator[Path]:
    """All indexable files below `directory`, in a stable order"""
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for name in sorted(files):
            path = Path(root) / name
            if not config.is_ignored(path):
                yield path.resolve()


class WatchedDirectoryHandler(FileSystemEventHandler):
    """Forwards file changes below the watched directory"""

    def __init__(self, on_change: Callable[[str], None], config: Settings = settings):
        self.on_change = on_change
        self.config = config

    def _forward(self, path):
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if self.config.is_ignored(path):
            return
        if not os.path.isfile(path):
            return
        self.on_change(str(Path(path).resolve()))

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory:
            self._forward(event.src_path)

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory:
            self._forward(event.src_path)

    def on_moved(self, event: FileSystemEvent):
        # Downloads are commonly renamed from a .part name once complete
        if not event.is_directory:
            self._forward(event.dest_path)


class DirectoryWatcher:
    """watchdog observer running on its own thread"""

    def __init__(
        self,
        directory,
        on_change: Callable[[str], None],
        polling: Optional[bool] = None,
        config: Settings = settings,
    ):
        self.directory = Path(directory)
        self.on_change = on_change
        self.polling = config.WATCH_POLLING if polling is None else polling
        self.config = config
        self.observer = None

    def start(self):
        if self.observer is not None:
            return
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Watch directory does not exist: {self.directory}")

        self.observer = PollingObserver() if self.polling else Observer()
        self.observer.schedule(
            WatchedDirectoryHandler(self.on_change, self.config),
            str(self.directory),
            recursive=True,
        )
        self.observer.start()
        log_service.info(f"Watching {self.directory} (polling={self.polling})")

    def stop(self):
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None
        log_service.info(f"Stopped watching {self.directory}")
