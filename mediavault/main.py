"""MediaVault application wiring"""

from typing import List, Optional

from .config import Settings, settings
from .database import init_db
from .models import IndexLog
from .services.catalog_service import CatalogRepository
from .services.indexer import Indexer
from .services.log_service import log_service


class MediaVault:
    """Owns the indexer and brings the database up before it starts"""

    def __init__(self, config: Settings = settings, indexer: Optional[Indexer] = None):
        self.config = config
        self.indexer = indexer or Indexer(config=config)

    async def start(self):
        log_service.info("Starting MediaVault")
        await init_db()
        if not self.config.TMDB_API_KEY:
            log_service.info("TMDB_API_KEY not set, metadata lookups are disabled")
        await self.indexer.start()

    async def stop(self):
        log_service.info("Stopping MediaVault")
        await self.indexer.stop()

    async def index(self, *paths: str) -> List[Optional[IndexLog]]:
        """Queue files, wait until the queue drains and return their index logs"""
        for path in paths:
            self.indexer.enqueue(path)
        await self.indexer.wait_idle()

        async with self.indexer.session_factory() as db:
            repository = CatalogRepository(db)
            return [await repository.get_index_log(path) for path in paths]
