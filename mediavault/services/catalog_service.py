"""Catalog persistence"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database import new_id, utcnow
from ..models import (
    CastMember,
    ContentRating,
    Genre,
    Image,
    IndexLog,
    Season,
    Show,
    Watchable,
)
from .log_service import log_service


class CatalogRepository:
    """Find, save and upsert operations over the catalog; each save commits"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, *instances):
        """Add and commit instances, returning the first"""
        self.db.add_all(instances)
        await self.db.commit()
        return instances[0] if instances else None

    # Index logs

    async def get_index_log(self, filepath: str) -> Optional[IndexLog]:
        result = await self.db.execute(
            select(IndexLog).where(IndexLog.filepath == str(filepath))
        )
        return result.scalar_one_or_none()

    async def create_index_log(self, filepath: str) -> IndexLog:
        log = IndexLog(filepath=str(filepath), indexing=True, failed=False)
        return await self.save(log)

    async def mark_interrupted_logs(self) -> int:
        """Fail logs left in the indexing state by a process that died mid-job"""
        result = await self.db.execute(
            update(IndexLog)
            .where(IndexLog.indexing.is_(True))
            .values(
                indexing=False,
                failed=True,
                error=f"[{utcnow().isoformat()}] Indexing was interrupted",
            )
        )
        await self.db.commit()
        if result.rowcount:
            log_service.info(f"Marked {result.rowcount} interrupted index logs as failed")
        return result.rowcount or 0

    # Reference data

    def _insert(self, model):
        """Dialect specific INSERT supporting ON CONFLICT DO NOTHING"""
        if self.db.bind.dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        return insert(model)

    async def _upsert(self, model, keys: dict, values: dict):
        stmt = (
            self._insert(model)
            .values(id=new_id(), **keys, **values)
            .on_conflict_do_nothing(index_elements=list(keys))
        )
        await self.db.execute(stmt)
        await self.db.commit()

        query = select(model)
        for column, value in keys.items():
            query = query.where(getattr(model, column) == value)
        result = await self.db.execute(query)
        return result.scalar_one()

    async def upsert_genre(self, tmdb_id: int, name: str) -> Genre:
        return await self._upsert(Genre, {"tmdb_id": tmdb_id}, {"name": name})

    async def upsert_cast_member(
        self, tmdb_id: int, name: str, popularity: float = 0
    ) -> CastMember:
        return await self._upsert(
            CastMember, {"tmdb_id": tmdb_id}, {"name": name, "popularity": popularity}
        )

    async def upsert_content_rating(self, country: str, name: str) -> ContentRating:
        return await self._upsert(ContentRating, {"country": country, "name": name}, {})

    # Lookups

    async def find_watchable_by_tmdb_id(self, tmdb_id: int) -> Optional[Watchable]:
        """Watchable with its movie or show -> seasons -> episodes loaded"""
        result = await self.db.execute(
            select(Watchable)
            .where(Watchable.tmdb_id == tmdb_id)
            .options(
                selectinload(Watchable.movie),
                selectinload(Watchable.show)
                .selectinload(Show.seasons)
                .selectinload(Season.episodes),
            )
        )
        return result.scalar_one_or_none()

    async def find_local_show(self, title: str) -> Optional[Watchable]:
        """Show indexed without a TMDB match under the same title"""
        result = await self.db.execute(
            select(Watchable)
            .where(
                Watchable.kind == "show",
                Watchable.tmdb_id.is_(None),
                Watchable.title == title,
            )
            .options(
                selectinload(Watchable.show)
                .selectinload(Show.seasons)
                .selectinload(Season.episodes)
            )
        )
        return result.scalars().first()

    async def find_image_by_source(self, source: str) -> Optional[Image]:
        result = await self.db.execute(select(Image).where(Image.source == source))
        return result.scalar_one_or_none()
