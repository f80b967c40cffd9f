"""Metadata resolution against TMDB and the local catalog"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from ..models import Episode, Movie, Season, Show, Stream, Watchable
from .catalog_service import CatalogRepository
from .filename_parser import ParsedFilename
from .image_service import ImageService
from .log_service import log_service
from .tmdb_service import TMDBService

CAST_LIMIT = 20


@dataclass
class MovieJob:
    """A file routed to the movie path"""

    filepath: str
    parsed: ParsedFilename
    stream: Stream
    duration: float = 0
    quality: Optional[str] = None


@dataclass
class ShowJob:
    """A file routed to the show path (season and episode are known)"""

    filepath: str
    parsed: ParsedFilename
    stream: Stream
    duration: float = 0
    quality: Optional[str] = None

    @property
    def season_number(self) -> int:
        return self.parsed.season

    @property
    def episode_number(self) -> int:
        return self.parsed.episode


IndexJob = Union[MovieJob, ShowJob]


def year_of(date: Optional[str]) -> Optional[int]:
    """Year of a TMDB YYYY-MM-DD date"""
    if not date:
        return None
    try:
        return int(date.split("-")[0])
    except (ValueError, IndexError):
        return None


def unique_by(items: List[Dict], key: str) -> List[Dict]:
    seen = set()
    result = []
    for item in items:
        if item.get(key) in seen:
            continue
        seen.add(item.get(key))
        result.append(item)
    return result


class MetadataResolver:
    """Enriches indexed files with TMDB data and reconciles them with the catalog"""

    def __init__(
        self,
        db,
        tmdb: Optional[TMDBService] = None,
        images: Optional[ImageService] = None,
    ):
        self.repository = CatalogRepository(db)
        self.tmdb = tmdb
        self.images = images or ImageService(db)

    async def resolve(self, job: IndexJob) -> Watchable:
        if isinstance(job, ShowJob):
            return await self.resolve_show(job)
        return await self.resolve_movie(job)

    async def _first_result(self, kind: str, title: str) -> Optional[Dict]:
        if self.tmdb is None or not title:
            return None
        if kind == "movie":
            data = await self.tmdb.search_movie(title)
        else:
            data = await self.tmdb.search_tv(title)
        results = data.get("results") or []
        return results[0] if results else None

    async def _image(self, file_path: Optional[str], image_type: str, size: str):
        if not file_path:
            return None
        url = await self.tmdb.get_image_url(file_path, image_type, size)
        return await self.images.from_url(url)

    async def _cast_members(self, people: List[Dict]):
        members = []
        for person in unique_by(people, "id"):
            members.append(
                await self.repository.upsert_cast_member(
                    person["id"], person.get("name") or "", person.get("popularity") or 0
                )
            )
        return members

    async def _populate_common(self, watchable: Watchable, details: Dict, media_type: str):
        """Genres, credits, artwork and trailer shared by movies and shows"""
        watchable.genres = [
            await self.repository.upsert_genre(genre["id"], genre["name"])
            for genre in unique_by(details.get("genres") or [], "id")
        ]

        credits = details.get("credits") or {}
        crew = credits.get("crew") or []
        watchable.cast = await self._cast_members((credits.get("cast") or [])[:CAST_LIMIT])
        watchable.directors = await self._cast_members(
            [person for person in crew if person.get("department") == "Directing"]
        )
        watchable.writers = await self._cast_members(
            [person for person in crew if person.get("department") == "Writing"]
        )

        best = await self.tmdb.get_images(details["id"], media_type)
        poster = (best.get("poster") or {}).get("file_path") or details.get("poster_path")
        backdrop = (best.get("backdrop") or {}).get("file_path") or details.get(
            "backdrop_path"
        )
        logo = (best.get("logo") or {}).get("file_path")
        watchable.poster = await self._image(poster, "poster", "w500")
        watchable.backdrop = await self._image(backdrop, "backdrop", "original")
        watchable.logo = await self._image(logo, "logo", "original")

        trailer = await self.tmdb.get_trailer(details["id"], media_type)
        if trailer:
            watchable.trailer_key = trailer.get("key")
            watchable.trailer_site = trailer.get("site")

    async def _find_existing(self, tmdb_id: int, kind: str):
        """(watchable holding the TMDB id, whether the id can be used)

        Movie and TV ids share one unique column, so an id held by the other
        kind cannot be claimed and the file falls back to local fields.
        """
        existing = await self.repository.find_watchable_by_tmdb_id(tmdb_id)
        if existing is not None and existing.kind != kind:
            log_service.error(
                f"TMDB id {tmdb_id} is already used by {existing.kind} '{existing.title}'"
            )
            return None, False
        return existing, True

    # Movies

    async def resolve_movie(self, job: MovieJob) -> Watchable:
        result = await self._first_result("movie", job.parsed.title)

        if result is not None:
            existing, usable = await self._find_existing(result["id"], "movie")
            if not usable:
                result = None
            if existing is not None:
                log_service.info(
                    f"Movie '{existing.title}' already indexed, replacing its stream"
                )
                movie = existing.movie or Movie()
                movie.stream_id = job.stream.id
                movie.duration = job.duration
                existing.movie = movie
                existing.quality = job.quality
                return await self.repository.save(existing, movie)

        watchable = Watchable(
            kind="movie",
            title=job.parsed.title,
            year=job.parsed.year,
            quality=job.quality,
            adult=False,
        )
        watchable.movie = Movie(duration=job.duration, stream_id=job.stream.id)

        if result is not None:
            await self._populate_movie(watchable, result)
        else:
            log_service.info(f"No TMDB match for movie '{job.parsed.title}'")

        return await self.repository.save(watchable)

    async def _populate_movie(self, watchable: Watchable, result: Dict):
        details = await self.tmdb.get_movie(result["id"])

        watchable.tmdb_id = result["id"]
        watchable.title = result.get("title") or watchable.title
        watchable.description = result.get("overview")
        watchable.rating = result.get("vote_average")
        watchable.adult = bool(result.get("adult"))
        watchable.year = year_of(result.get("release_date")) or watchable.year

        countries = (details.get("releases") or {}).get("countries") or []
        countries = sorted(countries, key=lambda c: c.get("release_date") or "", reverse=True)
        watchable.content_ratings = [
            await self.repository.upsert_content_rating(
                country["iso_3166_1"], country["certification"]
            )
            for country in unique_by(countries, "iso_3166_1")
            if country.get("certification")
        ]

        await self._populate_common(watchable, {**result, **details}, "movie")

    # Shows

    async def resolve_show(self, job: ShowJob) -> Watchable:
        result = await self._first_result("tv", job.parsed.title)
        details = None
        watchable = None

        if result is not None:
            details = await self.tmdb.get_show(result["id"])
            watchable, usable = await self._find_existing(result["id"], "show")
            if not usable:
                result, details = None, None

        if watchable is None and result is None:
            watchable = await self.repository.find_local_show(job.parsed.title)

        if watchable is None:
            watchable = Watchable(
                kind="show",
                title=job.parsed.title,
                year=job.parsed.year,
                quality=job.quality,
                adult=False,
            )
            watchable.show = Show()
            if details is not None:
                await self._populate_show(watchable, result, details)
            else:
                log_service.info(f"No TMDB match for show '{job.parsed.title}'")
        else:
            log_service.info(
                f"Show '{watchable.title}' already indexed, adding "
                f"S{job.season_number:02d}E{job.episode_number:02d}"
            )

        season_info = None
        if details is not None and any(
            s.get("season_number") == job.season_number for s in details.get("seasons") or []
        ):
            season_info = await self.tmdb.get_season(details["id"], job.season_number)

        season = self._season(watchable.show, job.season_number, season_info)
        await self._episode(season, job, season_info)
        return await self.repository.save(watchable)

    async def _populate_show(self, watchable: Watchable, result: Dict, details: Dict):
        watchable.tmdb_id = result["id"]
        watchable.title = result.get("name") or watchable.title
        watchable.description = result.get("overview")
        watchable.rating = details.get("vote_average")
        watchable.year = year_of(result.get("first_air_date")) or watchable.year
        watchable.show.until_year = year_of(details.get("last_air_date"))

        created_by = details.get("created_by") or []
        if created_by:
            watchable.creator = created_by[0].get("name")

        ratings = (details.get("content_ratings") or {}).get("results") or []
        watchable.content_ratings = [
            await self.repository.upsert_content_rating(rating["iso_3166_1"], rating["rating"])
            for rating in unique_by(ratings, "iso_3166_1")
            if rating.get("rating")
        ]

        await self._populate_common(watchable, {**result, **details}, "tv")

    def _season(self, show: Show, number: int, info: Optional[Dict]) -> Season:
        season = show.season(number)
        if season is not None:
            return season

        info = info or {}
        season = Season(
            season_number=number,
            name=info.get("name") or f"Season {number}",
            air_date=info.get("air_date"),
            description=info.get("overview"),
        )
        show.seasons.append(season)
        return season

    async def _episode(self, season: Season, job: ShowJob, season_info: Optional[Dict]) -> Episode:
        number = job.episode_number
        info = next(
            (
                e
                for e in (season_info or {}).get("episodes") or []
                if e.get("episode_number") == number
            ),
            {},
        )

        poster = None
        if info.get("still_path"):
            poster = await self._image(info["still_path"], "still", "w300")

        episode = season.episode(number)
        if episode is not None:
            # Same episode indexed again from another file: the new stream wins
            log_service.info(f"Episode {number} of season {season.season_number} replaced")
        else:
            episode = Episode(episode_number=number)
            season.episodes.append(episode)

        episode.name = info.get("name") or episode.name or job.parsed.title
        episode.description = info.get("overview") or episode.description
        episode.duration = job.duration
        episode.stream_id = job.stream.id
        if poster is not None:
            episode.poster = poster
        return episode
