"""TMDB API service"""

from typing import Dict, List, Optional, Tuple

import httpx

from ..config import settings
from ..errors import ImageConfigError, MetadataLookupError
from .log_service import log_service

IMAGE_LANGUAGE_PARAMS = {"language": "en-US", "include_image_language": "en,null"}


class TMDBService:
    """The Movie Database API integration"""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.TMDB_BASE_URL).rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=30.0)
        # Responses live for the lifetime of the service
        self._cache: Dict[Tuple[str, Tuple], Dict] = {}

    async def _request(self, endpoint: str, params: Dict = None) -> Dict:
        """Make request to TMDB API, cached per endpoint and parameters"""
        if params is None:
            params = {}

        key = (endpoint, tuple(sorted(params.items())))
        if key in self._cache:
            return self._cache[key]

        url = f"{self.base_url}/{endpoint}"

        try:
            response = await self.client.get(
                url, params={**params, "api_key": self.api_key}
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            log_service.error(f"TMDB API error on {endpoint}: {e}")
            raise MetadataLookupError(f"TMDB request to {endpoint} failed", e) from e
        except ValueError as e:
            raise MetadataLookupError(f"TMDB returned invalid JSON for {endpoint}", e) from e

        self._cache[key] = data
        return data

    async def search_movie(self, query: str, page: int = 1) -> Dict:
        """Search for movies"""
        if page < 1:
            raise ValueError("Page needs to be greater than 0")
        return await self._request("search/movie", {"query": query, "page": page})

    async def search_tv(self, query: str, page: int = 1) -> Dict:
        """Search for TV shows"""
        if page < 1:
            raise ValueError("Page needs to be greater than 0")
        return await self._request("search/tv", {"query": query, "page": page})

    async def get_movie(self, tmdb_id: int) -> Dict:
        """Get movie details with release certifications and credits"""
        return await self._request(
            f"movie/{tmdb_id}", {"append_to_response": "releases,credits"}
        )

    async def get_show(self, tmdb_id: int) -> Dict:
        """Get TV show details with content ratings and credits"""
        return await self._request(
            f"tv/{tmdb_id}", {"append_to_response": "content_ratings,credits"}
        )

    async def get_season(self, tmdb_id: int, season_number: int) -> Dict:
        """Get season details with episodes"""
        return await self._request(f"tv/{tmdb_id}/season/{season_number}")

    async def get_images(self, tmdb_id: int, media_type: str) -> Dict[str, Optional[Dict]]:
        """Best rated backdrop, logo, poster and profile (media_type: 'movie' or 'tv')"""
        data = await self._request(f"{media_type}/{tmdb_id}/images", IMAGE_LANGUAGE_PARAMS)

        def best(images: Optional[List[Dict]]) -> Optional[Dict]:
            if not images:
                return None
            return sorted(images, key=lambda i: i.get("vote_average") or 0, reverse=True)[0]

        return {
            "backdrop": best(data.get("backdrops")),
            "logo": best(data.get("logos")),
            "poster": best(data.get("posters")),
            "profile": best(data.get("profiles")),
        }

    async def get_trailer(self, tmdb_id: int, media_type: str) -> Optional[Dict]:
        """First YouTube trailer, official ones preferred"""
        data = await self._request(
            f"{media_type}/{tmdb_id}/videos",
            {"language": "en-US", "include_video_language": "en,null"},
        )
        trailers = [
            video
            for video in data.get("results") or []
            if video.get("type") == "Trailer" and video.get("site") == "YouTube"
        ]
        if not trailers:
            return None
        official = [video for video in trailers if video.get("official")]
        return (official or trailers)[0]

    async def get_configuration(self) -> Dict:
        """Image hosting configuration"""
        return await self._request("configuration")

    async def get_image_url(self, file_path: str, image_type: str, size: str) -> str:
        """Full URL of an image, e.g. get_image_url('/abc.jpg', 'poster', 'w500')"""
        images = (await self.get_configuration()).get("images") or {}
        sizes = images.get(f"{image_type}_sizes")
        if not sizes:
            raise ImageConfigError(f"Unknown image type: {image_type}")
        if size not in sizes:
            raise ImageConfigError(f"Unknown image size for {image_type}: {size}")
        base_url = images.get("secure_base_url") or images.get("base_url") or ""
        return f"{base_url.rstrip('/')}/{size}/{file_path.lstrip('/')}"

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()
