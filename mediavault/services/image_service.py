"""Remote artwork download and caching"""

import mimetypes
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..errors import MetadataLookupError
from ..models import Image
from .catalog_service import CatalogRepository
from .log_service import log_service
from .storage import MediaStorage


def guess_mime_type(url: str) -> str:
    mime_type, _ = mimetypes.guess_type(urlparse(url).path)
    if mime_type and mime_type.startswith("image/"):
        return mime_type
    return "image/jpeg"


class ImageService:
    """Stores images by source URL, downloading each URL at most once"""

    def __init__(
        self,
        db,
        storage: Optional[MediaStorage] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.repository = CatalogRepository(db)
        self.storage = storage or MediaStorage()
        self.client = client or httpx.AsyncClient(timeout=30.0, follow_redirects=True)

    async def from_url(self, url: str) -> Image:
        existing = await self.repository.find_image_by_source(url)
        if existing:
            return existing

        image = Image(source=url, mime_type=guess_mime_type(url))
        log_service.tool(f"Downloading image[{image.id}] from {url}")
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            log_service.error(f"Failed to download image {url}: {e}")
            raise MetadataLookupError(f"Failed to download image {url}", e) from e

        await self.storage.write_bytes("image", image.filename, response.content)
        await self.repository.save(image)
        log_service.tool(f"Successfully downloaded image[{image.id}]")
        return image
