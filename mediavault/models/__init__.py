"""Database models"""

from .cast_member import CastMember
from .content_rating import ContentRating
from .episode import Episode
from .genre import Genre
from .image import Image
from .index_log import IndexLog
from .movie import Movie
from .season import Season
from .show import Show
from .stream import Stream
from .stream_part import StreamPart
from .thumbnail import Thumbnail
from .watchable import Watchable

__all__ = [
    "CastMember",
    "ContentRating",
    "Episode",
    "Genre",
    "Image",
    "IndexLog",
    "Movie",
    "Season",
    "Show",
    "Stream",
    "StreamPart",
    "Thumbnail",
    "Watchable",
]
