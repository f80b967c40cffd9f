"""Watchable model"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from ..database import Base, new_id, utcnow


def _link_table(name: str, target: str, target_column: str) -> Table:
    return Table(
        name,
        Base.metadata,
        Column(
            "watchable_id", String(36), ForeignKey("watchables.id"), primary_key=True
        ),
        Column(target_column, String(36), ForeignKey(f"{target}.id"), primary_key=True),
    )


watchable_genres = _link_table("watchable_genres", "genres", "genre_id")
watchable_content_ratings = _link_table(
    "watchable_content_ratings", "content_ratings", "content_rating_id"
)
# Cast members are partitioned by role, one link table per role
watchable_cast = _link_table("watchable_cast", "cast_members", "cast_member_id")
watchable_directors = _link_table(
    "watchable_directors", "cast_members", "cast_member_id"
)
watchable_writers = _link_table("watchable_writers", "cast_members", "cast_member_id")


class Watchable(Base):
    """Catalog entry (movie or show)"""

    __tablename__ = "watchables"

    id = Column(String(36), primary_key=True, default=new_id)
    tmdb_id = Column(Integer, unique=True, index=True)
    kind = Column(String(10), nullable=False, index=True)  # 'movie' or 'show'
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    year = Column(Integer)
    creator = Column(String(255))
    quality = Column(String(20))
    rating = Column(Float)
    adult = Column(Boolean, default=False, nullable=False)
    trailer_key = Column(String(64))
    trailer_site = Column(String(32))

    poster_id = Column(String(36), ForeignKey("images.id"))
    backdrop_id = Column(String(36), ForeignKey("images.id"))
    logo_id = Column(String(36), ForeignKey("images.id"))
    movie_id = Column(String(36), ForeignKey("movies.id"))
    show_id = Column(String(36), ForeignKey("shows.id"))

    created_on = Column(DateTime(timezone=True), default=utcnow)

    genres = relationship("Genre", secondary=watchable_genres, lazy="selectin")
    content_ratings = relationship(
        "ContentRating", secondary=watchable_content_ratings, lazy="selectin"
    )
    cast = relationship("CastMember", secondary=watchable_cast)
    directors = relationship("CastMember", secondary=watchable_directors)
    writers = relationship("CastMember", secondary=watchable_writers)

    poster = relationship("Image", foreign_keys=[poster_id], lazy="selectin")
    backdrop = relationship("Image", foreign_keys=[backdrop_id], lazy="selectin")
    logo = relationship("Image", foreign_keys=[logo_id], lazy="selectin")

    movie = relationship("Movie", back_populates="watchable", lazy="selectin")
    show = relationship("Show", back_populates="watchable", lazy="selectin")

    def __repr__(self):
        return f"<Watchable {self.kind}:{self.tmdb_id} - {self.title}>"
