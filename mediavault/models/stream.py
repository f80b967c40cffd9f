"""Stream model"""

from sqlalchemy import Column, Float, ForeignKey, String
from sqlalchemy.orm import relationship

from ..database import Base, new_id


class Stream(Base):
    """A playable HLS rendition: master playlist plus its variants and segments"""

    __tablename__ = "streams"

    id = Column(String(36), primary_key=True, default=new_id)
    first_part_id = Column(
        String(36),
        ForeignKey("stream_parts.id", use_alter=True, name="fk_streams_first_part"),
    )
    duration = Column(Float, default=0, nullable=False)

    # The master playlist row is inserted before the stream points at it
    first_part = relationship(
        "StreamPart", foreign_keys=[first_part_id], post_update=True, lazy="selectin"
    )
    parts = relationship(
        "StreamPart",
        foreign_keys="StreamPart.stream_id",
        back_populates="stream",
        order_by="StreamPart.position",
        cascade="all, delete-orphan",
    )
    thumbnails = relationship(
        "Thumbnail",
        back_populates="stream",
        order_by="Thumbnail.time_from",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Stream {self.id} duration={self.duration}>"
