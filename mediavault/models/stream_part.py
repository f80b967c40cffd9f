"""Stream part model"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base, new_id


class StreamPart(Base):
    """Playlist (.m3u8) or media segment (.ts) stored under its id"""

    __tablename__ = "stream_parts"

    id = Column(String(36), primary_key=True, default=new_id)
    stream_id = Column(String(36), ForeignKey("streams.id"), index=True)
    playlist = Column(Boolean, default=False, nullable=False)
    has_subtitles = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, default=0, nullable=False)

    stream = relationship("Stream", foreign_keys=[stream_id], back_populates="parts")

    def __init__(self, **kwargs):
        # Identity is needed before the row exists: the file is stored under it
        kwargs.setdefault("id", new_id())
        super().__init__(**kwargs)

    @property
    def filename(self) -> str:
        return self.id + (".m3u8" if self.playlist else ".ts")

    def __repr__(self):
        kind = "playlist" if self.playlist else "segment"
        return f"<StreamPart {kind} {self.id}>"
