"""Thumbnail model"""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base, new_id


class Thumbnail(Base):
    """Preview image for the time range [time_from, time_to] of a stream"""

    __tablename__ = "thumbnails"

    id = Column(String(36), primary_key=True, default=new_id)
    stream_id = Column(String(36), ForeignKey("streams.id"), index=True)
    image_id = Column(String(36), ForeignKey("images.id"), nullable=False)
    time_from = Column(Integer, nullable=False)  # seconds
    time_to = Column(Integer, nullable=False)  # seconds

    stream = relationship("Stream", back_populates="thumbnails")
    image = relationship("Image", lazy="selectin")

    def __repr__(self):
        return f"<Thumbnail {self.time_from}-{self.time_to}s>"
