"""Episode model"""

from sqlalchemy import Column, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base, new_id


class Episode(Base):
    """Episode of a season"""

    __tablename__ = "episodes"
    __table_args__ = (UniqueConstraint("season_id", "episode_number"),)

    id = Column(String(36), primary_key=True, default=new_id)
    season_id = Column(String(36), ForeignKey("seasons.id"), nullable=False, index=True)
    episode_number = Column(Integer, nullable=False)
    name = Column(String(255))
    description = Column(Text)
    duration = Column(Float, default=0, nullable=False)
    stream_id = Column(String(36), ForeignKey("streams.id"))
    poster_id = Column(String(36), ForeignKey("images.id"))

    season = relationship("Season", back_populates="episodes")
    stream = relationship("Stream", lazy="selectin")
    poster = relationship("Image", lazy="selectin")

    def __repr__(self):
        return f"<Episode {self.episode_number} of season {self.season_id}>"
