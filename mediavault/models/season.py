"""Season model"""

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base, new_id


class Season(Base):
    """Season of a show"""

    __tablename__ = "seasons"
    __table_args__ = (UniqueConstraint("show_id", "season_number"),)

    id = Column(String(36), primary_key=True, default=new_id)
    show_id = Column(String(36), ForeignKey("shows.id"), nullable=False, index=True)
    season_number = Column(Integer, nullable=False)
    name = Column(String(255))
    air_date = Column(String(10))  # YYYY-MM-DD as delivered by TMDB
    description = Column(Text)

    show = relationship("Show", back_populates="seasons")
    episodes = relationship(
        "Episode",
        back_populates="season",
        order_by="Episode.episode_number",
        cascade="all, delete-orphan",
    )

    def episode(self, episode_number: int):
        for episode in self.episodes:
            if episode.episode_number == episode_number:
                return episode
        return None

    def __repr__(self):
        return f"<Season {self.season_number} of show {self.show_id}>"
