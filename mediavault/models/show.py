"""Show model"""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base, new_id


class Show(Base):
    """Show payload of a watchable"""

    __tablename__ = "shows"

    id = Column(String(36), primary_key=True, default=new_id)
    until_year = Column(Integer)

    seasons = relationship(
        "Season",
        back_populates="show",
        order_by="Season.season_number",
        cascade="all, delete-orphan",
    )
    watchable = relationship("Watchable", back_populates="show", uselist=False)

    def season(self, season_number: int):
        """Season with the given number, if it has been indexed"""
        for season in self.seasons:
            if season.season_number == season_number:
                return season
        return None

    def __repr__(self):
        return f"<Show {self.id}>"
