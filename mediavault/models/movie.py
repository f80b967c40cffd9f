"""Movie model"""

from sqlalchemy import Column, Float, ForeignKey, String
from sqlalchemy.orm import relationship

from ..database import Base, new_id


class Movie(Base):
    """Movie payload of a watchable"""

    __tablename__ = "movies"

    id = Column(String(36), primary_key=True, default=new_id)
    duration = Column(Float, default=0, nullable=False)
    stream_id = Column(String(36), ForeignKey("streams.id"))

    stream = relationship("Stream", lazy="selectin")
    watchable = relationship("Watchable", back_populates="movie", uselist=False)

    def __repr__(self):
        return f"<Movie {self.id} duration={self.duration}>"
