"""Genre model"""

from sqlalchemy import Column, Integer, String

from ..database import Base, new_id


class Genre(Base):
    """Genre reference data, keyed by TMDB id"""

    __tablename__ = "genres"

    id = Column(String(36), primary_key=True, default=new_id)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)

    def __repr__(self):
        return f"<Genre {self.tmdb_id} {self.name}>"
