"""Cast member model"""

from sqlalchemy import Column, Float, Integer, String

from ..database import Base, new_id


class CastMember(Base):
    """Actor, director or writer, keyed by TMDB person id"""

    __tablename__ = "cast_members"

    id = Column(String(36), primary_key=True, default=new_id)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    popularity = Column(Float, default=0)

    def __repr__(self):
        return f"<CastMember {self.tmdb_id} {self.name}>"
