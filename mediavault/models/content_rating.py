"""Content rating model"""

from sqlalchemy import Column, String, UniqueConstraint

from ..database import Base, new_id


class ContentRating(Base):
    """Certification per country (e.g. US / PG-13)"""

    __tablename__ = "content_ratings"
    __table_args__ = (UniqueConstraint("country", "name"),)

    id = Column(String(36), primary_key=True, default=new_id)
    country = Column(String(8), nullable=False)
    name = Column(String(50), nullable=False)

    def __repr__(self):
        return f"<ContentRating {self.country} {self.name}>"
