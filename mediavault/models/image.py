"""Image model"""

import mimetypes

from sqlalchemy import Column, DateTime, String

from ..database import Base, new_id, utcnow


class Image(Base):
    """Stored image, optionally tied to the URL it was downloaded from"""

    __tablename__ = "images"

    id = Column(String(36), primary_key=True, default=new_id)
    mime_type = Column(String(50), default="image/jpeg", nullable=False)
    source = Column(String(1024), unique=True, index=True)
    created_on = Column(DateTime(timezone=True), default=utcnow)

    def __init__(self, **kwargs):
        kwargs.setdefault("id", new_id())
        super().__init__(**kwargs)

    @property
    def extension(self) -> str:
        extension = mimetypes.guess_extension(self.mime_type or "image/jpeg")
        if not extension or extension in (".jpe", ".jpeg"):
            return ".jpg"
        return extension

    @property
    def filename(self) -> str:
        return self.id + self.extension

    def __repr__(self):
        return f"<Image {self.id} {self.mime_type}>"
