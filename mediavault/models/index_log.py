"""Index log model"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from ..database import Base, new_id, utcnow


class IndexLog(Base):
    """Outcome of indexing one source file; the filepath is the dedup key"""

    __tablename__ = "index_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    filepath = Column(String(1024), unique=True, nullable=False, index=True)
    watchable_id = Column(String(36), ForeignKey("watchables.id"))
    indexing = Column(Boolean, default=False, nullable=False)
    failed = Column(Boolean, default=False, nullable=False)
    error = Column(Text)
    indexed_on = Column(DateTime(timezone=True), default=utcnow)

    watchable = relationship("Watchable", lazy="selectin")

    def __repr__(self):
        state = "failed" if self.failed else "indexing" if self.indexing else "done"
        return f"<IndexLog {self.filepath} {state}>"
