"""Queue schemas"""

from typing import Optional

from pydantic import BaseModel


class QueueItemResponse(BaseModel):
    """Queue item as reported to callers polling the indexer"""

    id: str
    filepath: str
    action: Optional[str] = None
    percentage: float = 0
    running: bool = False

    class Config:
        from_attributes = True
