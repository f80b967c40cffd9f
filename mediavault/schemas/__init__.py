"""Pydantic schemas"""

from .probe import ProbeResult, ProbeStream
from .queue import QueueItemResponse

__all__ = ["ProbeResult", "ProbeStream", "QueueItemResponse"]
