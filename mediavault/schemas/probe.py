"""Probe result schemas"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ProbeStream(BaseModel):
    """One elementary stream reported by ffprobe"""

    index: int
    codec_type: str
    codec_name: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    channels: Optional[int] = None
    language: Optional[str] = None
    duration: Optional[float] = None
    attached_pic: bool = False  # cover art stored as a one-frame video stream

    @classmethod
    def from_ffprobe(cls, data: Dict[str, Any]) -> "ProbeStream":
        tags = data.get("tags") or {}
        disposition = data.get("disposition") or {}
        return cls(
            index=int(data.get("index", 0)),
            codec_type=data.get("codec_type") or "unknown",
            codec_name=data.get("codec_name"),
            width=data.get("width"),
            height=data.get("height"),
            channels=data.get("channels"),
            language=tags.get("language"),
            duration=_to_float(data.get("duration")),
            attached_pic=bool(disposition.get("attached_pic")),
        )


class ProbeResult(BaseModel):
    """Container and stream metadata for a media file"""

    filepath: str
    format_name: Optional[str] = None
    duration: float = 0.0
    size: Optional[int] = None
    bit_rate: Optional[int] = None
    streams: List[ProbeStream] = Field(default_factory=list)

    @classmethod
    def from_ffprobe(cls, filepath: str, data: Dict[str, Any]) -> "ProbeResult":
        fmt = data.get("format") or {}
        streams = [ProbeStream.from_ffprobe(s) for s in data.get("streams") or []]

        duration = _to_float(fmt.get("duration"))
        if duration is None:
            # Some containers only report duration per stream
            durations = [s.duration for s in streams if s.duration]
            duration = max(durations) if durations else 0.0

        size = _to_float(fmt.get("size"))
        bit_rate = _to_float(fmt.get("bit_rate"))
        return cls(
            filepath=filepath,
            format_name=fmt.get("format_name"),
            duration=duration,
            size=int(size) if size is not None else None,
            bit_rate=int(bit_rate) if bit_rate is not None else None,
            streams=streams,
        )

    @property
    def video_streams(self) -> List[ProbeStream]:
        return [s for s in self.streams if s.codec_type == "video" and not s.attached_pic]

    @property
    def audio_streams(self) -> List[ProbeStream]:
        return [s for s in self.streams if s.codec_type == "audio"]

    @property
    def subtitle_streams(self) -> List[ProbeStream]:
        return [s for s in self.streams if s.codec_type == "subtitle"]

    @property
    def primary_video(self) -> Optional[ProbeStream]:
        """Largest video stream by pixel count"""
        videos = self.video_streams
        if not videos:
            return None
        return max(videos, key=lambda s: (s.width or 0) * (s.height or 0))

    @property
    def quality(self) -> Optional[str]:
        """Resolution label of the primary video stream, e.g. 1920x1080"""
        video = self.primary_video
        if video is None or not video.width or not video.height:
            return None
        return f"{video.width}x{video.height}"
