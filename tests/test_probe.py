import asyncio

import pytest

from helpers import ffprobe_data
from mediavault.errors import ProbeError, ToolkitError
from mediavault.schemas.probe import ProbeResult
from mediavault.services import ffmpeg, probe_service
from mediavault.services.probe_service import MediaProber


def test_probe_result_from_ffprobe():
    result = ProbeResult.from_ffprobe(
        "a.mkv", ffprobe_data(audio_codecs=("aac", "ac3"), subtitles=1)
    )
    assert result.duration == 30.0
    assert len(result.video_streams) == 1
    assert [s.codec_name for s in result.audio_streams] == ["aac", "ac3"]
    assert len(result.subtitle_streams) == 1
    assert result.audio_streams[0].language == "eng"
    assert result.quality == "1920x1080"


def test_duration_falls_back_to_streams():
    data = ffprobe_data()
    del data["format"]["duration"]
    data["streams"][0]["duration"] = "12.5"
    assert ProbeResult.from_ffprobe("a.mkv", data).duration == 12.5


def test_primary_video_is_largest():
    data = ffprobe_data(width=640, height=360)
    data["streams"].append(
        {"index": 5, "codec_type": "video", "codec_name": "h264", "width": 1280, "height": 720}
    )
    assert ProbeResult.from_ffprobe("a.mkv", data).quality == "1280x720"


def test_prober_wraps_toolkit_errors(monkeypatch):
    async def failing_ffprobe(filepath, binary=None):
        raise ToolkitError("ffprobe exited with code 1: Invalid data")

    monkeypatch.setattr(probe_service, "run_ffprobe", failing_ffprobe)
    with pytest.raises(ProbeError, match="Invalid data"):
        asyncio.run(MediaProber().probe("broken.mkv"))


def test_prober_rejects_files_without_streams(monkeypatch):
    async def empty_ffprobe(filepath, binary=None):
        return {"format": {}, "streams": []}

    monkeypatch.setattr(probe_service, "run_ffprobe", empty_ffprobe)
    with pytest.raises(ProbeError):
        asyncio.run(MediaProber().probe("empty.mkv"))


def test_progress_parsing():
    values = ffmpeg.parse_progress_block(
        ["frame=120", "fps=24.5", "out_time_us=5000000", "progress=continue"]
    )
    assert values["fps"] == "24.5"
    assert ffmpeg.progress_percentage(values, 10.0) == 50.0
    assert ffmpeg.progress_percentage({"out_time_ms": "20000000"}, 10.0) == 100.0
    assert ffmpeg.progress_percentage(values, 0) is None
    assert ffmpeg.progress_percentage({"out_time_us": "N/A"}, 10.0) is None


def test_cover_art_is_not_a_video_stream():
    result = ProbeResult.from_ffprobe("a.mp4", ffprobe_data(cover_art=True))
    cover = result.streams[-1]
    assert cover.attached_pic and cover.codec_name == "mjpeg"
    assert [s.index for s in result.video_streams] == [0]
    assert result.primary_video.index == 0
