"""Shared fixtures-in-code for the test suite"""

from contextlib import asynccontextmanager
from pathlib import Path
from types import SimpleNamespace

import httpx

from mediavault.config import QualityLevel, Settings
from mediavault.database import create_engine_for, create_session_factory, init_db
from mediavault.errors import ToolkitError
from mediavault.schemas.probe import ProbeResult

TWO_LEVELS = [
    QualityLevel(height=480, bitrate=1500, audio_bitrate=96, crf=30),
    QualityLevel(height=720, bitrate=3000, audio_bitrate=128, crf=25),
]


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = dict(
        DATA_DIR=tmp_path / "data",
        LOGS_DIR=tmp_path / "logs",
        SAVE_DIR=tmp_path / "save",
        TEMP_DIR=tmp_path / "scratch",
        TMDB_API_KEY=None,
        WATCH_ENABLED=False,
        DEBOUNCE_SECONDS=0.2,
        FFMPEG_THREADS=2,
        QUALITY_LEVELS=TWO_LEVELS,
        THUMBNAIL_INTERVAL=10,
    )
    values.update(overrides)
    return Settings(**values)


@asynccontextmanager
async def temp_database(tmp_path: Path):
    """Session factory bound to a fresh SQLite file"""
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await init_db(engine)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()


def ffprobe_data(
    width=1920,
    height=1080,
    video_codec="h264",
    audio_codecs=("aac",),
    subtitles=0,
    duration="30.0",
    cover_art=False,
):
    streams = [
        {
            "index": 0,
            "codec_type": "video",
            "codec_name": video_codec,
            "width": width,
            "height": height,
        }
    ]
    for codec in audio_codecs:
        streams.append(
            {
                "index": len(streams),
                "codec_type": "audio",
                "codec_name": codec,
                "channels": 2,
                "tags": {"language": "eng"},
            }
        )
    for _ in range(subtitles):
        streams.append({"index": len(streams), "codec_type": "subtitle", "codec_name": "subrip"})
    if cover_art:
        streams.append(
            {
                "index": len(streams),
                "codec_type": "video",
                "codec_name": "mjpeg",
                "width": 600,
                "height": 900,
                "disposition": {"default": 0, "attached_pic": 1},
            }
        )
    return {
        "format": {"format_name": "matroska,webm", "duration": duration, "size": "1000"},
        "streams": streams,
    }


def probe_result(filepath="source.mkv", **kwargs) -> ProbeResult:
    return ProbeResult.from_ffprobe(str(filepath), ffprobe_data(**kwargs))


class FakeProber:
    def __init__(self, error: Exception = None, **kwargs):
        self.error = error
        self.kwargs = kwargs
        self.calls = []

    async def probe(self, filepath):
        self.calls.append(str(filepath))
        if self.error:
            raise self.error
        return probe_result(filepath, **self.kwargs)


class FakeFFmpeg:
    """Writes what ffmpeg would write for HLS and thumbnail commands"""

    def __init__(self, segments=3, frames=4, fail=False, missing=()):
        self.segments = segments
        self.missing = set(missing)
        self.frames = frames
        self.fail = fail
        self.calls = []

    async def __call__(self, args, duration=0, on_progress=None):
        self.calls.append(list(args))
        if on_progress:
            on_progress(50.0)
        if self.fail:
            raise ToolkitError("ffmpeg exited with code 1: boom", returncode=1, stderr="boom")

        output = Path(args[-1])
        if "-var_stream_map" in args:
            self._write_hls(output.parent, args[args.index("-var_stream_map") + 1])
        else:
            for i in range(1, self.frames + 1):
                (output.parent / f"{i:04d}.jpg").write_bytes(b"\xff\xd8jpeg")

    def _write_hls(self, workdir: Path, stream_map: str):
        # Only variant playlists and segments: the master is written by the importer
        for group in stream_map.split():
            name = group.split("name:")[1]
            if name in self.missing:
                continue
            variant = ["#EXTM3U", "#EXT-X-VERSION:6", "#EXT-X-TARGETDURATION:5"]
            for i in range(self.segments):
                segment = f"segment-{name}-{i:05d}.ts"
                (workdir / segment).write_bytes(f"{name}-{i}".encode())
                variant += ["#EXTINF:5.000000,", segment]
            variant.append("#EXT-X-ENDLIST")
            (workdir / f"variant-{name}.m3u8").write_text("\n".join(variant) + "\n")


def fake_watchable(**kwargs):
    return SimpleNamespace(id=None, kind="movie", title="Fake", **kwargs)


TMDB_CONFIGURATION = {
    "images": {
        "secure_base_url": "https://image.tmdb.org/t/p/",
        "backdrop_sizes": ["w780", "original"],
        "logo_sizes": ["w185", "original"],
        "poster_sizes": ["w342", "w500", "original"],
        "profile_sizes": ["w185", "original"],
        "still_sizes": ["w300", "original"],
    }
}


class FakeTMDB:
    """httpx transport answering TMDB API paths and image downloads from a route table"""

    def __init__(self, routes=None):
        self.routes = {"/3/configuration": TMDB_CONFIGURATION}
        self.routes.update(routes or {})
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "image.tmdb.org":
            return httpx.Response(200, content=b"\x89PNGimage")
        payload = self.routes.get(request.url.path)
        if payload is None:
            return httpx.Response(404, json={"status_message": "not found"})
        if isinstance(payload, int):
            return httpx.Response(payload, json={})
        return httpx.Response(200, json=payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def paths(self, host="api.themoviedb.org"):
        return [r.url.path for r in self.requests if r.url.host == host]
