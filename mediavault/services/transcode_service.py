"""HLS transcode pipeline"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from ..config import QualityLevel, Settings, settings
from ..errors import TranscodeError, ToolkitError
from ..models import Stream, StreamPart
from ..schemas.probe import ProbeResult, ProbeStream
from .catalog_service import CatalogRepository
from .ffmpeg import run_ffmpeg
from .log_service import log_service
from .probe_service import MediaProber
from .storage import MediaStorage

VARIANT_PLAYLIST = "variant-%v.m3u8"
SEGMENT_FILENAME = "segment-%v-%05d.ts"


@dataclass
class OutputStream:
    """One mapped output stream of the ffmpeg command"""

    kind: str  # 'v' or 'a'
    source_index: int  # ffprobe stream index in the source
    output_index: int  # index among output streams of the same kind
    level: QualityLevel
    copy: bool
    scale: bool = False


def build_stream_map(
    probe: ProbeResult,
    levels: Sequence[QualityLevel],
    video_codec_name: str = "h264",
    audio_codec_name: str = "aac",
) -> List[List[OutputStream]]:
    """Plan the output streams, grouped per quality level"""
    videos = probe.video_streams
    audios = probe.audio_streams
    plan = []
    for level_index, level in enumerate(levels):
        outputs = []
        for i, video in enumerate(videos):
            taller = (video.height or 0) > level.height
            outputs.append(
                OutputStream(
                    kind="v",
                    source_index=video.index,
                    output_index=level_index * len(videos) + i,
                    level=level,
                    copy=video.codec_name == video_codec_name and not taller,
                    scale=taller,
                )
            )
        for j, audio in enumerate(audios):
            outputs.append(
                OutputStream(
                    kind="a",
                    source_index=audio.index,
                    output_index=level_index * len(audios) + j,
                    level=level,
                    copy=audio.codec_name == audio_codec_name,
                )
            )
        plan.append(outputs)
    return plan


def var_stream_map(plan: List[List[OutputStream]]) -> str:
    groups = []
    for outputs in plan:
        refs = [f"{o.kind}:{o.output_index}" for o in outputs]
        refs.append(f"name:{outputs[0].level.name}")
        groups.append(",".join(refs))
    return " ".join(groups)


def build_command(
    source: str,
    workdir: Path,
    plan: List[List[OutputStream]],
    config: Settings = settings,
) -> List[str]:
    """ffmpeg arguments producing one HLS variant per quality level"""
    args = ["-hide_banner", "-y"]
    if config.HARDWARE_ACCELERATION:
        args += ["-hwaccel", "auto"]
    args += ["-i", str(source), "-threads", str(config.ffmpeg_threads)]
    args += ["-progress", "pipe:1", "-nostats"]

    for outputs in plan:
        for output in outputs:
            args += ["-map", f"0:{output.source_index}"]

    for outputs in plan:
        for output in outputs:
            n = output.output_index
            level = output.level
            if output.kind == "v":
                if output.copy:
                    args += [f"-c:v:{n}", "copy"]
                    continue
                args += [
                    f"-c:v:{n}",
                    config.VIDEO_CODEC,
                    f"-crf:v:{n}",
                    str(level.crf),
                    f"-maxrate:v:{n}",
                    f"{level.bitrate}k",
                    f"-bufsize:v:{n}",
                    f"{level.bitrate * 2}k",
                ]
                if output.scale:
                    args += [f"-filter:v:{n}", f"scale=-2:{level.height}"]
            elif output.copy:
                args += [f"-c:a:{n}", "copy"]
            else:
                args += [f"-c:a:{n}", config.AUDIO_CODEC, f"-b:a:{n}", f"{level.audio_bitrate}k"]

    args += [
        "-var_stream_map",
        var_stream_map(plan),
        "-f",
        "hls",
        "-hls_playlist_type",
        "event",
        "-start_number",
        "0",
        "-hls_time",
        str(config.SEGMENT_SECONDS),
        "-hls_flags",
        "independent_segments",
        "-hls_list_size",
        "0",
        "-hls_segment_filename",
        str(workdir / SEGMENT_FILENAME),
        str(workdir / VARIANT_PLAYLIST),
    ]
    return args


def playlist_entries(text: str) -> List[str]:
    """URIs referenced by a playlist (every non-empty line not starting with #)"""
    return [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


def rewrite_playlist(text: str, replace: Callable[[str], str]) -> str:
    """Replace every referenced URI of a playlist, keeping tags untouched"""
    lines = []
    for line in text.splitlines():
        entry = line.strip()
        if entry and not entry.startswith("#"):
            line = replace(entry)
        lines.append(line)
    return "\n".join(lines) + "\n"


def variant_filename(level: QualityLevel) -> str:
    return VARIANT_PLAYLIST.replace("%v", level.name)


def variant_bandwidth(level: QualityLevel, audio_streams: int) -> int:
    """Peak bits per second advertised for a rung"""
    return (level.bitrate + level.audio_bitrate * audio_streams) * 1000


def output_resolution(video: Optional[ProbeStream], level: QualityLevel):
    """(width, height) a rung produces for `video`, or None when unknown"""
    if video is None or not video.width or not video.height:
        return None
    if video.height <= level.height:
        return video.width, video.height
    # scale=-2:H keeps the aspect ratio with an even width
    width = int(round(video.width * level.height / video.height / 2)) * 2
    return width, level.height


def master_playlist(variants: Sequence[Tuple[str, int, Optional[Tuple[int, int]]]]) -> str:
    """Master playlist listing (uri, bandwidth, resolution) variants"""
    lines = ["#EXTM3U", "#EXT-X-VERSION:6", "#EXT-X-INDEPENDENT-SEGMENTS"]
    for uri, bandwidth, resolution in variants:
        attributes = f"BANDWIDTH={bandwidth}"
        if resolution:
            attributes += f",RESOLUTION={resolution[0]}x{resolution[1]}"
        lines += [f"#EXT-X-STREAM-INF:{attributes}", uri]
    return "\n".join(lines) + "\n"


class TranscodePipeline:
    """Turns a source file into a persisted multi-quality HLS Stream"""

    def __init__(
        self,
        db,
        storage: Optional[MediaStorage] = None,
        prober: Optional[MediaProber] = None,
        runner=run_ffmpeg,
        config: Settings = settings,
    ):
        self.repository = CatalogRepository(db)
        self.storage = storage or MediaStorage()
        self.prober = prober or MediaProber()
        self.runner = runner
        self.config = config

    async def transcode(
        self,
        source,
        levels: Optional[Sequence[QualityLevel]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
        probe: Optional[ProbeResult] = None,
    ) -> Stream:
        """Transcode `source`; reports percentages, 100 once ffmpeg is done"""
        source = str(source)
        levels = list(levels or self.config.QUALITY_LEVELS)
        if probe is None:
            probe = await self.prober.probe(source)
        if not probe.video_streams:
            raise TranscodeError(f"No video stream in {source}")

        log_service.tool(
            f"Generating hls for {source}: video={len(probe.video_streams)} "
            f"audio={len(probe.audio_streams)} levels={[level.name for level in levels]}"
        )
        for subtitle in probe.subtitle_streams:
            log_service.tool(
                f"Skipping subtitle stream #{subtitle.index} "
                f"({subtitle.codec_name}, {subtitle.language or 'und'})"
            )
        for stream in probe.streams:
            if stream.attached_pic:
                log_service.tool(
                    f"Skipping cover art stream #{stream.index} ({stream.codec_name})"
                )

        plan = build_stream_map(
            probe, levels, self.config.VIDEO_CODEC_NAME, self.config.AUDIO_CODEC_NAME
        )
        async with self.storage.scratch_directory() as workdir:
            args = build_command(source, workdir, plan, self.config)
            try:
                await self.runner(args, duration=probe.duration, on_progress=on_progress)
            except ToolkitError as e:
                log_service.error(f"Transcode failed for {source}: {e}")
                raise TranscodeError(f"Error generating stream for {source}", e) from e

            if on_progress:
                on_progress(100)
            try:
                stream = await self.import_playlists(workdir, levels, probe)
            except OSError as e:
                raise TranscodeError(f"Failed to import playlists for {source}", e) from e

        log_service.tool(f"Successfully generated hls for {source}")
        return stream

    async def import_playlists(
        self, workdir: Path, levels: Sequence[QualityLevel], probe: ProbeResult
    ) -> Stream:
        """Copy the ffmpeg output into storage under new StreamPart identities.

        Variants are looked up by rung name: ffmpeg leaves stream-copied
        variants out of its own master playlist, so the master is written here.
        """
        missing = [
            level.name for level in levels if not (workdir / variant_filename(level)).exists()
        ]
        if missing:
            raise TranscodeError(
                f"ffmpeg did not produce variant playlists for {', '.join(missing)}"
            )

        stream = Stream(duration=probe.duration or 0)
        master = StreamPart(playlist=True, position=0)
        parts: List[StreamPart] = []

        variants = []
        for level in levels:
            variant = await self._import_variant(workdir / variant_filename(level), parts)
            variants.append(
                (
                    variant.filename,
                    variant_bandwidth(level, len(probe.audio_streams)),
                    output_resolution(probe.primary_video, level),
                )
            )

        await self.storage.write_text("video", master.filename, master_playlist(variants))

        stream.parts = parts
        stream.first_part = master
        await self.repository.save(master, stream)
        log_service.debug(
            f"Imported stream {stream.id}: {len(variants)} variants, {len(parts)} parts"
        )
        return stream

    async def _import_variant(self, path: Path, parts: List[StreamPart]) -> StreamPart:
        variant = StreamPart(playlist=True, position=len(parts) + 1)
        parts.append(variant)
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")

        copies = []
        segments = {}
        for entry in playlist_entries(text):
            segment = StreamPart(playlist=False, position=len(parts) + 1)
            parts.append(segment)
            segments[entry] = segment.filename
            copies.append(self.storage.copy("video", path.parent / entry, segment.filename))
        await asyncio.gather(*copies)

        await self.storage.write_text(
            "video", variant.filename, rewrite_playlist(text, segments.__getitem__)
        )
        return variant
