import asyncio

import pytest
from sqlalchemy import select

from helpers import TWO_LEVELS, FakeFFmpeg, make_settings, probe_result, temp_database
from mediavault.config import DEFAULT_QUALITY_LEVELS
from mediavault.errors import TranscodeError
from mediavault.models import Stream, StreamPart
from mediavault.schemas.probe import ProbeResult, ProbeStream
from mediavault.services.storage import MediaStorage
from mediavault.services.transcode_service import (
    TranscodePipeline,
    build_command,
    build_stream_map,
    master_playlist,
    output_resolution,
    playlist_entries,
    rewrite_playlist,
    var_stream_map,
)


def _option(args, name):
    return args[args.index(name) + 1]


def test_copy_only_when_codec_matches_and_no_downscale(tmp_path):
    config = make_settings(tmp_path)
    plan = build_stream_map(probe_result(height=1080), DEFAULT_QUALITY_LEVELS)
    args = build_command("in.mkv", tmp_path, plan, config)

    # 480p and 720p are scaled down and re-encoded, 1080p is passed through
    assert _option(args, "-filter:v:0") == "scale=-2:480"
    assert _option(args, "-filter:v:1") == "scale=-2:720"
    assert "-filter:v:2" not in args
    assert _option(args, "-c:v:0") == "libx264"
    assert _option(args, "-crf:v:0") == "30"
    assert _option(args, "-maxrate:v:1") == "3000k"
    assert _option(args, "-bufsize:v:1") == "6000k"
    assert _option(args, "-c:v:2") == "copy"
    assert _option(args, "-c:a:0") == "copy"
    assert _option(args, "-var_stream_map") == (
        "v:0,a:0,name:480p v:1,a:1,name:720p v:2,a:2,name:1080p"
    )


def test_never_upscales_and_reencodes_foreign_codecs(tmp_path):
    config = make_settings(tmp_path)
    plan = build_stream_map(
        probe_result(width=1280, height=720, video_codec="hevc", audio_codecs=("ac3",)),
        DEFAULT_QUALITY_LEVELS,
    )
    args = build_command("in.mkv", tmp_path, plan, config)

    assert _option(args, "-c:v:2") == "libx264"
    assert "-filter:v:1" not in args
    assert "-filter:v:2" not in args
    assert _option(args, "-c:a:0") == "aac"
    assert _option(args, "-b:a:0") == "96k"
    assert _option(args, "-b:a:2") == "192k"


def test_every_source_stream_is_mapped_per_level():
    plan = build_stream_map(probe_result(audio_codecs=("aac", "aac")), TWO_LEVELS)
    assert var_stream_map(plan) == "v:0,a:0,a:1,name:480p v:1,a:2,a:3,name:720p"


def test_hls_muxer_options(tmp_path):
    config = make_settings(tmp_path, HARDWARE_ACCELERATION=True, SEGMENT_SECONDS=5)
    plan = build_stream_map(probe_result(), TWO_LEVELS)
    args = build_command("in.mkv", tmp_path, plan, config)

    assert args.index("-hwaccel") < args.index("-i")
    assert _option(args, "-threads") == "2"
    assert _option(args, "-progress") == "pipe:1"
    assert _option(args, "-hls_time") == "5"
    assert _option(args, "-hls_playlist_type") == "event"
    assert _option(args, "-hls_flags") == "independent_segments"
    assert "-master_pl_name" not in args
    assert _option(args, "-hls_list_size") == "0"
    assert args[-1] == str(tmp_path / "variant-%v.m3u8")


def test_rewrite_playlist_keeps_tags():
    text = "#EXTM3U\n#EXTINF:5.0,\nsegment-480p-00000.ts\n#EXT-X-ENDLIST\n"
    rewritten = rewrite_playlist(text, {"segment-480p-00000.ts": "abc.ts"}.__getitem__)
    assert rewritten == "#EXTM3U\n#EXTINF:5.0,\nabc.ts\n#EXT-X-ENDLIST\n"
    assert playlist_entries(rewritten) == ["abc.ts"]


def test_transcode_persists_master_variants_and_segments(tmp_path):
    config = make_settings(tmp_path)
    runner = FakeFFmpeg(segments=3)
    progress = []

    async def scenario():
        async with temp_database(tmp_path) as sessions:
            async with sessions() as db:
                pipeline = TranscodePipeline(
                    db, MediaStorage(config.SAVE_DIR, config.TEMP_DIR), runner=runner, config=config
                )
                stream = await pipeline.transcode(
                    "source.mkv", TWO_LEVELS, progress.append, probe=probe_result()
                )
                stream_id = stream.id

            async with sessions() as db:
                parts = (await db.execute(select(StreamPart))).scalars().all()
                stream = await db.get(Stream, stream_id)
                return stream, parts

    stream, parts = asyncio.run(scenario())
    video_dir = config.SAVE_DIR / "video"

    master = stream.first_part
    assert master.playlist and master.stream_id is None
    assert stream.duration == 30.0

    variants = [p for p in parts if p.playlist and p.stream_id == stream.id]
    segments = [p for p in parts if not p.playlist]
    assert len(variants) == len(TWO_LEVELS)
    assert len(segments) == 3 * len(TWO_LEVELS)
    assert all(p.stream_id == stream.id for p in segments)

    master_text = (video_dir / master.filename).read_text()
    assert sorted(playlist_entries(master_text)) == sorted(v.filename for v in variants)

    segment_files = {s.filename for s in segments}
    for variant in variants:
        entries = playlist_entries((video_dir / variant.filename).read_text())
        assert len(entries) == 3
        assert set(entries) <= segment_files
    assert all((video_dir / name).exists() for name in segment_files)

    assert progress == [50.0, 100]
    assert list(config.TEMP_DIR.iterdir()) == []


def test_toolkit_failure_cleans_up(tmp_path):
    config = make_settings(tmp_path)

    async def scenario():
        async with temp_database(tmp_path) as sessions:
            async with sessions() as db:
                pipeline = TranscodePipeline(
                    db,
                    MediaStorage(config.SAVE_DIR, config.TEMP_DIR),
                    runner=FakeFFmpeg(fail=True),
                    config=config,
                )
                with pytest.raises(TranscodeError, match="boom"):
                    await pipeline.transcode("source.mkv", TWO_LEVELS, probe=probe_result())
                return (await db.execute(select(StreamPart))).scalars().all()

    assert asyncio.run(scenario()) == []
    assert list(config.TEMP_DIR.iterdir()) == []


def test_source_without_video_is_rejected(tmp_path):
    config = make_settings(tmp_path)
    probe = ProbeResult(filepath="a.mp3", streams=[ProbeStream(index=0, codec_type="audio")])

    async def scenario():
        async with temp_database(tmp_path) as sessions:
            async with sessions() as db:
                pipeline = TranscodePipeline(db, runner=FakeFFmpeg(), config=config)
                await pipeline.transcode("a.mp3", TWO_LEVELS, probe=probe)

    with pytest.raises(TranscodeError):
        asyncio.run(scenario())


def test_cover_art_is_not_mapped(tmp_path):
    config = make_settings(tmp_path)
    probe = probe_result(cover_art=True)
    assert len(probe.video_streams) == 1
    assert probe.quality == "1920x1080"

    args = build_command("in.mkv", tmp_path, build_stream_map(probe, TWO_LEVELS), config)
    maps = [args[i + 1] for i, arg in enumerate(args) if arg == "-map"]
    assert maps == ["0:0", "0:1", "0:0", "0:1"]


def test_master_playlist_lists_every_variant():
    probe = probe_result(width=1920, height=1080)
    text = master_playlist(
        [
            ("a.m3u8", 1596000, output_resolution(probe.primary_video, TWO_LEVELS[0])),
            ("b.m3u8", 3128000, None),
        ]
    )
    assert playlist_entries(text) == ["a.m3u8", "b.m3u8"]
    assert "#EXT-X-STREAM-INF:BANDWIDTH=1596000,RESOLUTION=854x480" in text
    assert "#EXT-X-STREAM-INF:BANDWIDTH=3128000\n" in text


def test_stream_copied_rungs_are_imported(tmp_path):
    # Source fits under every rung with a matching codec: nothing is re-encoded
    config = make_settings(tmp_path)
    runner = FakeFFmpeg(segments=2)
    probe = probe_result(width=640, height=360)

    async def scenario():
        async with temp_database(tmp_path) as sessions:
            async with sessions() as db:
                pipeline = TranscodePipeline(
                    db, MediaStorage(config.SAVE_DIR, config.TEMP_DIR), runner=runner, config=config
                )
                stream = await pipeline.transcode("source.mkv", TWO_LEVELS, probe=probe)
                stream_id = stream.id

            async with sessions() as db:
                parts = (await db.execute(select(StreamPart))).scalars().all()
                return await db.get(Stream, stream_id), parts

    stream, parts = asyncio.run(scenario())
    args = runner.calls[0]
    assert _option(args, "-c:v:0") == "copy"
    assert _option(args, "-c:v:1") == "copy"

    video_dir = config.SAVE_DIR / "video"
    variants = [p for p in parts if p.playlist and p.stream_id == stream.id]
    segments = {p.filename for p in parts if not p.playlist}
    assert len(variants) == len(TWO_LEVELS)
    assert len(segments) == 2 * len(TWO_LEVELS)

    master_text = (video_dir / stream.first_part.filename).read_text()
    assert sorted(playlist_entries(master_text)) == sorted(v.filename for v in variants)
    assert master_text.count("RESOLUTION=640x360") == len(TWO_LEVELS)
    for variant in variants:
        entries = playlist_entries((video_dir / variant.filename).read_text())
        assert len(entries) == 2 and set(entries) <= segments


def test_missing_variant_playlist_fails(tmp_path):
    config = make_settings(tmp_path)

    async def scenario():
        async with temp_database(tmp_path) as sessions:
            async with sessions() as db:
                pipeline = TranscodePipeline(
                    db,
                    MediaStorage(config.SAVE_DIR, config.TEMP_DIR),
                    runner=FakeFFmpeg(missing={"720p"}),
                    config=config,
                )
                with pytest.raises(TranscodeError, match="720p"):
                    await pipeline.transcode("source.mkv", TWO_LEVELS, probe=probe_result())
                return (await db.execute(select(StreamPart))).scalars().all()

    assert asyncio.run(scenario()) == []
    assert list(config.TEMP_DIR.iterdir()) == []
