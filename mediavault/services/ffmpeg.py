"""ffmpeg / ffprobe subprocess runners"""

import asyncio
import json
from typing import Callable, Dict, List, Optional, Sequence

from ..config import settings
from ..errors import ToolkitError
from .log_service import log_service

ProgressCallback = Callable[[float], None]

STDERR_TAIL_LINES = 20


def parse_progress_block(lines: Sequence[str]) -> Dict[str, str]:
    """Parse key=value lines emitted by `-progress pipe:1`"""
    values = {}
    for line in lines:
        key, sep, value = line.strip().partition("=")
        if sep:
            values[key] = value
    return values


def progress_percentage(values: Dict[str, str], duration: float) -> Optional[float]:
    """Percentage of `duration` reached according to a progress block"""
    if not duration or duration <= 0:
        return None
    # out_time_ms is reported in microseconds as well
    raw = values.get("out_time_us") or values.get("out_time_ms")
    try:
        seconds = int(raw) / 1_000_000
    except (TypeError, ValueError):
        return None
    if seconds < 0:
        return None
    return min(100.0, seconds / duration * 100)


async def _run(binary: str, args: List[str]) -> asyncio.subprocess.Process:
    log_service.tool(f"{binary} {' '.join(args)}")
    try:
        return await asyncio.create_subprocess_exec(
            binary,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ToolkitError(f"Failed to start {binary}", stderr=str(e)) from e


def _stderr_tail(stderr: bytes) -> str:
    lines = stderr.decode(errors="replace").strip().splitlines()
    return "\n".join(lines[-STDERR_TAIL_LINES:])


async def run_ffmpeg(
    args: List[str],
    duration: float = 0,
    on_progress: Optional[ProgressCallback] = None,
    binary: Optional[str] = None,
) -> None:
    """Run ffmpeg to completion, reporting percentages below 100 while it runs.

    `args` must include `-progress pipe:1` for progress to be reported.
    """
    binary = binary or settings.FFMPEG_BIN
    process = await _run(binary, args)
    stderr_task = asyncio.create_task(process.stderr.read())

    block: List[str] = []
    while True:
        line = await process.stdout.readline()
        if not line:
            break
        text = line.decode(errors="replace").strip()
        if not text:
            continue
        block.append(text)
        if not text.startswith("progress="):
            continue

        values = parse_progress_block(block)
        block = []
        percentage = progress_percentage(values, duration)
        log_service.tool(
            f"ffmpeg progress out_time={values.get('out_time')} fps={values.get('fps')}"
        )
        if on_progress and percentage is not None and values.get("progress") != "end":
            on_progress(min(percentage, 99.9))

    stderr = await stderr_task
    returncode = await process.wait()
    tail = _stderr_tail(stderr)
    if tail:
        log_service.tool(tail)
    if returncode != 0:
        raise ToolkitError(
            f"ffmpeg exited with code {returncode}: {tail}",
            returncode=returncode,
            stderr=tail,
        )


async def run_ffprobe(filepath: str, binary: Optional[str] = None) -> Dict:
    """Return ffprobe's JSON description of a media file"""
    binary = binary or settings.FFPROBE_BIN
    args = [
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        str(filepath),
    ]
    process = await _run(binary, args)
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        tail = _stderr_tail(stderr)
        raise ToolkitError(
            f"ffprobe exited with code {process.returncode}: {tail}",
            returncode=process.returncode,
            stderr=tail,
        )
    try:
        return json.loads(stdout.decode(errors="replace") or "{}")
    except json.JSONDecodeError as e:
        raise ToolkitError(f"ffprobe output was not valid JSON: {e}") from e
