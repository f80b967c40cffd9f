"""Release-name heuristics for media filenames"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

QUALITY_TOKENS = (
    r"720p|1080p|480p|576p|4K|2160p|BluRay|BRRip|BDRip|WEB-DL|WEBRip|HDTV|DVDRip"
    r"|HEVC|x265|x264|H\.?264|H\.?265|YTS|MeGusta|EZTV|HorribleSubs|AMZN|HDR|PROPER|REPACK"
)

# Season/episode patterns, most specific first
SEASON_EPISODE_PATTERNS = [
    r"\bS(\d{1,2})[\s.\-]*E(\d{1,3})",  # S01E01, S01.E01, S01 - E01
    r"\bSeason[^\d]*(\d{1,2})[^\d]*Episode[^\d]*(\d{1,3})",  # Season 1 Episode 1
    r"\b(\d{1,2})x(\d{1,3})\b",  # 1x01
]

# Anything that ends the title part of a release name
TITLE_END_PATTERNS = SEASON_EPISODE_PATTERNS + [
    r"\bS\d{1,2}\b",  # S01
    r"\bSeason\s*\d{1,2}\b",  # Season 1
    rf"\b(?:{QUALITY_TOKENS})\b",
    r"\[.*?\]",  # release group
]

YEAR_PATTERN = r"\b((?:19|20)\d{2})\b"
RESOLUTION_PATTERN = r"\b(\d{3,4})p\b"


@dataclass
class ParsedFilename:
    title: str
    year: Optional[int] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    resolution: Optional[int] = None

    @property
    def is_episode(self) -> bool:
        return self.season is not None and self.episode is not None


def _clean_title(title_part: str) -> str:
    # Replace dots, dashes, underscores with spaces
    title_part = re.sub(r"[\.\-_]+", " ", title_part)
    title_part = " ".join(title_part.split()).strip()
    # Remove trailing punctuation
    return re.sub(r"[^\w\s]+$", "", title_part).strip()


def extract_season_episode(name: str):
    """(season, episode) when both are present in the name"""
    for pattern in SEASON_EPISODE_PATTERNS:
        match = re.search(pattern, name, re.IGNORECASE)
        if match:
            return int(match.group(1)), int(match.group(2))
    return None, None


def _year_matches(name: str):
    # A year-like token at the very start is part of the title (e.g. "2001 A Space Odyssey")
    return [m for m in re.finditer(YEAR_PATTERN, name) if m.start() > 0]


def extract_title(name: str) -> str:
    """Text before the earliest season/episode, quality or group token, or the year"""
    earliest_match_pos = len(name)
    years = _year_matches(name)
    if years:
        # Only the last year-like token is the release year ("Blade Runner 2049 2017")
        earliest_match_pos = years[-1].start()
    for pattern in TITLE_END_PATTERNS:
        for match in re.finditer(pattern, name, re.IGNORECASE):
            if match.start() > 0:
                earliest_match_pos = min(earliest_match_pos, match.start())
                break
    return _clean_title(name[:earliest_match_pos])


def parse_filename(path) -> ParsedFilename:
    """Derive title, year, season/episode and resolution from a file name"""
    name = Path(path).stem
    # Underscores are word characters for \b, treat them as separators
    name = name.replace("_", " ")

    season, episode = extract_season_episode(name)
    title = extract_title(name) or _clean_title(name)

    year = None
    years = _year_matches(name)
    if years:
        year = int(years[-1].group(1))

    resolution = None
    resolution_match = re.search(RESOLUTION_PATTERN, name, re.IGNORECASE)
    if resolution_match:
        resolution = int(resolution_match.group(1))

    return ParsedFilename(
        title=title,
        year=year,
        season=season,
        episode=episode,
        resolution=resolution,
    )
