"""
Readers for the static content shipped with the site: the About Me document,
the photo metadata document and the snowboarding season log.

Content is externally authored and redeployed, never edited at runtime, so it
is read once per process and cached by directory.
"""
from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, NamedTuple, Union

logger = logging.getLogger(__name__)

PROFILE_FILE = "about-me.md"
PHOTOS_FILE = "photos.md"
SNOWBOARDING_FILE = "snowboarding.csv"

_SHORT_SEASON = re.compile(r"(\d{1,2})-'(\d{1,2})")


class SeasonEntry(NamedTuple):
    date: str
    location: str
    season: str
    days: int  # cumulative days so far in the season


def normalize_season(label: str) -> str:
    """``"24-'25"`` -> ``"2024-25"``; anything else is returned stripped."""
    label = (label or "").strip()
    if "'" not in label:
        return label
    m = _SHORT_SEASON.search(label)
    if not m:
        return label
    return f"20{int(m.group(1)):02d}-{int(m.group(2)):02d}"


def parse_season_csv(text: str) -> List[SeasonEntry]:
    """Parse ``date,location,season,days`` rows (header row skipped)."""
    entries: List[SeasonEntry] = []
    reader = csv.reader(io.StringIO(text.strip()), skipinitialspace=True)
    next(reader, None)
    for row in reader:
        if not row or not any(cell.strip() for cell in row):
            continue
        if len(row) < 4:
            logger.warning(f"Skipping malformed snowboarding row: {row!r}")
            continue
        date, location, season, days = (cell.strip() for cell in row[:4])
        try:
            count = int(days)
        except ValueError:
            logger.warning(f"Skipping snowboarding row with bad day count: {row!r}")
            continue
        entries.append(SeasonEntry(date=date, location=location, season=normalize_season(season), days=count))
    return entries


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Error reading {path.name}: {e}")
        return ""


@dataclass(frozen=True)
class StaticContent:
    profile: str = ""
    photos: str = ""
    season_entries: List[SeasonEntry] = field(default_factory=list)


@lru_cache(maxsize=None)
def load_content(content_dir: Union[str, Path]) -> StaticContent:
    base = Path(content_dir)
    content = StaticContent(
        profile=_read(base / PROFILE_FILE),
        photos=_read(base / PHOTOS_FILE),
        season_entries=parse_season_csv(_read(base / SNOWBOARDING_FILE)),
    )
    logger.info(
        f"Loaded static content from {base}: profile={len(content.profile)} chars, "
        f"photos={len(content.photos)} chars, {len(content.season_entries)} snowboarding entries"
    )
    return content
