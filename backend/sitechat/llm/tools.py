from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
from collections import Counter
from datetime import datetime

from ..integrations.content import SeasonEntry, normalize_season

METERS_TO_MILES = 0.000621371
METERS_TO_FEET = 3.28084


def safe_float(val: Any) -> Optional[float]:
    try:
        if val is None:
            return None
        return float(val)
    except (TypeError, ValueError):
        return None


def parse_datetime_str(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    try:
        return datetime.fromisoformat(str(s).replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        from dateutil import parser as _parser
        return _parser.parse(str(s))
    except (ValueError, OverflowError):
        return None


def format_date(s: Optional[str], with_year: bool = True) -> str:
    dt = parse_datetime_str(s)
    if dt is None:
        return s or "unknown date"
    if with_year:
        return f"{dt.strftime('%b')} {dt.day}, {dt.year}"
    return f"{dt.strftime('%b')} {dt.day}"


def miles(meters: Any, digits: int = 2) -> str:
    return f"{(safe_float(meters) or 0.0) * METERS_TO_MILES:.{digits}f}"


def kilometers(meters: Any, digits: int = 2) -> str:
    return f"{(safe_float(meters) or 0.0) / 1000:.{digits}f}"


def feet(meters: Any) -> int:
    return round((safe_float(meters) or 0.0) * METERS_TO_FEET)


def format_duration(seconds: Any) -> str:
    total = int(safe_float(seconds) or 0)
    hours, minutes = total // 3600, (total % 3600) // 60
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "... [truncated]"


def plural(count: int, word: str = "time") -> str:
    return f"{count} {word if count == 1 else word + 's'}"


# Snowboarding season helpers

def seasons(entries: List[SeasonEntry]) -> List[str]:
    """Distinct normalized season labels, latest first."""
    return sorted({e.season for e in entries}, reverse=True)


def default_season(entries: List[SeasonEntry]) -> Optional[str]:
    labels = seasons(entries)
    return labels[0] if labels else None


def entries_for(entries: List[SeasonEntry], season: str) -> List[SeasonEntry]:
    if season == "all":
        return list(entries)
    return [e for e in entries if e.season == season]


def season_total(entries: List[SeasonEntry], season: str) -> Optional[SeasonEntry]:
    """Last logged entry of a season; its ``days`` is the season's running total."""
    matching = entries_for(entries, season)
    return matching[-1] if matching else None


def location_counts(entries: List[SeasonEntry]) -> List[Tuple[str, int]]:
    """Visits per location, most visited first; ties keep first-seen order."""
    return Counter(e.location for e in entries).most_common()


def most_common_location(entries: List[SeasonEntry]) -> Optional[Tuple[str, int]]:
    counts = location_counts(entries)
    return counts[0] if counts else None


def previous_season(entries: List[SeasonEntry], season: str) -> Optional[str]:
    older = [s for s in seasons(entries) if s < season]
    return older[0] if older else None


def describe_snowboarding(entries: List[SeasonEntry], metric: Optional[str], season: Optional[str] = None) -> str:
    """Human-readable answer for one ``get_snowboarding_data`` call."""
    if not entries:
        return "No snowboarding data available."

    metric = (metric or "all").strip().lower()
    requested = normalize_season(season) if season else None
    target = requested or default_season(entries)
    scoped = entries_for(entries, target)

    if metric in ("total_days", "progress"):
        labels = seasons(entries) if target == "all" else [target]
        lines = []
        for label in labels:
            last = season_total(entries, label)
            if last:
                lines.append(f"{label}: {last.days} days (Last location: {last.location or 'Unknown'})")
        return "\n".join(lines) or f"No snowboarding data for the {target} season."

    if metric == "comparison":
        current = target if target != "all" else default_season(entries)
        previous = previous_season(entries, current)
        if not previous:
            if len(seasons(entries)) < 2:
                return f"Only one season on record ({current}); nothing to compare against."
            return f"{current} is the earliest season on record; there is no earlier season to compare against."
        cur, prev = season_total(entries, current), season_total(entries, previous)
        cur_days = cur.days if cur else 0
        prev_days = prev.days if prev else 0
        diff = cur_days - prev_days
        trend = f"{abs(diff)} more" if diff > 0 else f"{abs(diff)} fewer" if diff < 0 else "the same number of"
        return (
            f"{current} season: {cur_days} days\n"
            f"{previous} season: {prev_days} days\n"
            f"That's {trend} days than the {previous} season."
        )

    if metric in ("locations", "all"):
        lines = [f"Snowboarding entries for {target}:"]
        lines += [f"{e.date}: {e.location} ({e.days} days)" for e in scoped]
        return "\n".join(lines)

    if metric == "most_common_location":
        counts = location_counts(scoped)
        if not counts:
            return "No location data available."
        top, count = counts[0]
        text = f"Most common location: {top} ({plural(count)})"
        if len(counts) > 1:
            text += "\n\nAll locations:\n" + "\n".join(f"- {loc}: {plural(cnt)}" for loc, cnt in counts)
        return text

    if metric in ("last_location", "last_date"):
        if not scoped:
            return "No snowboarding data available for this season."
        last = scoped[-1]
        if metric == "last_location":
            return f"Last location: {last.location} (on {last.date})"
        return f"Last time snowboarding: {last.date} at {last.location} (Day {last.days} of the season)"

    lines = ["Snowboarding data:"]
    lines += [f"{e.date}: {e.location} ({e.season}, Day {e.days})" for e in scoped]
    return "\n".join(lines)


# Reading helpers

def book_authors(book: Dict[str, Any]) -> str:
    names = [(c.get("author") or {}).get("name") for c in book.get("contributions") or []]
    return ", ".join(n for n in names if n) or "Unknown Author"


def page_progress(current: int, total: int) -> int:
    """Percent read, clamped to 0..100; 0 when the page count is unknown."""
    if total <= 0:
        return 0
    return min(100, max(0, round(current / total * 100)))


def track_artists(track: Dict[str, Any]) -> str:
    return ", ".join(a.get("name", "") for a in track.get("artists") or [])
