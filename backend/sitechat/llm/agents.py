from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import logging

from ..errors import ProviderOverloaded, ProviderRequestError, ProviderUnreachable
from ..integrations.content import StaticContent
from ..integrations.hardcover import HardcoverClient
from ..integrations.spotify import SpotifyClient
from ..integrations.strava import StravaClient
from ..schemas import ToolDefinition
from .registry import TOOL_CATALOGUE
from .tools import (
    book_authors,
    describe_snowboarding,
    feet,
    format_date,
    format_duration,
    kilometers,
    miles,
    page_progress,
    safe_float,
    track_artists,
)

logger = logging.getLogger(__name__)


class BaseAgent:
    """Owns a handful of tools and turns their calls into readable text."""

    name: str = "agent"
    tool_names: Tuple[str, ...] = ()

    def tools(self) -> List[ToolDefinition]:
        return [TOOL_CATALOGUE[n] for n in self.tool_names]

    def owns(self, tool_name: str) -> bool:
        return tool_name in self.tool_names

    async def execute(self, tool_name: str, args: Dict[str, Any]) -> Optional[str]:
        return None


class DocumentsAgent(BaseAgent):
    name = "documents"
    tool_names = ("get_about_info", "get_photos_info")

    def __init__(self, content: StaticContent):
        self.content = content

    async def execute(self, tool_name: str, args: Dict[str, Any]) -> Optional[str]:
        if tool_name == "get_about_info":
            return self.content.profile.strip() or "The About Me document is not currently available."
        if tool_name == "get_photos_info":
            return self.content.photos.strip() or "Photo information is not currently available."
        return None


class SnowboardingAgent(BaseAgent):
    name = "snowboarding"
    tool_names = ("get_snowboarding_data",)

    def __init__(self, content: StaticContent):
        self.entries = content.season_entries

    async def execute(self, tool_name: str, args: Dict[str, Any]) -> Optional[str]:
        if tool_name != "get_snowboarding_data":
            return None
        return describe_snowboarding(self.entries, args.get("metric"), args.get("season"))


class BikingAgent(BaseAgent):
    name = "biking"
    tool_names = ("get_biking_data",)

    def __init__(self, strava: StravaClient):
        self.strava = strava

    async def execute(self, tool_name: str, args: Dict[str, Any]) -> Optional[str]:
        if tool_name != "get_biking_data":
            return None
        query = str(args.get("query") or "").strip().lower()
        if query in ("last_ride", "recent_ride", "latest_ride"):
            return await self._last_ride()
        if query in ("recent_rides", "recent_activities"):
            return await self._recent_rides()
        if query in ("total_distance", "total_miles", "total_km"):
            return await self._total_distance()
        if query in ("elevation_gain", "total_elevation"):
            return await self._elevation_gain()
        if query in ("longest_ride", "longest_distance"):
            return await self._longest_ride()
        rides = await self.strava.list_rides(per_page=10)
        if not rides:
            return "No bike rides found."
        latest = rides[0]
        return f"Latest bike ride: {latest.get('name')} - {miles(latest.get('distance'))} miles on {format_date(latest.get('start_date_local'))}"

    async def _last_ride(self) -> str:
        rides = await self.strava.list_rides(per_page=10)
        if not rides:
            return "No bike rides found in recent activities."
        latest = rides[0]
        try:
            ride = await self.strava.get_activity(latest["id"])
        except (ProviderRequestError, ProviderOverloaded, ProviderUnreachable) as e:
            logger.warning(f"Strava activity detail unavailable, using summary: {e}")
            return (
                f"Last bike ride: {latest.get('name')} - {miles(latest.get('distance'))} miles "
                f"on {format_date(latest.get('start_date_local'))}"
            )
        elevation = safe_float(ride.get("total_elevation_gain")) or 0.0
        lines = [
            "Last bike ride:",
            f"- Date: {format_date(ride.get('start_date_local'))}",
            f"- Name: {ride.get('name')}",
            f"- Distance: {miles(ride.get('distance'))} miles ({kilometers(ride.get('distance'))} km)",
            f"- Elevation gain: {feet(elevation)} ft ({round(elevation)} m)",
            f"- Duration: {format_duration(ride.get('moving_time'))}",
        ]
        if ride.get("location_city") and ride.get("location_state"):
            lines.append(f"- Location: {ride['location_city']}, {ride['location_state']}")
        return "\n".join(lines)

    async def _recent_rides(self) -> str:
        rides = await self.strava.list_rides(per_page=10)
        if not rides:
            return "No recent bike rides found."
        lines = [f"Recent bike rides ({len(rides)}):"]
        for i, ride in enumerate(rides[:5], start=1):
            lines.append(
                f"{i}. {ride.get('name')} - {miles(ride.get('distance'), 1)} mi on "
                f"{format_date(ride.get('start_date_local'), with_year=False)}"
            )
        return "\n".join(lines)

    async def _total_distance(self) -> str:
        rides = await self.strava.list_rides(per_page=200)
        if not rides:
            return "No bike rides found to calculate total distance."
        total = sum(safe_float(r.get("distance")) or 0.0 for r in rides)
        return (
            f"Total distance from last {len(rides)} rides:\n"
            f"- {miles(total, 1)} miles ({kilometers(total, 1)} km)\n"
            f"- Based on {len(rides)} bike activities"
        )

    async def _elevation_gain(self) -> str:
        rides = await self.strava.list_rides(per_page=200)
        if not rides:
            return "No bike rides found to calculate elevation gain."
        total = sum(safe_float(r.get("total_elevation_gain")) or 0.0 for r in rides)
        return (
            f"Total elevation gain from last {len(rides)} rides:\n"
            f"- {feet(total)} ft ({round(total)} m)\n"
            f"- Based on {len(rides)} bike activities"
        )

    async def _longest_ride(self) -> str:
        rides = await self.strava.list_rides(per_page=200)
        if not rides:
            return "No bike rides found."
        longest = max(rides, key=lambda r: safe_float(r.get("distance")) or 0.0)
        return (
            "Longest ride:\n"
            f"- {longest.get('name')}\n"
            f"- Distance: {miles(longest.get('distance'))} miles ({kilometers(longest.get('distance'))} km)\n"
            f"- Date: {format_date(longest.get('start_date_local'))}"
        )


class BooksAgent(BaseAgent):
    name = "books"
    tool_names = ("get_books_data",)

    def __init__(self, hardcover: HardcoverClient):
        self.hardcover = hardcover

    async def execute(self, tool_name: str, args: Dict[str, Any]) -> Optional[str]:
        if tool_name != "get_books_data":
            return None
        reading = await self.hardcover.currently_reading()
        if not reading:
            return "No books are currently marked as reading on Hardcover."
        lines = [f"Currently reading ({len(reading)}):"]
        for entry in reading:
            book = entry.get("book") or {}
            total = int(book.get("pages") or 0)
            current = int(entry.get("progress_pages") or 0)
            line = f'- "{book.get("title") or "Untitled"}" by {book_authors(book)}'
            if total > 0:
                line += f" - page {current} of {total} ({page_progress(current, total)}%)"
            lines.append(line)
        return "\n".join(lines)


def _track_line(track: Dict[str, Any]) -> str:
    return f'"{track.get("name")}" by {track_artists(track)}'


class MusicAgent(BaseAgent):
    name = "music"
    tool_names = ("get_music_data",)

    def __init__(self, spotify: SpotifyClient):
        self.spotify = spotify

    async def execute(self, tool_name: str, args: Dict[str, Any]) -> Optional[str]:
        if tool_name != "get_music_data":
            return None
        query = str(args.get("query") or "").strip().lower()
        if query in ("recent_tracks", "recently_played"):
            data = await self.spotify.recently_played(limit=15)
            lines = ["Recently played tracks:"]
            lines += [f"{i}. {_track_line(item['track'])}" for i, item in enumerate(data.get("items") or [], start=1)]
            return "\n".join(lines)
        if query in ("top_tracks", "favorite_tracks"):
            data = await self.spotify.top_tracks(limit=15)
            lines = ["Top tracks (all time):"]
            lines += [f"{i}. {_track_line(t)}" for i, t in enumerate(data.get("items") or [], start=1)]
            return "\n".join(lines)
        if query in ("favorite_artists", "top_artists"):
            data = await self.spotify.top_artists(limit=10)
            lines = ["Top artists (all time):"]
            lines += [f"{i}. {a.get('name')}" for i, a in enumerate(data.get("items") or [], start=1)]
            return "\n".join(lines)

        recent, top = await asyncio.gather(
            self.spotify.recently_played(limit=5),
            self.spotify.top_tracks(limit=5),
        )
        lines = ["Recent listening activity:", "Recently played:"]
        lines += [f"- {_track_line(item['track'])}" for item in (recent.get("items") or [])[:3]]
        lines += ["", "Top tracks:"]
        lines += [f"{i}. {_track_line(t)}" for i, t in enumerate((top.get("items") or [])[:3], start=1)]
        return "\n".join(lines)
