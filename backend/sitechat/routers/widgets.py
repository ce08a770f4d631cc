"""
Data endpoints behind the site's widgets.

GET /api/strava     ?type=latest&per_page=1            -> {activity}
GET /api/spotify    ?type=recent|top&limit=15&time_range=long_term -> {tracks}
GET /api/hardcover                                      -> {books}

Errors are {error, message}: 400 bad query, 401 not configured or token
rejected, 404 no rides, 500 anything else from the provider.
"""
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..config import Settings, settings as default_settings
from ..errors import AssistantError, ConfigurationError, ProviderAuthError
from ..integrations.hardcover import HardcoverClient
from ..integrations.spotify import SpotifyClient
from ..integrations.strava import StravaClient
from ..llm.retry import RetryPolicy
from ..llm.tools import book_authors, page_progress, track_artists
from ..schemas import BookOut, BooksResponse, ErrorResponse, RideActivity, RideResponse, TrackOut, TracksResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Widgets"])

TIME_RANGES = ("short_term", "medium_term", "long_term")

ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    code: {"model": ErrorResponse} for code in (400, 401, 404, 500)
}


def get_settings() -> Settings:
    return default_settings


async def get_http_client(settings: Settings = Depends(get_settings)) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.http_timeout) as http:
        yield http


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error, message=message).model_dump())


async def fetch_widget(provider: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
    """Run one provider fetch, mapping tagged errors to widget error bodies."""
    try:
        return await fetch()
    except ConfigurationError as e:
        return error_response(401, f"{provider} not configured", e.message)
    except ProviderAuthError as e:
        logger.error(f"{provider} widget: {e!r}")
        return error_response(
            401, "Unauthorized", f"{provider} access token is invalid or expired. Please refresh your token."
        )
    except AssistantError as e:
        logger.error(f"{provider} widget: {e!r}")
        return error_response(500, "Internal server error", e.message)


# ============ Strava ============

def ride_activity(detail: Dict[str, Any]) -> RideActivity:
    route = detail.get("map") or {}
    return RideActivity(
        name=detail.get("name"),
        distance=detail.get("distance"),
        elevation_gain=detail.get("total_elevation_gain"),
        moving_time=detail.get("moving_time"),
        elapsed_time=detail.get("elapsed_time"),
        start_date=detail.get("start_date"),
        start_date_local=detail.get("start_date_local"),
        location_city=detail.get("location_city"),
        location_state=detail.get("location_state"),
        location_country=detail.get("location_country"),
        route_polyline=route.get("summary_polyline") or route.get("polyline") or None,
    )


@router.get("/strava", response_model=RideResponse, responses=ERROR_RESPONSES)
async def latest_ride(
    kind: str = Query("latest", alias="type"),
    per_page: int = Query(1, ge=1, le=200),
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    """Most recent bike ride with route polyline."""
    if kind != "latest":
        return error_response(400, "Bad request", 'Invalid type. Use "latest"')

    strava = StravaClient.from_settings(settings, http, RetryPolicy.for_tools(settings))

    async def fetch():
        activities = await strava.list_activities(per_page)
        if not activities:
            return error_response(404, "No activities found", "No bike activities found in your Strava account.")
        rides = [a for a in activities if a.get("type") == "Ride"]
        if not rides:
            return error_response(404, "No bike activities found", "No bike rides found in your recent Strava activities.")
        detail = await strava.get_activity(rides[0]["id"])
        return RideResponse(activity=ride_activity(detail))

    return await fetch_widget("Strava", fetch)


# ============ Spotify ============

def _track_key(track: Dict[str, Any]) -> str:
    artists = ",".join(a.get("name", "").lower() for a in track.get("artists") or [])
    return f"{(track.get('name') or '').lower()}|{artists}"


def _album_art(track: Dict[str, Any]) -> Any:
    images = (track.get("album") or {}).get("images") or []
    return images[0].get("url") if images else None


def recent_tracks(items: List[Dict[str, Any]]) -> List[TrackOut]:
    """Recently played, repeats of the same title and artists dropped."""
    seen = set()
    tracks: List[TrackOut] = []
    for item in items:
        track = item.get("track") or {}
        key = _track_key(track)
        if key in seen:
            continue
        seen.add(key)
        tracks.append(TrackOut(
            title=track.get("name") or "",
            artist=track_artists(track),
            played_at=item.get("played_at"),
            album_art=_album_art(track),
        ))
    return tracks


def top_tracks(items: List[Dict[str, Any]]) -> List[TrackOut]:
    return [
        TrackOut(title=t.get("name") or "", artist=track_artists(t), rank=i, album_art=_album_art(t))
        for i, t in enumerate(items, start=1)
    ]


@router.get("/spotify", response_model=TracksResponse, response_model_exclude_none=True, responses=ERROR_RESPONSES)
async def music_tracks(
    kind: str = Query("recent", alias="type"),
    limit: int = Query(15, ge=1, le=50),
    time_range: str = Query("long_term"),
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    """Recently played or top tracks."""
    if kind not in ("recent", "top"):
        return error_response(400, "Bad request", 'Invalid type. Use "recent" or "top"')
    if time_range not in TIME_RANGES:
        return error_response(400, "Bad request", f"Invalid time_range. Use one of: {', '.join(TIME_RANGES)}")

    spotify = SpotifyClient.from_settings(settings, http, RetryPolicy.for_tools(settings))

    async def fetch():
        if kind == "recent":
            data = await spotify.recently_played(limit=limit)
            return TracksResponse(tracks=recent_tracks(data.get("items") or []))
        data = await spotify.top_tracks(time_range=time_range, limit=limit)
        return TracksResponse(tracks=top_tracks(data.get("items") or []))

    return await fetch_widget("Spotify", fetch)


# ============ Hardcover ============

def book_out(index: int, entry: Dict[str, Any]) -> BookOut:
    book = entry.get("book") or {}
    total = int(book.get("pages") or 0)
    current = int(entry.get("progress_pages") or 0)
    return BookOut(
        id=f"book-{index}",
        title=book.get("title") or "Untitled",
        author=book_authors(book),
        cover_url=book.get("image") or "",
        progress=page_progress(current, total),
        total_pages=total,
        current_page=current,
    )


@router.get("/hardcover", response_model=BooksResponse, responses=ERROR_RESPONSES)
async def currently_reading(
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    """Books currently marked as reading."""
    hardcover = HardcoverClient.from_settings(settings, http, RetryPolicy.for_tools(settings))

    async def fetch():
        reading = await hardcover.currently_reading()
        return BooksResponse(books=[book_out(i, entry) for i, entry in enumerate(reading)])

    return await fetch_widget("Hardcover", fetch)
