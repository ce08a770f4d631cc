"""
Fixed catalogue of tools the model may call.

Built once at import time and never mutated. Handlers live in
``sitechat.llm.agents``; this module only describes the tools.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from ..config import settings
from ..schemas import ToolDefinition


def _query_schema(description: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {"query": {"type": "string", "description": description}},
        "required": ["query"],
    }


def build_catalogue(owner: str) -> Dict[str, ToolDefinition]:
    tools = [
        ToolDefinition(
            name="get_about_info",
            description=f"Get information about {owner}'s background, career, skills, interests, and personal details from the About Me document.",
            input_schema=_query_schema('What information to search for (e.g., "career", "skills", "hobbies", "location")'),
        ),
        ToolDefinition(
            name="get_photos_info",
            description=f"Get information about {owner}'s photos, travel experiences, photography style, and memories from the photo metadata.",
            input_schema=_query_schema('What to search for (e.g., "locations", "travel", "photography style", "specific trip")'),
        ),
        ToolDefinition(
            name="get_snowboarding_data",
            description=(
                f"Get {owner}'s snowboarding statistics including days snowboarded, season progress, locations, dates, "
                "and historical data. Can answer questions about the most visited mountain, last time/location, "
                "total days, season comparisons, etc."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "season": {
                        "type": "string",
                        "description": 'Which season to query (e.g., "2024-25", "2025-26", or "all"). Optional - if not provided, will use latest season.',
                    },
                    "metric": {
                        "type": "string",
                        "description": 'What information to get: "total_days", "progress", "comparison", "locations", "most_common_location", "last_location", "last_date", or "all"',
                    },
                },
                "required": ["metric"],
            },
        ),
        ToolDefinition(
            name="get_biking_data",
            description=f"Get {owner}'s bike ride data from Strava API including distance, elevation, duration, and route information.",
            input_schema=_query_schema('What to query (e.g., "last_ride", "recent_rides", "total_distance", "elevation_gain", "longest_ride")'),
        ),
        ToolDefinition(
            name="get_books_data",
            description=f"Get {owner}'s reading data from Hardcover API including currently reading books, reading progress, and reading history.",
            input_schema=_query_schema('What to query (e.g., "currently_reading", "reading_progress")'),
        ),
        ToolDefinition(
            name="get_music_data",
            description=f"Get {owner}'s music listening data from Spotify API including recently played tracks, top tracks, and listening statistics.",
            input_schema=_query_schema('What to query (e.g., "recent_tracks", "top_tracks", "favorite_artists")'),
        ),
    ]
    return {t.name: t for t in tools}


TOOL_CATALOGUE: Dict[str, ToolDefinition] = build_catalogue(settings.owner_name)

# Short labels used when synthesizing planning text and error messages
TOOL_LABELS: Dict[str, str] = {
    "get_about_info": "profile information",
    "get_photos_info": "photo information",
    "get_snowboarding_data": "snowboarding data",
    "get_biking_data": "biking data",
    "get_books_data": "books data",
    "get_music_data": "music data",
}


def get_tool(name: str) -> Optional[ToolDefinition]:
    return TOOL_CATALOGUE.get(name)


def tool_label(name: str) -> str:
    return TOOL_LABELS.get(name, name.replace("_", " "))


def openai_tools(catalogue: Optional[Dict[str, ToolDefinition]] = None) -> List[Dict[str, Any]]:
    """Catalogue in OpenAI function-calling format."""
    catalogue = catalogue or TOOL_CATALOGUE
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.input_schema,
            },
        }
        for t in catalogue.values()
    ]


def describe_catalogue(catalogue: Optional[Dict[str, ToolDefinition]] = None) -> str:
    """Bulleted tool list for the system prompt."""
    catalogue = catalogue or TOOL_CATALOGUE
    return "\n".join(f"- {t.name}: {t.description}" for t in catalogue.values())
