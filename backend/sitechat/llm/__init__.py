"""
LLM tool-orchestration package.

Agents:
- DocumentsAgent: About Me and photo metadata documents
- SnowboardingAgent: season log statistics
- BikingAgent: Strava rides
- BooksAgent: Hardcover reading progress
- MusicAgent: Spotify listening history

The orchestrator exposes the agents' tools to an OpenAI function-calling turn:
one tool round, then one follow-up completion.
"""
