"""Adapters for the data sources behind the chat tools (remote APIs and static content)."""
