"""Chat backend for a personal website: an OpenAI tool-using assistant over personal data."""
