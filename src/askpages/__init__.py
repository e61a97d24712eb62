"""AskPages: semantic search and grounded answers over workspace pages."""

__version__ = "0.1.0"
