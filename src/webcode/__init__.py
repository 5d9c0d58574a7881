"""Session history and workspace persistence service for AI coding assistants."""

__version__ = "0.1.0"
