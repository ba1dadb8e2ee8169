"""Projects, conversations and a virtual file system for an AI coding agent."""

__version__ = "0.1.0"
