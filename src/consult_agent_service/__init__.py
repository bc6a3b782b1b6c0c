"""Consult agent service: drafts structured consultation notes with a remote AI agent."""

__version__ = "1.0.0"
