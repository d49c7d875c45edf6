"""Versioned media transcription and approximate speaker grouping."""

__version__ = "0.1.0"
