"""Emotion journaling backend: analysis, 7-session cycles and weekly reports."""

__version__ = "0.1.0"
