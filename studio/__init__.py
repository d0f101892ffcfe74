"""Bounded-time chunked generation of AI workout programs."""

__version__ = "0.1.0"
