"""Bounded-time chunked program generation."""
