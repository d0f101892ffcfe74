"""AI integration wiring."""
