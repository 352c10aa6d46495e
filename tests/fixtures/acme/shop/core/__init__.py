"""Core shop records."""
