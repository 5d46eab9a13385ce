"""Health package."""
