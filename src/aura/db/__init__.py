"""Database schema."""
