"""Social package."""
