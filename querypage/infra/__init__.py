"""Infrastructure helpers."""
