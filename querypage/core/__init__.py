"""Core pagination building blocks, settings and errors."""
