"""Bundled seed catalog used when no books are stored yet."""
