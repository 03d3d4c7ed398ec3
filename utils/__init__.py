"""Presentation helpers for the CLI: output formatting and form validation."""
