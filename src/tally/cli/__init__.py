"""CLI layer for tally application."""
