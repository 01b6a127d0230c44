"""Utility functions for tally."""
