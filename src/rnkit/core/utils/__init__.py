"""Shared helpers for rnkit core."""
