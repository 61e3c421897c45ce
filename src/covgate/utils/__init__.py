"""Shared helpers for covgate."""
