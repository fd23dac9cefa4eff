"""Exposition API."""
