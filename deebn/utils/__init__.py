"""Deebn utilities."""
