"""Deebn models."""
