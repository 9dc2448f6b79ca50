"""Shared models, settings and ports."""
