"""Streaming price feeds."""
