"""Concrete adapters for moderation ports."""
