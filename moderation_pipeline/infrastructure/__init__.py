"""Infrastructure adapters for the moderation pipeline."""
