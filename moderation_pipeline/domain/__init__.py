"""Domain layer for the moderation pipeline."""
