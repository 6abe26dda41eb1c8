"""HTTP API for the moderation pipeline."""
