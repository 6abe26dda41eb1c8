"""Pure domain services: scoring, rule matching and analytics."""
