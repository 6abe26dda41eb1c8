"""
Content moderation pipeline.

Automated content analysis merged with rule-based policy evaluation,
a priority-ordered human review queue, per-report review workflows,
an append-only decision ledger with appeals, and derived analytics.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
