"""Errors raised by external collaborators.

Neither of these reaches a moderation caller: analysis failures are
recovered by returning a safe analysis, and notification failures are
logged and dropped after retries.
"""

from __future__ import annotations

from moderation_pipeline.domain.exceptions import ModerationError


class ContentAnalysisError(ModerationError):
    """Raised when the analysis capability errors or times out.

    Attributes:
        content_id: Content being analyzed, if known.
        reason: Short failure description.
    """

    def __init__(self, reason: str, content_id: str | None = None) -> None:
        self.reason = reason
        self.content_id = content_id
        super().__init__(f"Content analysis failed: {reason}")


class NotificationDeliveryError(ModerationError):
    """Raised when a notification channel fails after all retries.

    Attributes:
        channel: Name of the failing channel.
        event_type: Notification event type value.
        attempts: Number of attempts made.
    """

    def __init__(self, channel: str, event_type: str, attempts: int, reason: str) -> None:
        self.channel = channel
        self.event_type = event_type
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Notification '{event_type}' via {channel} failed after "
            f"{attempts} attempts: {reason}"
        )
