"""Request context for moderation log entries.

Two contextvars follow a request across await points: the correlation
ID, and the moderation subject the request is about (report, workflow,
queue item, appeal, decision, policy or rule). The API middleware sets
both; request_context_processor stamps them on every log entry, so a
reviewer action can be traced from the HTTP request down to the queue
and ledger logs it causes.
"""

from collections.abc import Mapping
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

# Path parameter names that identify a moderation subject.
SUBJECT_KEYS: tuple[str, ...] = (
    "report_id",
    "workflow_id",
    "item_id",
    "appeal_id",
    "decision_id",
    "policy_id",
    "rule_id",
)

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_subject: ContextVar[Mapping[str, str]] = ContextVar("moderation_subject", default={})


def generate_correlation_id() -> str:
    return str(uuid4())


def get_correlation_id() -> str:
    """Current correlation ID, or an empty string if none is set."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def bind_subject(params: Mapping[str, Any]) -> dict[str, str]:
    """Bind the subject identifiers found in params to the current context.

    Keys outside SUBJECT_KEYS and empty values are ignored. Previously
    bound identifiers are kept unless params overrides them.

    Args:
        params: Typically a request's path parameters.

    Returns:
        The identifiers bound by this call.
    """
    bound = {key: str(params[key]) for key in SUBJECT_KEYS if params.get(key)}
    if bound:
        _subject.set({**_subject.get(), **bound})
    return bound


def get_subject() -> dict[str, str]:
    return dict(_subject.get())


def clear_request_context() -> None:
    _correlation_id.set("")
    _subject.set({})


def request_context_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding correlation_id and subject ids.

    Values passed explicitly to the log call win over the context.
    """
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    for key, value in _subject.get().items():
        event_dict.setdefault(key, value)
    return event_dict
