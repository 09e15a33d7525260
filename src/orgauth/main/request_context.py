"""Per-request log context: correlation id, signed-in user and active organization."""

from contextvars import ContextVar
from typing import Optional

CONTEXT_KEYS = ("correlation_id", "user_sub", "org_id")

_request_context: ContextVar[dict[str, str]] = ContextVar("orgauth_request_context", default={})


def get_request_context() -> dict[str, str]:
    return dict(_request_context.get())


def set_request_context(**values: Optional[str]) -> dict[str, str]:
    """Merge values into the context. ``None`` removes a key.

    Unknown keys raise ``KeyError`` so call sites cannot drift from what the
    log formatter expects.
    """
    current = get_request_context()
    for key, value in values.items():
        if key not in CONTEXT_KEYS:
            raise KeyError(f"Unknown request context key: {key}")
        if value is None:
            current.pop(key, None)
        else:
            current[key] = value
    _request_context.set(current)
    return current


def bind_user(user_sub: str, org_id: Optional[str]) -> None:
    set_request_context(user_sub=user_sub, org_id=org_id)


def clear_request_context() -> None:
    _request_context.set({})
