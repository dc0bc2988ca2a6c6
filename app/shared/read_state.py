"""Read-cursor arithmetic shared by the API and the polling client.

A message is unread for a participant iff it was created after the
participant's ``last_read_at``. A message is "seen by all" iff every other
active participant's cursor has reached its ``created_at``. Both are computed
from current participant state on every call; nothing here caches.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def is_unread(created_at: datetime | None, last_read_at: datetime | None) -> bool:
    """Whether an item created at ``created_at`` is unread for a cursor."""
    created_at = _naive_utc(created_at)
    last_read_at = _naive_utc(last_read_at)
    if created_at is None:
        return False
    if last_read_at is None:
        return True
    return created_at > last_read_at


def seen_by_all(message: Any, participants: Iterable[Any]) -> bool:
    """Whether every other active participant has read ``message``.

    Accepts ORM objects, pydantic models or plain dicts exposing
    ``sender_id``/``created_at`` (message) and ``user_id``/``last_read_at``/
    ``is_active`` (participants).
    """
    sender_id = str(_get(message, "sender_id"))
    created_at = _get(message, "created_at")
    others = [
        p
        for p in participants
        if str(_get(p, "user_id")) != sender_id and _get(p, "is_active") is not False
    ]
    if not others:
        return False
    return all(not is_unread(created_at, _get(p, "last_read_at")) for p in others)
