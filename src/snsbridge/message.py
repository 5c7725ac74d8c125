"""Outbound message abstraction and reserved header names."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from uuid import UUID, uuid4

# Header names shared with Spring messaging
ID_HEADER = "id"
CONTENT_TYPE_HEADER = "contentType"

NOTIFICATION_SUBJECT_HEADER = "NOTIFICATION_SUBJECT_HEADER"
"""Header carrying the subject of the SNS notification."""

MESSAGE_GROUP_ID_HEADER = "message-group-id"
"""Message group id (applies only to FIFO topics)."""

MESSAGE_DEDUPLICATION_ID_HEADER = "message-deduplication-id"
"""Message deduplication id (applies only to FIFO topics)."""


@dataclass(frozen=True)
class Message:
    """A payload plus an ordered mapping of headers.

    Header values may be text, numbers, bytes or lists of strings. Every
    message also carries an ``id`` header holding its uuid; it is reserved
    and cannot be passed in ``headers``.

    Example:
        msg = Message(
            payload="hello",
            headers={NOTIFICATION_SUBJECT_HEADER: "greeting", "priority": 5},
        )
    """

    payload: Any
    headers: Mapping[str, Any] = field(default_factory=dict)
    uuid: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if ID_HEADER in self.headers:
            msg = f"'{ID_HEADER}' is a reserved header name"
            raise ValueError(msg)
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def message_headers(self) -> Mapping[str, Any]:
        """All headers including the ``id`` header."""
        return MappingProxyType({**self.headers, ID_HEADER: self.uuid})
