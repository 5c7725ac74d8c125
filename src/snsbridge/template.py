"""Messaging template for sending notifications to SNS topics by name or ARN."""

import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from snsbridge.channel import TopicMessageChannel
from snsbridge.exceptions import DestinationResolutionError
from snsbridge.message import CONTENT_TYPE_HEADER, NOTIFICATION_SUBJECT_HEADER, Message

if TYPE_CHECKING:
    from types_aiobotocore_sns import SNSClient

logger = logging.getLogger(__name__)

ARN_PREFIX = "arn:"
TEXT_CONTENT_TYPE = "text/plain;charset=UTF-8"
JSON_CONTENT_TYPE = "application/json"


class TopicDestinationResolver:
    """Resolves topic names to topic ARNs.

    Names starting with ``arn:`` are returned unchanged. Other names are
    looked up with ``ListTopics`` (or created with ``CreateTopic`` when
    ``auto_create`` is set). Resolved ARNs are cached.
    """

    def __init__(self, sns_client: "SNSClient | Any", auto_create: bool = False) -> None:
        if sns_client is None:
            msg = "SNS client must not be None"
            raise ValueError(msg)
        self._sns_client = sns_client
        self._auto_create = auto_create
        self._cache: dict[str, str] = {}

    async def resolve(self, name: str) -> str:
        if name.startswith(ARN_PREFIX):
            return name
        if name not in self._cache:
            self._cache[name] = await self._lookup(name)
        return self._cache[name]

    async def _lookup(self, name: str) -> str:
        if self._auto_create:
            response = await self._sns_client.create_topic(Name=name)
            return response["TopicArn"]

        kwargs: dict[str, Any] = {}
        while True:
            response = await self._sns_client.list_topics(**kwargs)
            for topic in response.get("Topics", []):
                arn = topic["TopicArn"]
                if arn.rsplit(":", 1)[-1] == name:
                    logger.debug("Resolved topic %s to %s", name, arn)
                    return arn
            next_token = response.get("NextToken")
            if not next_token:
                break
            kwargs["NextToken"] = next_token

        msg = f"No topic found for name: '{name}'"
        raise DestinationResolutionError(msg)


def convert_payload(payload: Any) -> tuple[Any, str | None]:
    """Convert an object payload to a message body and its content type."""
    if isinstance(payload, str):
        return payload, TEXT_CONTENT_TYPE
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload), None
    if isinstance(payload, BaseModel):
        return payload.model_dump_json(by_alias=True), JSON_CONTENT_TYPE
    return json.dumps(payload), JSON_CONTENT_TYPE


class NotificationMessagingTemplate:
    """Sends notifications to SNS topics.

    Example:
        template = NotificationMessagingTemplate(sns, default_destination="orders")
        await template.send_notification(None, {"id": 1}, subject="created")
    """

    def __init__(
        self,
        sns_client: "SNSClient | Any",
        default_destination: str | None = None,
        *,
        auto_create: bool = False,
    ) -> None:
        if sns_client is None:
            msg = "SNS client must not be None"
            raise ValueError(msg)
        self._sns_client = sns_client
        self._default_destination = default_destination
        self._resolver = TopicDestinationResolver(sns_client, auto_create=auto_create)

    async def send(self, destination: str | None, message: Message) -> bool:
        """Send a prepared message to a topic name or ARN."""
        topic_arn = await self._resolver.resolve(self._destination(destination))
        channel = TopicMessageChannel(self._sns_client, topic_arn)
        return await channel.send(message)

    async def convert_and_send(
        self,
        destination: str | None,
        payload: Any,
        headers: Mapping[str, Any] | None = None,
    ) -> bool:
        """Convert the payload to a body and send it.

        Strings are sent as text, bytes as-is, and anything else as JSON.
        A ``contentType`` header is added unless one is given.
        """
        body, content_type = convert_payload(payload)
        merged = dict(headers or {})
        if content_type is not None:
            merged.setdefault(CONTENT_TYPE_HEADER, content_type)
        return await self.send(destination, Message(payload=body, headers=merged))

    async def send_notification(
        self,
        destination: str | None,
        payload: Any,
        subject: str | None = None,
        headers: Mapping[str, Any] | None = None,
    ) -> bool:
        merged = dict(headers or {})
        if subject is not None:
            merged[NOTIFICATION_SUBJECT_HEADER] = subject
        return await self.convert_and_send(destination, payload, merged)

    def _destination(self, destination: str | None) -> str:
        resolved = destination or self._default_destination
        if not resolved:
            msg = "No destination given and no default destination configured"
            raise DestinationResolutionError(msg)
        return resolved
