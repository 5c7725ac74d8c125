"""Message channel that publishes to an SNS topic."""

import logging
from typing import TYPE_CHECKING, Any

from snsbridge.marshaling import PublishRequest
from snsbridge.message import Message

if TYPE_CHECKING:
    from types_aiobotocore_sns import SNSClient

logger = logging.getLogger(__name__)


class TopicMessageChannel:
    """Channel bound to a single SNS topic.

    Each ``send`` issues exactly one ``publish`` call. Retries and delivery
    guarantees are left to the SNS client; errors from the call propagate
    to the caller.

    Example:
        async with session.client("sns") as sns:
            channel = TopicMessageChannel(sns, "arn:aws:sns:us-east-1:123:orders")
            await channel.send(Message(payload="hello", headers={"priority": 5}))
    """

    def __init__(self, sns_client: "SNSClient | Any", topic_arn: str) -> None:
        if sns_client is None:
            msg = "SNS client must not be None"
            raise ValueError(msg)
        if not topic_arn:
            msg = "Topic ARN must not be empty"
            raise ValueError(msg)
        self._sns_client = sns_client
        self._topic_arn = topic_arn

    @property
    def topic_arn(self) -> str:
        return self._topic_arn

    async def send(self, message: Message, timeout: float | None = None) -> bool:
        """Publish a message to the topic.

        ``timeout`` is accepted for channel compatibility but not enforced;
        timeouts are governed by the client's own configuration.
        """
        request = PublishRequest.from_message(self._topic_arn, message)
        response = await self._sns_client.publish(**request.to_kwargs())
        logger.debug(
            "Published message %s to %s, MessageId=%s",
            message.uuid,
            self._topic_arn,
            response.get("MessageId") if isinstance(response, dict) else None,
        )
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._topic_arn!r})"
