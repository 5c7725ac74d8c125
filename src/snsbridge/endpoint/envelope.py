"""SNS HTTP(S) notification envelope."""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from snsbridge.exceptions import NotificationParseError

MESSAGE_TYPE_HEADER = "x-amz-sns-message-type"
"""Request header SNS sets to the envelope type."""


class MessageType(str, Enum):
    NOTIFICATION = "Notification"
    SUBSCRIPTION_CONFIRMATION = "SubscriptionConfirmation"
    UNSUBSCRIBE_CONFIRMATION = "UnsubscribeConfirmation"


class NotificationEnvelope(BaseModel):
    """Body of an SNS delivery to an HTTP(S) endpoint.

    Field values are kept verbatim (including ``Timestamp``) since the
    signature is computed over the original strings.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    type: MessageType = Field(alias="Type")
    message_id: str | None = Field(default=None, alias="MessageId")
    token: str | None = Field(default=None, alias="Token")
    topic_arn: str | None = Field(default=None, alias="TopicArn")
    subject: str | None = Field(default=None, alias="Subject")
    message: str | None = Field(default=None, alias="Message")
    timestamp: str | None = Field(default=None, alias="Timestamp")
    signature_version: str | None = Field(default=None, alias="SignatureVersion")
    signature: str | None = Field(default=None, alias="Signature")
    signing_cert_url: str | None = Field(default=None, alias="SigningCertURL")
    subscribe_url: str | None = Field(default=None, alias="SubscribeURL")
    unsubscribe_url: str | None = Field(default=None, alias="UnsubscribeURL")
    message_attributes: dict[str, Any] = Field(default_factory=dict, alias="MessageAttributes")

    @property
    def is_notification(self) -> bool:
        return self.type is MessageType.NOTIFICATION

    @property
    def is_subscription_status(self) -> bool:
        return self.type in (
            MessageType.SUBSCRIPTION_CONFIRMATION,
            MessageType.UNSUBSCRIBE_CONFIRMATION,
        )


def parse_envelope(body: bytes | str) -> NotificationEnvelope:
    """Parse a request body into a NotificationEnvelope.

    Raises NotificationParseError if the body is not JSON or lacks a
    known ``Type``.
    """
    try:
        content = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Request body is not a JSON notification envelope: {e}"
        raise NotificationParseError(msg) from e

    if not isinstance(content, dict) or "Type" not in content:
        msg = "Notification envelope has no 'Type' field"
        raise NotificationParseError(msg)

    try:
        return NotificationEnvelope.model_validate(content)
    except ValidationError as e:
        msg = f"Invalid notification envelope: {e}"
        raise NotificationParseError(msg) from e
