"""Marshaling of Messages into SNS publish requests.

SNS message attributes are typed (String, Number, Binary, String.Array).
Header values are classified into a closed set of kinds, and each kind has
exactly one attribute encoding. Headers of an unsupported kind are dropped
with a warning.
"""

import base64
import json
import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from snsbridge.message import (
    CONTENT_TYPE_HEADER,
    ID_HEADER,
    MESSAGE_DEDUPLICATION_ID_HEADER,
    MESSAGE_GROUP_ID_HEADER,
    NOTIFICATION_SUBJECT_HEADER,
    Message,
)

if TYPE_CHECKING:
    from types_aiobotocore_sns.type_defs import MessageAttributeValueTypeDef

logger = logging.getLogger(__name__)

# Attribute data types
STRING = "String"
NUMBER = "Number"
BINARY = "Binary"
STRING_ARRAY = "String.Array"

# Number subtypes use JVM standard number names so Spring consumers can
# convert the attribute back to the original type.
INTEGER_SUBTYPE = "java.lang.Integer"
LONG_SUBTYPE = "java.lang.Long"
BIG_INTEGER_SUBTYPE = "java.math.BigInteger"
DOUBLE_SUBTYPE = "java.lang.Double"
BIG_DECIMAL_SUBTYPE = "java.math.BigDecimal"

_INT32_RANGE = range(-(2**31), 2**31)
_INT64_RANGE = range(-(2**63), 2**63)

_SKIP_HEADERS = frozenset({MESSAGE_GROUP_ID_HEADER, MESSAGE_DEDUPLICATION_ID_HEADER})


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Number:
    value: int | float | Decimal
    subtype: str


@dataclass(frozen=True)
class Bytes:
    value: bytes


@dataclass(frozen=True)
class StringList:
    items: tuple[Any, ...]


@dataclass(frozen=True)
class Other:
    value: Any


HeaderValue = Text | Number | Bytes | StringList | Other


def classify_header_value(value: Any) -> HeaderValue:
    """Classify a header value into one of the supported kinds."""
    if isinstance(value, str):
        return Text(value)
    # bool is an int subclass but not a number attribute
    if isinstance(value, bool):
        return Other(value)
    if isinstance(value, int):
        return Number(value, _int_subtype(value))
    if isinstance(value, float):
        return Number(value, DOUBLE_SUBTYPE) if math.isfinite(value) else Other(value)
    if isinstance(value, Decimal):
        return Number(value, BIG_DECIMAL_SUBTYPE) if value.is_finite() else Other(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Bytes(bytes(value))
    if isinstance(value, (list, tuple)):
        return StringList(tuple(value))
    return Other(value)


def _int_subtype(value: int) -> str:
    if value in _INT32_RANGE:
        return INTEGER_SUBTYPE
    if value in _INT64_RANGE:
        return LONG_SUBTYPE
    return BIG_INTEGER_SUBTYPE


def string_attribute(value: str) -> "MessageAttributeValueTypeDef":
    return {"DataType": STRING, "StringValue": value}


def number_attribute(value: Number) -> "MessageAttributeValueTypeDef":
    return {"DataType": f"{NUMBER}.{value.subtype}", "StringValue": str(value.value)}


def binary_attribute(value: bytes) -> "MessageAttributeValueTypeDef":
    return {"DataType": BINARY, "BinaryValue": value}


def string_array_attribute(items: tuple[Any, ...]) -> "MessageAttributeValueTypeDef":
    """Encode a list as a String.Array attribute.

    SNS has no native list type; each element is written as a JSON string
    literal and the elements are joined as ``["a", "b"]``.
    """
    quoted = [json.dumps(str(item), ensure_ascii=False) for item in items]
    return {"DataType": STRING_ARRAY, "StringValue": "[" + ", ".join(quoted) + "]"}


def to_message_attribute(
    kind: HeaderValue,
) -> "MessageAttributeValueTypeDef | None":
    """Encode a classified header value; None for unsupported kinds."""
    if isinstance(kind, Text):
        return string_attribute(kind.value)
    if isinstance(kind, Number):
        return number_attribute(kind)
    if isinstance(kind, Bytes):
        return binary_attribute(kind.value)
    if isinstance(kind, StringList):
        return string_array_attribute(kind.items)
    return None


def _type_name(value: Any) -> str:
    if value is None:
        return ""
    cls = type(value)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def to_message_attributes(
    message: Message,
) -> tuple[dict[str, "MessageAttributeValueTypeDef"], str | None, str | None]:
    """Convert message headers to SNS message attributes.

    Returns (attributes, deduplication_id, group_id).
    Deduplication/group IDs are extracted for FIFO topic support and are
    never included in the attributes.
    """
    attrs: dict[str, MessageAttributeValueTypeDef] = {}
    deduplication_id: str | None = None
    group_id: str | None = None

    for key, value in message.message_headers.items():
        if key in _SKIP_HEADERS:
            if value is not None:
                if key == MESSAGE_GROUP_ID_HEADER:
                    group_id = str(value)
                else:
                    deduplication_id = str(value)
            continue

        if key in (CONTENT_TYPE_HEADER, ID_HEADER) and value is not None:
            attrs[key] = string_attribute(str(value))
            continue

        attr = to_message_attribute(classify_header_value(value))
        if attr is None:
            logger.warning(
                "Message header with name '%s' and type '%s' cannot be sent as "
                "message attribute because it is not supported by SNS.",
                key,
                _type_name(value),
            )
            continue
        attrs[key] = attr

    return attrs, deduplication_id, group_id


def encode_message_body(payload: Any) -> str:
    """Encode payload for the SNS message body.

    Bytes are decoded as UTF-8, falling back to base64 encoding. Any other
    payload is rendered with ``str()``.
    """
    if isinstance(payload, str):
        return payload
    if isinstance(payload, (bytes, bytearray, memoryview)):
        raw = bytes(payload)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(raw).decode("ascii")
    return str(payload)


def find_notification_subject(message: Message) -> str | None:
    value = message.headers.get(NOTIFICATION_SUBJECT_HEADER)
    return None if value is None else str(value)


@dataclass(frozen=True)
class PublishRequest:
    """A single SNS publish call."""

    topic_arn: str
    message: str
    subject: str | None = None
    message_group_id: str | None = None
    message_deduplication_id: str | None = None
    message_attributes: dict[str, "MessageAttributeValueTypeDef"] = field(
        default_factory=dict
    )

    @classmethod
    def from_message(cls, topic_arn: str, message: Message) -> "PublishRequest":
        attrs, deduplication_id, group_id = to_message_attributes(message)
        return cls(
            topic_arn=topic_arn,
            message=encode_message_body(message.payload),
            subject=find_notification_subject(message),
            message_group_id=group_id,
            message_deduplication_id=deduplication_id,
            message_attributes=attrs,
        )

    def to_kwargs(self) -> dict[str, Any]:
        """Render keyword arguments for the boto3 ``publish`` call."""
        kwargs: dict[str, Any] = {"TopicArn": self.topic_arn, "Message": self.message}
        if self.subject is not None:
            kwargs["Subject"] = self.subject
        if self.message_attributes:
            kwargs["MessageAttributes"] = self.message_attributes
        if self.message_group_id is not None:
            kwargs["MessageGroupId"] = self.message_group_id
        if self.message_deduplication_id is not None:
            kwargs["MessageDeduplicationId"] = self.message_deduplication_id
        return kwargs
