"""snsbridge: AWS SNS messaging integration.

Outbound: TopicMessageChannel / NotificationMessagingTemplate publish
Messages to SNS topics. Inbound: NotificationEndpoint resolves SNS HTTP(S)
deliveries into handler arguments.
"""

from snsbridge.autoconfigure import SnsAutoConfiguration
from snsbridge.channel import TopicMessageChannel
from snsbridge.config import SnsProperties
from snsbridge.endpoint import (
    NotificationEndpoint,
    NotificationMessage,
    NotificationStatus,
    NotificationSubject,
    SignatureVerifier,
    create_notification_app,
    notification_argument_resolvers,
)
from snsbridge.exceptions import (
    ArgumentResolutionError,
    ConfigurationError,
    DestinationResolutionError,
    NotificationParseError,
    SignatureVerificationError,
    SnsBridgeError,
)
from snsbridge.message import (
    MESSAGE_DEDUPLICATION_ID_HEADER,
    MESSAGE_GROUP_ID_HEADER,
    NOTIFICATION_SUBJECT_HEADER,
    Message,
)
from snsbridge.template import NotificationMessagingTemplate

__all__ = [
    # outbound
    "Message",
    "TopicMessageChannel",
    "NotificationMessagingTemplate",
    "NOTIFICATION_SUBJECT_HEADER",
    "MESSAGE_GROUP_ID_HEADER",
    "MESSAGE_DEDUPLICATION_ID_HEADER",
    # inbound
    "NotificationEndpoint",
    "NotificationMessage",
    "NotificationSubject",
    "NotificationStatus",
    "SignatureVerifier",
    "create_notification_app",
    "notification_argument_resolvers",
    # configuration
    "SnsProperties",
    "SnsAutoConfiguration",
    # errors
    "SnsBridgeError",
    "ConfigurationError",
    "ArgumentResolutionError",
    "NotificationParseError",
    "SignatureVerificationError",
    "DestinationResolutionError",
]
