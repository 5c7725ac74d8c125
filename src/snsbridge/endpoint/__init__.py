"""Inbound SNS HTTP(S) endpoint support."""

from snsbridge.endpoint.envelope import (
    MESSAGE_TYPE_HEADER,
    MessageType,
    NotificationEnvelope,
    parse_envelope,
)
from snsbridge.endpoint.resolvers import (
    ArgumentResolver,
    ArgumentResolverComposite,
    MethodParameter,
    NotificationMessage,
    NotificationMessageArgumentResolver,
    NotificationStatus,
    NotificationStatusArgumentResolver,
    NotificationSubject,
    NotificationSubjectArgumentResolver,
    RequestArgumentResolver,
    notification_argument_resolvers,
)
from snsbridge.endpoint.routing import (
    NotificationEndpoint,
    create_notification_app,
    notification_exception_handlers,
)
from snsbridge.endpoint.verification import SignatureVerifier

__all__ = [
    "MESSAGE_TYPE_HEADER",
    "ArgumentResolver",
    "ArgumentResolverComposite",
    "MessageType",
    "MethodParameter",
    "NotificationEndpoint",
    "NotificationEnvelope",
    "NotificationMessage",
    "NotificationMessageArgumentResolver",
    "NotificationStatus",
    "NotificationStatusArgumentResolver",
    "NotificationSubject",
    "NotificationSubjectArgumentResolver",
    "RequestArgumentResolver",
    "SignatureVerifier",
    "create_notification_app",
    "notification_argument_resolvers",
    "notification_exception_handlers",
    "parse_envelope",
]
