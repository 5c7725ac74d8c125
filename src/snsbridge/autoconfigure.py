"""Wiring of SNS components from configuration properties."""

import logging
from contextlib import AsyncExitStack
from types import TracebackType
from typing import TYPE_CHECKING, Any

import aioboto3

from snsbridge.channel import TopicMessageChannel
from snsbridge.config import SnsProperties
from snsbridge.endpoint.resolvers import (
    ArgumentResolverComposite,
    notification_argument_resolvers,
)
from snsbridge.endpoint.routing import NotificationEndpoint, NotificationHandler
from snsbridge.endpoint.verification import DEFAULT_REGION, SignatureVerifier
from snsbridge.exceptions import ConfigurationError
from snsbridge.template import NotificationMessagingTemplate

if TYPE_CHECKING:
    from types_aiobotocore_sns import SNSClient

logger = logging.getLogger(__name__)


class SnsAutoConfiguration:
    """Builds SNS components from ``SnsProperties``.

    Opens one long-lived SNS client for the lifetime of the context. What is
    built depends on explicit flags rather than on what is importable:

    - ``enabled``: the SNS client and the outbound components.
    - ``verification``: a SignatureVerifier for the message resolver.
    - ``web_enabled``: the inbound argument resolvers.

    Example:
        async with SnsAutoConfiguration(SnsProperties.from_env()) as sns:
            channel = sns.topic_channel("arn:aws:sns:us-east-1:123:orders")
            endpoint = sns.notification_endpoint(notification=on_message)
    """

    def __init__(
        self,
        properties: SnsProperties | None = None,
        session: aioboto3.Session | None = None,
        *,
        sns_client: "SNSClient | Any" = None,
    ) -> None:
        """Initialize the configuration.

        Args:
            properties: Configuration properties. Uses defaults if not provided.
            session: aioboto3 session used to open the client. Built from the
                properties if not provided.
            sns_client: An already open SNS client to use instead of opening
                one. It is not closed on exit.
        """
        self._properties = properties or SnsProperties()
        self._session = session
        self._sns_client = sns_client
        self._owns_client = False
        self._verifier: SignatureVerifier | None = None
        self._exit_stack = AsyncExitStack()
        self._started = False

    @property
    def properties(self) -> SnsProperties:
        return self._properties

    @property
    def sns_client(self) -> "SNSClient | Any":
        if not self._properties.enabled:
            msg = "SNS support is disabled (cloud.aws.sns.enabled=false)"
            raise ConfigurationError(msg)
        if self._sns_client is None:
            msg = "SNS client is not open; use SnsAutoConfiguration as an async context manager"
            raise ConfigurationError(msg)
        return self._sns_client

    @property
    def signature_verifier(self) -> SignatureVerifier | None:
        return self._verifier

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        props = self._properties

        if props.enabled and self._sns_client is None:
            session = self._session or aioboto3.Session(**props.session_kwargs())
            self._sns_client = await self._exit_stack.enter_async_context(
                session.client("sns", **props.client_kwargs())
            )
            self._owns_client = True
            logger.info(
                "Opened SNS client (region=%s, endpoint=%s)",
                props.region or "default",
                props.endpoint or "default",
            )

        if props.verification:
            self._verifier = SignatureVerifier(region=self._verification_region())
            self._exit_stack.push_async_callback(self._verifier.close)

    def _verification_region(self) -> str:
        if self._properties.region:
            return self._properties.region
        meta = getattr(self._sns_client, "meta", None)
        return getattr(meta, "region_name", None) or DEFAULT_REGION

    async def close(self) -> None:
        await self._exit_stack.aclose()
        if self._owns_client:
            self._sns_client = None
            self._owns_client = False
        if self._started:
            logger.info("Closed SNS configuration")
        self._verifier = None
        self._started = False

    def argument_resolvers(self) -> ArgumentResolverComposite:
        """Notification argument resolvers for inbound requests."""
        if not self._properties.web_enabled:
            msg = "Notification argument resolvers are disabled (cloud.aws.sns.web-enabled=false)"
            raise ConfigurationError(msg)
        return notification_argument_resolvers(self.sns_client, self._verifier)

    def notification_endpoint(
        self,
        *,
        notification: NotificationHandler | None = None,
        subscribe: NotificationHandler | None = None,
        unsubscribe: NotificationHandler | None = None,
    ) -> NotificationEndpoint:
        return NotificationEndpoint(
            self.argument_resolvers(),
            notification=notification,
            subscribe=subscribe,
            unsubscribe=unsubscribe,
        )

    def topic_channel(self, topic_arn: str) -> TopicMessageChannel:
        return TopicMessageChannel(self.sns_client, topic_arn)

    def messaging_template(
        self,
        default_destination: str | None = None,
        *,
        auto_create: bool = False,
    ) -> NotificationMessagingTemplate:
        return NotificationMessagingTemplate(
            self.sns_client,
            default_destination,
            auto_create=auto_create,
        )

    async def __aenter__(self) -> "SnsAutoConfiguration":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
