"""Starlette endpoint receiving SNS HTTP(S) deliveries."""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import BaseRoute, Route

from snsbridge.endpoint.envelope import MESSAGE_TYPE_HEADER, MessageType
from snsbridge.endpoint.resolvers import ArgumentResolverComposite, read_envelope
from snsbridge.exceptions import (
    ArgumentResolutionError,
    NotificationParseError,
    SignatureVerificationError,
)

logger = logging.getLogger(__name__)

NotificationHandler = Callable[..., Any]


class NotificationEndpoint:
    """Dispatches SNS deliveries on one path to per-type handlers.

    The ``x-amz-sns-message-type`` header (or the envelope ``Type`` when the
    header is absent) selects the handler. Handler arguments are resolved
    with the given resolvers. Every handled request answers 204.

    Example:
        endpoint = NotificationEndpoint(resolvers)

        @endpoint.notification
        async def on_message(
            message: Annotated[str, NotificationMessage()],
            subject: Annotated[str | None, NotificationSubject()],
        ) -> None:
            ...

        @endpoint.subscribe
        async def on_subscribe(status: NotificationStatus) -> None:
            await status.confirm_subscription()

        app = create_notification_app([endpoint.route("/topic")])
    """

    def __init__(
        self,
        resolvers: ArgumentResolverComposite,
        *,
        notification: NotificationHandler | None = None,
        subscribe: NotificationHandler | None = None,
        unsubscribe: NotificationHandler | None = None,
    ) -> None:
        self._resolvers = resolvers
        self._handlers: dict[MessageType, NotificationHandler] = {}
        if notification is not None:
            self.notification(notification)
        if subscribe is not None:
            self.subscribe(subscribe)
        if unsubscribe is not None:
            self.unsubscribe(unsubscribe)

    def notification(self, func: NotificationHandler) -> NotificationHandler:
        """Decorator to register the handler for notification messages."""
        self._handlers[MessageType.NOTIFICATION] = func
        return func

    def subscribe(self, func: NotificationHandler) -> NotificationHandler:
        """Decorator to register the handler for subscription confirmations."""
        self._handlers[MessageType.SUBSCRIPTION_CONFIRMATION] = func
        return func

    def unsubscribe(self, func: NotificationHandler) -> NotificationHandler:
        """Decorator to register the handler for unsubscribe confirmations."""
        self._handlers[MessageType.UNSUBSCRIBE_CONFIRMATION] = func
        return func

    async def _message_type(self, request: Request) -> MessageType:
        header = request.headers.get(MESSAGE_TYPE_HEADER)
        if header is None:
            return (await read_envelope(request)).type
        try:
            return MessageType(header)
        except ValueError as e:
            msg = f"Unknown {MESSAGE_TYPE_HEADER}: {header!r}"
            raise NotificationParseError(msg) from e

    async def handle(self, request: Request) -> Response:
        message_type = await self._message_type(request)
        handler = self._handlers.get(message_type)
        if handler is None:
            logger.debug("No handler for %s on %s", message_type.value, request.url.path)
            return Response(status_code=204)

        await self._resolvers.call(handler, request)
        return Response(status_code=204)

    def route(self, path: str) -> Route:
        """Starlette route serving this endpoint on ``path`` (POST only)."""
        return Route(path, self.handle, methods=["POST"])


async def _argument_resolution_error(request: Request, exc: Exception) -> Response:
    logger.warning("Rejected SNS request on %s: %s", request.url.path, exc)
    return PlainTextResponse(str(exc), status_code=400)


async def _signature_verification_error(request: Request, exc: Exception) -> Response:
    logger.warning("Rejected unverified SNS request on %s: %s", request.url.path, exc)
    return PlainTextResponse("Signature verification failed", status_code=403)


def notification_exception_handlers() -> dict[Any, Callable[..., Any]]:
    """Exception handlers mapping resolution errors to HTTP responses."""
    return {
        ArgumentResolutionError: _argument_resolution_error,
        SignatureVerificationError: _signature_verification_error,
    }


def create_notification_app(routes: Iterable[BaseRoute], debug: bool = False) -> Starlette:
    """Starlette app serving notification routes with error handlers."""
    return Starlette(
        debug=debug,
        routes=list(routes),
        exception_handlers=notification_exception_handlers(),
    )
