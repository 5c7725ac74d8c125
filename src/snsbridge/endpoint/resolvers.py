"""Handler argument resolution for inbound SNS requests.

Handler functions declare what they need from the notification through
their signature:

    async def on_notification(
        message: Annotated[Order, NotificationMessage()],
        subject: Annotated[str | None, NotificationSubject()],
    ) -> None: ...

    async def on_subscribe(status: NotificationStatus) -> None:
        await status.confirm_subscription()

Each parameter is claimed by the first resolver (in registration order)
that supports it. A parameter no resolver claims is an error.
"""

import functools
import inspect
import types
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    Protocol,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from pydantic import BaseModel, TypeAdapter, ValidationError
from starlette.requests import Request

from snsbridge.endpoint.envelope import NotificationEnvelope, parse_envelope
from snsbridge.endpoint.verification import SignatureVerifier
from snsbridge.exceptions import ArgumentResolutionError

if TYPE_CHECKING:
    from types_aiobotocore_sns import SNSClient

T = TypeVar("T")

_ENVELOPE_STATE = "sns_envelope"
_VERIFIED_STATE = "sns_envelope_verified"


@dataclass(frozen=True)
class NotificationMessage:
    """Marks a parameter that receives the notification ``Message``."""


@dataclass(frozen=True)
class NotificationSubject:
    """Marks a parameter that receives the notification ``Subject``."""


class NotificationStatus:
    """Subscription or unsubscribe confirmation of an SNS topic."""

    def __init__(
        self,
        sns_client: "SNSClient | Any",
        topic_arn: str | None,
        token: str | None,
        subscribe_url: str | None = None,
    ) -> None:
        self._sns_client = sns_client
        self.topic_arn = topic_arn
        self.token = token
        self.subscribe_url = subscribe_url

    async def confirm_subscription(self) -> None:
        """Confirm the subscription through the SNS ConfirmSubscription API."""
        await self._sns_client.confirm_subscription(TopicArn=self.topic_arn, Token=self.token)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(topic_arn={self.topic_arn!r})"


@dataclass(frozen=True)
class MethodParameter:
    """A handler parameter with its declared type and markers."""

    name: str
    annotation: Any
    markers: tuple[Any, ...] = ()

    def has_marker(self, marker_type: type) -> bool:
        return any(isinstance(m, marker_type) for m in self.markers)

    def is_type(self, cls: type) -> bool:
        return inspect.isclass(self.annotation) and issubclass(self.annotation, cls)


@functools.cache
def method_parameters(func: Callable[..., Any]) -> tuple[MethodParameter, ...]:
    """Inspect a handler signature into MethodParameters.

    Markers come from ``Annotated`` metadata or from a marker used as the
    parameter default.
    """
    try:
        hints = get_type_hints(func, include_extras=True)
    except NameError:
        hints = {}

    params: list[MethodParameter] = []
    for name, param in inspect.signature(func).parameters.items():
        annotation = hints.get(name, param.annotation)
        markers: tuple[Any, ...] = ()
        if get_origin(annotation) is Annotated:
            annotation, *metadata = get_args(annotation)
            markers = tuple(metadata)
        if isinstance(param.default, (NotificationMessage, NotificationSubject)):
            markers = (*markers, param.default)
        params.append(MethodParameter(name=name, annotation=annotation, markers=markers))
    return tuple(params)


async def read_envelope(request: Request) -> NotificationEnvelope:
    """Parse the request body once and cache the envelope on the request."""
    envelope = getattr(request.state, _ENVELOPE_STATE, None)
    if envelope is None:
        envelope = parse_envelope(await request.body())
        setattr(request.state, _ENVELOPE_STATE, envelope)
    return envelope


class ArgumentResolver(Protocol):
    """Resolves one kind of handler parameter from an inbound request."""

    def supports_parameter(self, parameter: MethodParameter) -> bool: ...

    async def resolve_argument(self, parameter: MethodParameter, request: Request) -> Any: ...


class NotificationStatusArgumentResolver:
    """Resolves ``NotificationStatus`` parameters on (un)subscribe requests."""

    def __init__(self, sns_client: "SNSClient | Any") -> None:
        if sns_client is None:
            msg = "SNS client must not be None"
            raise ValueError(msg)
        self._sns_client = sns_client

    def supports_parameter(self, parameter: MethodParameter) -> bool:
        return parameter.is_type(NotificationStatus)

    async def resolve_argument(self, parameter: MethodParameter, request: Request) -> Any:
        envelope = await read_envelope(request)
        if not envelope.is_subscription_status:
            msg = "NotificationStatus is only available for subscription and unsubscription requests"
            raise ArgumentResolutionError(msg)
        return NotificationStatus(
            self._sns_client,
            topic_arn=envelope.topic_arn,
            token=envelope.token,
            subscribe_url=envelope.subscribe_url,
        )


class NotificationMessageArgumentResolver:
    """Resolves ``NotificationMessage`` parameters from the ``Message`` field.

    The message is converted to the declared parameter type: text as-is,
    ``bytes`` UTF-8 encoded, pydantic models and other types parsed from
    JSON. When a verifier is given, the envelope signature is checked first.
    """

    def __init__(self, verifier: SignatureVerifier | None = None) -> None:
        self._verifier = verifier

    @property
    def verifier(self) -> SignatureVerifier | None:
        return self._verifier

    def supports_parameter(self, parameter: MethodParameter) -> bool:
        return parameter.has_marker(NotificationMessage)

    async def resolve_argument(self, parameter: MethodParameter, request: Request) -> Any:
        envelope = await read_envelope(request)
        if not envelope.is_notification:
            msg = (
                f"Parameter '{parameter.name}' is a notification message, which is "
                "only available for requests that receive a notification message"
            )
            raise ArgumentResolutionError(msg)

        if self._verifier is not None and not getattr(request.state, _VERIFIED_STATE, False):
            await self._verifier.verify(envelope)
            setattr(request.state, _VERIFIED_STATE, True)

        if envelope.message is None:
            msg = f"Notification {envelope.message_id} has no Message"
            raise ArgumentResolutionError(msg)
        return convert_message(envelope.message, parameter)


class NotificationSubjectArgumentResolver:
    """Resolves ``NotificationSubject`` parameters from the ``Subject`` field."""

    def supports_parameter(self, parameter: MethodParameter) -> bool:
        return parameter.has_marker(NotificationSubject)

    async def resolve_argument(self, parameter: MethodParameter, request: Request) -> Any:
        envelope = await read_envelope(request)
        if not envelope.is_notification:
            msg = (
                f"Parameter '{parameter.name}' is a notification subject, which is "
                "only available for requests that receive a notification message"
            )
            raise ArgumentResolutionError(msg)
        return envelope.subject


class RequestArgumentResolver:
    """Passes the Starlette ``Request`` through to the handler."""

    def supports_parameter(self, parameter: MethodParameter) -> bool:
        return parameter.is_type(Request)

    async def resolve_argument(self, parameter: MethodParameter, request: Request) -> Any:
        return request


def _unwrap_optional(annotation: Any) -> Any:
    if get_origin(annotation) in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def convert_message(message: str, parameter: MethodParameter) -> Any:
    """Convert the notification message text to the parameter's type."""
    target = _unwrap_optional(parameter.annotation)
    if target in (inspect.Parameter.empty, Any, str):
        return message
    if target is bytes:
        return message.encode("utf-8")
    try:
        if inspect.isclass(target) and issubclass(target, BaseModel):
            return target.model_validate_json(message)
        return TypeAdapter(target).validate_json(message)
    except ValidationError as e:
        msg = f"Cannot convert notification message to {target!r} for '{parameter.name}': {e}"
        raise ArgumentResolutionError(msg) from e


class ArgumentResolverComposite:
    """Ordered list of resolvers; the first supporting resolver wins."""

    def __init__(self, resolvers: Iterable[ArgumentResolver] = ()) -> None:
        self._resolvers: list[ArgumentResolver] = list(resolvers)

    @property
    def resolvers(self) -> tuple[ArgumentResolver, ...]:
        return tuple(self._resolvers)

    def add_resolver(self, resolver: ArgumentResolver) -> "ArgumentResolverComposite":
        self._resolvers.append(resolver)
        return self

    def get_resolver(self, parameter: MethodParameter) -> ArgumentResolver | None:
        for candidate in self._resolvers:
            if candidate.supports_parameter(parameter):
                return candidate
        return None

    def supports_parameter(self, parameter: MethodParameter) -> bool:
        return self.get_resolver(parameter) is not None

    async def resolve_argument(self, parameter: MethodParameter, request: Request) -> Any:
        resolver = self.get_resolver(parameter)
        if resolver is None:
            msg = (
                f"Unsupported parameter '{parameter.name}' ({parameter.annotation!r}); "
                "no argument resolver supports it"
            )
            raise ArgumentResolutionError(msg)
        return await resolver.resolve_argument(parameter, request)

    async def resolve_arguments(
        self,
        func: Callable[..., Any],
        request: Request,
    ) -> dict[str, Any]:
        """Resolve every parameter of ``func`` from the request."""
        return {
            parameter.name: await self.resolve_argument(parameter, request)
            for parameter in method_parameters(func)
        }

    async def call(self, func: Callable[..., T | Awaitable[T]], request: Request) -> T:
        """Call ``func`` with resolved arguments, awaiting it if needed."""
        resolved = await self.resolve_arguments(func, request)
        result = func(**resolved)

        if inspect.isawaitable(result):
            return await result  # type: ignore[return-value]

        return result  # type: ignore[return-value]


def notification_argument_resolvers(
    sns_client: "SNSClient | Any",
    verifier: SignatureVerifier | None = None,
) -> ArgumentResolverComposite:
    """Build the notification resolvers in their fixed priority order.

    Without a verifier the message resolver still works, without checking
    signatures.
    """
    return ArgumentResolverComposite(
        [
            NotificationStatusArgumentResolver(sns_client),
            NotificationMessageArgumentResolver(verifier),
            NotificationSubjectArgumentResolver(),
            RequestArgumentResolver(),
        ]
    )
