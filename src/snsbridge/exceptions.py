"""Exception types raised by snsbridge."""


class SnsBridgeError(Exception):
    """Base class for all snsbridge errors."""


class ConfigurationError(SnsBridgeError):
    """Invalid or inconsistent configuration properties."""


class ArgumentResolutionError(SnsBridgeError):
    """A handler parameter could not be resolved from the inbound request."""


class NotificationParseError(ArgumentResolutionError):
    """The request body is not a valid SNS notification envelope."""


class SignatureVerificationError(SnsBridgeError):
    """The notification envelope signature could not be verified."""


class DestinationResolutionError(SnsBridgeError):
    """A topic name could not be resolved to a topic ARN."""
