"""Configuration properties for SNS."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from snsbridge.exceptions import ConfigurationError

PROPERTY_PREFIX = "cloud.aws.sns"
ENV_PREFIX = "CLOUD_AWS_SNS_"

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


@dataclass(frozen=True)
class SnsProperties:
    """Configuration properties bound from ``cloud.aws.sns.*``.

    Read once at startup; instances are immutable.
    """

    verification: bool = True
    """Verify the signature of inbound notification messages."""

    enabled: bool = True
    """Create the SNS client at all."""

    web_enabled: bool = True
    """Register the inbound notification argument resolvers."""

    region: str | None = None
    """AWS region of the SNS client. Falls back to the SDK default chain."""

    endpoint: str | None = None
    """Endpoint override (e.g. a LocalStack URL)."""

    access_key: str | None = None
    """Static access key. Must be set together with ``secret_key``."""

    secret_key: str | None = None
    """Static secret key. Must be set together with ``access_key``."""

    profile_name: str | None = None
    """Named profile from the shared AWS config files."""

    def __post_init__(self) -> None:
        if bool(self.access_key) != bool(self.secret_key):
            msg = "access-key and secret-key must be configured together"
            raise ConfigurationError(msg)

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Any],
        prefix: str = PROPERTY_PREFIX,
    ) -> "SnsProperties":
        """Bind properties from a flat mapping of dotted keys.

        Keys may be kebab-case (``cloud.aws.sns.web-enabled``) or
        snake_case (``cloud.aws.sns.web_enabled``). Keys outside the
        prefix are ignored.
        """
        scope = f"{prefix}."
        values: dict[str, Any] = {}
        for key, value in mapping.items():
            if not key.startswith(scope):
                continue
            name = key[len(scope) :].replace("-", "_").lower()
            values[name] = value
        return cls._bind(values, source=prefix)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SnsProperties":
        """Bind properties from ``CLOUD_AWS_SNS_*`` environment variables."""
        environ = os.environ if environ is None else environ
        values = {
            key[len(ENV_PREFIX) :].lower(): value
            for key, value in environ.items()
            if key.startswith(ENV_PREFIX)
        }
        return cls._bind(values, source=ENV_PREFIX)

    @classmethod
    def _bind(cls, values: dict[str, Any], source: str) -> "SnsProperties":
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in values:
                continue
            raw = values[f.name]
            if f.type is bool or f.type == "bool":
                kwargs[f.name] = _to_bool(raw, f"{source} {f.name}")
            else:
                kwargs[f.name] = None if raw in (None, "") else str(raw)
        return cls(**kwargs)

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``Session.client("sns", ...)``."""
        kwargs: dict[str, Any] = {}
        if self.region:
            kwargs["region_name"] = self.region
        if self.endpoint:
            kwargs["endpoint_url"] = self.endpoint
        if self.access_key and self.secret_key:
            kwargs["aws_access_key_id"] = self.access_key
            kwargs["aws_secret_access_key"] = self.secret_key
        return kwargs

    def session_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``aioboto3.Session(...)``."""
        kwargs: dict[str, Any] = {}
        if self.profile_name:
            kwargs["profile_name"] = self.profile_name
        if self.region:
            kwargs["region_name"] = self.region
        return kwargs


def _to_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    msg = f"Invalid boolean for {name}: {value!r}"
    raise ConfigurationError(msg)
