"""Signature verification of inbound SNS notification envelopes.

SNS signs every HTTP(S) delivery with the private key of a certificate
served from ``sns.<region>.amazonaws.com``. Verification rebuilds the
canonical string to sign from the envelope fields and checks the
signature against that certificate's public key.
"""

import base64
import binascii
import logging
from datetime import datetime, timezone
from types import TracebackType
from urllib.parse import urlparse

import httpx
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from cryptography.x509.oid import NameOID

from snsbridge.endpoint.envelope import MessageType, NotificationEnvelope
from snsbridge.exceptions import SignatureVerificationError

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
SNS_CERTIFICATE_COMMON_NAME = "sns.amazonaws.com"
DEFAULT_FETCH_TIMEOUT_S = 10.0

_NOTIFICATION_FIELDS = ("Message", "MessageId", "Subject", "Timestamp", "TopicArn", "Type")
_CONFIRMATION_FIELDS = (
    "Message",
    "MessageId",
    "SubscribeURL",
    "Timestamp",
    "Token",
    "TopicArn",
    "Type",
)
_OPTIONAL_FIELDS = frozenset({"Subject"})

_SIGNATURE_HASHES = {
    "1": hashes.SHA1,
    "2": hashes.SHA256,
}


def string_to_sign(envelope: NotificationEnvelope) -> bytes:
    """Build the canonical string SNS signs for this envelope."""
    values = envelope.model_dump(by_alias=True, mode="json")
    names = (
        _NOTIFICATION_FIELDS
        if envelope.type is MessageType.NOTIFICATION
        else _CONFIRMATION_FIELDS
    )
    parts: list[str] = []
    for name in names:
        value = values.get(name)
        if value is None:
            if name in _OPTIONAL_FIELDS:
                continue
            msg = f"Notification envelope is missing signed field '{name}'"
            raise SignatureVerificationError(msg)
        parts.append(f"{name}\n{value}\n")
    return "".join(parts).encode("utf-8")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_current(certificate: x509.Certificate) -> bool:
    return certificate.not_valid_before_utc <= _utcnow() <= certificate.not_valid_after_utc


def expected_certificate_host(region: str) -> str:
    suffix = ".amazonaws.com.cn" if region.startswith("cn-") else ".amazonaws.com"
    return f"sns.{region}{suffix}"


class SignatureVerifier:
    """Verifies SNS envelope signatures for a single region.

    Signing certificates are fetched over HTTPS and cached by URL.

    Example:
        async with SignatureVerifier(region="eu-west-1") as verifier:
            await verifier.verify(envelope)
    """

    def __init__(
        self,
        region: str = DEFAULT_REGION,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
    ) -> None:
        self._region = region
        self._client = http_client
        self._owns_client = http_client is None
        self._timeout_s = timeout_s
        self._certificates: dict[str, x509.Certificate] = {}

    @property
    def region(self) -> str:
        return self._region

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s)
        return self._client

    async def verify(self, envelope: NotificationEnvelope) -> None:
        """Verify the envelope signature.

        Raises SignatureVerificationError if the signature is missing,
        malformed or does not match.
        """
        hash_cls = _SIGNATURE_HASHES.get(envelope.signature_version or "")
        if hash_cls is None:
            msg = f"Unsupported SignatureVersion: {envelope.signature_version!r}"
            raise SignatureVerificationError(msg)
        if not envelope.signature or not envelope.signing_cert_url:
            msg = "Notification envelope is not signed"
            raise SignatureVerificationError(msg)

        try:
            signature = base64.b64decode(envelope.signature, validate=True)
        except (binascii.Error, ValueError) as e:
            msg = "Notification signature is not valid base64"
            raise SignatureVerificationError(msg) from e

        certificate = await self.get_certificate(envelope.signing_cert_url)
        public_key = certificate.public_key()
        if not isinstance(public_key, RSAPublicKey):
            msg = "SNS signing certificate does not hold an RSA key"
            raise SignatureVerificationError(msg)

        try:
            public_key.verify(
                signature,
                string_to_sign(envelope),
                padding.PKCS1v15(),
                hash_cls(),
            )
        except InvalidSignature as e:
            msg = f"Invalid signature for message {envelope.message_id}"
            raise SignatureVerificationError(msg) from e

    async def get_certificate(self, url: str) -> x509.Certificate:
        """Fetch, validate and cache the signing certificate at ``url``."""
        self.validate_certificate_url(url)
        cached = self._certificates.get(url)
        if cached is not None:
            if _is_current(cached):
                return cached
            # expired while cached; fetch it again
            del self._certificates[url]

        client = await self._get_client()
        logger.debug("Fetching SNS signing certificate from %s", url)
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            msg = f"Could not fetch SNS signing certificate from {url}: {e}"
            raise SignatureVerificationError(msg) from e

        try:
            certificate = x509.load_pem_x509_certificate(response.content)
        except ValueError as e:
            msg = f"Invalid SNS signing certificate at {url}"
            raise SignatureVerificationError(msg) from e

        self.validate_certificate(certificate)
        self._certificates[url] = certificate
        return certificate

    def validate_certificate_url(self, url: str) -> None:
        parsed = urlparse(url)
        expected_host = expected_certificate_host(self._region)
        if parsed.scheme != "https":
            msg = f"SigningCertURL must use https: {url}"
            raise SignatureVerificationError(msg)
        if parsed.hostname != expected_host:
            msg = f"SigningCertURL host {parsed.hostname!r} does not match {expected_host!r}"
            raise SignatureVerificationError(msg)
        if not parsed.path.endswith(".pem"):
            msg = f"SigningCertURL does not reference a PEM file: {url}"
            raise SignatureVerificationError(msg)

    def validate_certificate(self, certificate: x509.Certificate) -> None:
        if not _is_current(certificate):
            msg = "SNS signing certificate is expired or not yet valid"
            raise SignatureVerificationError(msg)

        names = certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
        if not any(attr.value == SNS_CERTIFICATE_COMMON_NAME for attr in names):
            msg = f"SNS signing certificate is not issued to {SNS_CERTIFICATE_COMMON_NAME}"
            raise SignatureVerificationError(msg)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SignatureVerifier":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
