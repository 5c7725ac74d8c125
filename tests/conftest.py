"""Test fixtures for snsbridge."""

import base64
import os
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from typing import Any

import aioboto3
import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID

from snsbridge.endpoint.envelope import NotificationEnvelope
from snsbridge.endpoint.verification import SignatureVerifier, string_to_sign

try:
    import docker
    from testcontainers.localstack import LocalStackContainer

    TESTCONTAINERS_AVAILABLE = True
except ImportError:
    docker = None  # type: ignore[assignment]
    TESTCONTAINERS_AVAILABLE = False
    LocalStackContainer = None  # type: ignore[misc, assignment]

TOPIC_ARN = "arn:aws:sns:us-east-1:123456789012:my-topic"
CERT_URL = "https://sns.us-east-1.amazonaws.com/SimpleNotificationService-test.pem"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class StubSNSClient:
    """Records SNS calls instead of sending them."""

    def __init__(self, topic_arns: list[str] | None = None, page_size: int = 100) -> None:
        self.published: list[dict[str, Any]] = []
        self.confirmed: list[dict[str, Any]] = []
        self.created: list[str] = []
        self.list_calls = 0
        self.topic_arns = list(topic_arns or [])
        self.page_size = page_size

    async def publish(self, **kwargs: Any) -> dict[str, Any]:
        self.published.append(kwargs)
        return {"MessageId": f"message-{len(self.published)}"}

    async def confirm_subscription(self, **kwargs: Any) -> dict[str, Any]:
        self.confirmed.append(kwargs)
        return {"SubscriptionArn": f"{kwargs['TopicArn']}:subscription"}

    async def list_topics(self, **kwargs: Any) -> dict[str, Any]:
        self.list_calls += 1
        start = int(kwargs.get("NextToken", 0))
        page = self.topic_arns[start : start + self.page_size]
        response: dict[str, Any] = {"Topics": [{"TopicArn": arn} for arn in page]}
        if start + self.page_size < len(self.topic_arns):
            response["NextToken"] = str(start + self.page_size)
        return response

    async def create_topic(self, Name: str) -> dict[str, Any]:  # noqa: N803
        self.created.append(Name)
        return {"TopicArn": f"arn:aws:sns:us-east-1:123456789012:{Name}"}


@pytest.fixture
def sns_client() -> StubSNSClient:
    return StubSNSClient()


@pytest.fixture
def make_sns_client() -> Callable[..., StubSNSClient]:
    """Factory for stub clients with preset topics."""
    return StubSNSClient


@pytest.fixture
def make_envelope() -> Callable[..., dict[str, Any]]:
    """Factory for SNS HTTP(S) delivery bodies."""

    def factory(message_type: str = "Notification", **overrides: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "Type": message_type,
            "MessageId": "22b80b92-fdea-4c2c-8f9d-bdfb0c7bf324",
            "TopicArn": TOPIC_ARN,
            "Message": "Hello from SNS",
            "Timestamp": "2024-01-15T10:00:00.000Z",
            "SignatureVersion": "1",
            "Signature": "EXAMPLE",
            "SigningCertURL": CERT_URL,
        }
        if message_type == "Notification":
            body["Subject"] = "Greeting"
            body["UnsubscribeURL"] = (
                "https://sns.us-east-1.amazonaws.com/?Action=Unsubscribe"
                f"&SubscriptionArn={TOPIC_ARN}:sub"
            )
        else:
            body["Token"] = "confirmation-token"
            body["Message"] = f"You have chosen to subscribe to the topic {TOPIC_ARN}."
            body["SubscribeURL"] = (
                "https://sns.us-east-1.amazonaws.com/?Action=ConfirmSubscription"
                f"&TopicArn={TOPIC_ARN}&Token=confirmation-token"
            )
        body.update(overrides)
        return {k: v for k, v in body.items() if v is not None}

    return factory


class SigningIdentity:
    """A self-signed certificate standing in for the SNS signing certificate."""

    def __init__(self, common_name: str = "sns.amazonaws.com", expired: bool = False) -> None:
        self.key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        now = datetime.now(timezone.utc)
        if expired:
            not_before, not_after = now - timedelta(days=10), now - timedelta(days=1)
        else:
            not_before, not_after = now - timedelta(days=1), now + timedelta(days=1)
        self.certificate = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(self.key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .sign(self.key, hashes.SHA256())
        )
        self.pem = self.certificate.public_bytes(serialization.Encoding.PEM)

    def sign(self, body: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of the body with a valid Signature."""
        hash_cls = hashes.SHA256 if body.get("SignatureVersion") == "2" else hashes.SHA1
        envelope = NotificationEnvelope.model_validate(body)
        signature = self.key.sign(string_to_sign(envelope), padding.PKCS1v15(), hash_cls())
        return {**body, "Signature": base64.b64encode(signature).decode("ascii")}


@pytest.fixture(scope="session")
def signing_identity() -> SigningIdentity:
    return SigningIdentity()


@pytest.fixture
def make_signing_identity() -> Callable[..., SigningIdentity]:
    return SigningIdentity


@pytest.fixture
def certificate_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def verifier(
    signing_identity: SigningIdentity,
    certificate_requests: list[httpx.Request],
) -> SignatureVerifier:
    """Verifier whose certificate fetches are served from memory."""

    async def serve_certificate(request: httpx.Request) -> httpx.Response:
        certificate_requests.append(request)
        return httpx.Response(200, content=signing_identity.pem)

    client = httpx.AsyncClient(transport=httpx.MockTransport(serve_certificate))
    return SignatureVerifier(region="us-east-1", http_client=client)


def docker_available() -> bool:
    """Check if Docker is available."""
    if not TESTCONTAINERS_AVAILABLE or docker is None:
        return False
    try:
        client = docker.from_env()
        client.ping()
        return True
    except Exception:
        return False


@pytest.fixture(scope="session")
def localstack() -> Generator[Any, None, None]:
    """Start localstack container for the test session."""
    if not docker_available():
        pytest.skip("Docker not available")

    # Disable Ryuk for podman compatibility
    os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")

    container = LocalStackContainer(image="localstack/localstack:latest")
    container.with_services("sns", "sqs")
    with container:
        yield container


@pytest.fixture
def endpoint_url(localstack: Any) -> str:
    """Get the localstack endpoint URL."""
    return localstack.get_url()


@pytest.fixture
def session() -> aioboto3.Session:
    """Create an aioboto3 session."""
    return aioboto3.Session(
        aws_access_key_id="test",
        aws_secret_access_key="test",
        region_name="us-east-1",
    )
