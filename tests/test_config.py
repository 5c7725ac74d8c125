"""Tests for SnsProperties binding."""

import pytest

from snsbridge.config import SnsProperties
from snsbridge.exceptions import ConfigurationError


class TestDefaults:
    def test_all_features_enabled(self) -> None:
        props = SnsProperties()
        assert props.verification is True
        assert props.enabled is True
        assert props.web_enabled is True

    def test_no_client_overrides(self) -> None:
        props = SnsProperties()
        assert props.client_kwargs() == {}
        assert props.session_kwargs() == {}


class TestFromMapping:
    def test_kebab_case_keys(self) -> None:
        props = SnsProperties.from_mapping(
            {
                "cloud.aws.sns.verification": "false",
                "cloud.aws.sns.web-enabled": "no",
                "cloud.aws.sns.region": "eu-west-1",
            }
        )
        assert props.verification is False
        assert props.web_enabled is False
        assert props.enabled is True
        assert props.region == "eu-west-1"

    def test_snake_case_keys(self) -> None:
        props = SnsProperties.from_mapping({"cloud.aws.sns.web_enabled": False})
        assert props.web_enabled is False

    def test_ignores_keys_outside_prefix(self) -> None:
        props = SnsProperties.from_mapping(
            {"cloud.aws.sqs.enabled": "false", "cloud.aws.sns.enabled": "true"}
        )
        assert props.enabled is True

    def test_custom_prefix(self) -> None:
        props = SnsProperties.from_mapping({"app.sns.enabled": "off"}, prefix="app.sns")
        assert props.enabled is False

    @pytest.mark.parametrize("raw", ["true", "TRUE", "1", "yes", "on", " True "])
    def test_truthy_values(self, raw: str) -> None:
        assert SnsProperties.from_mapping({"cloud.aws.sns.enabled": raw}).enabled is True

    @pytest.mark.parametrize("raw", ["false", "0", "no", "off"])
    def test_falsy_values(self, raw: str) -> None:
        assert SnsProperties.from_mapping({"cloud.aws.sns.enabled": raw}).enabled is False

    def test_invalid_boolean_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid boolean"):
            SnsProperties.from_mapping({"cloud.aws.sns.verification": "maybe"})

    def test_empty_string_is_unset(self) -> None:
        props = SnsProperties.from_mapping({"cloud.aws.sns.endpoint": ""})
        assert props.endpoint is None


class TestFromEnv:
    def test_reads_prefixed_variables(self) -> None:
        props = SnsProperties.from_env(
            {
                "CLOUD_AWS_SNS_ENABLED": "false",
                "CLOUD_AWS_SNS_WEB_ENABLED": "0",
                "CLOUD_AWS_SNS_ENDPOINT": "http://localhost:4566",
                "AWS_REGION": "us-west-2",
            }
        )
        assert props.enabled is False
        assert props.web_enabled is False
        assert props.endpoint == "http://localhost:4566"
        assert props.region is None

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLOUD_AWS_SNS_VERIFICATION", "off")
        assert SnsProperties.from_env().verification is False


class TestCredentials:
    def test_keys_must_be_paired(self) -> None:
        with pytest.raises(ConfigurationError, match="together"):
            SnsProperties(access_key="AKIA")

    def test_client_kwargs(self) -> None:
        props = SnsProperties(
            region="eu-central-1",
            endpoint="http://localhost:4566",
            access_key="test",
            secret_key="secret",
        )
        assert props.client_kwargs() == {
            "region_name": "eu-central-1",
            "endpoint_url": "http://localhost:4566",
            "aws_access_key_id": "test",
            "aws_secret_access_key": "secret",
        }

    def test_session_kwargs(self) -> None:
        props = SnsProperties(profile_name="dev", region="eu-central-1")
        assert props.session_kwargs() == {"profile_name": "dev", "region_name": "eu-central-1"}
