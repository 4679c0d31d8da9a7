"""Tests for communication services."""

from __future__ import annotations

import base64

import pytest
from pydantic import ValidationError

from livechatkit.providers.base import MalformedPayloadError, verify_basic_auth
from livechatkit.providers.http import HTTPCommunicationService, HTTPServiceConfig
from livechatkit.providers.mock import MockCommunicationService
from livechatkit.providers.sms import (
    SMSCommunicationService,
    SMSServiceConfig,
    is_valid_phone,
    normalize_phone,
)

pytest.importorskip("phonenumbers")


def _basic(user: str, password: str) -> str:
    return "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()


class TestBasicAuth:
    def test_valid(self) -> None:
        assert verify_basic_auth(_basic("user", "pass"), "user", "pass") is True

    def test_scheme_case_insensitive(self) -> None:
        header = _basic("user", "pass").replace("Basic", "basic")
        assert verify_basic_auth(header, "user", "pass") is True

    def test_wrong_password(self) -> None:
        assert verify_basic_auth(_basic("user", "nope"), "user", "pass") is False

    def test_missing_or_garbage(self) -> None:
        assert verify_basic_auth(None, "user", "pass") is False
        assert verify_basic_auth("", "user", "pass") is False
        assert verify_basic_auth("Bearer abc", "user", "pass") is False
        assert verify_basic_auth("Basic !!!notbase64", "user", "pass") is False
        no_colon = "Basic " + base64.b64encode(b"userpass").decode()
        assert verify_basic_auth(no_colon, "user", "pass") is False

    def test_password_may_contain_colon(self) -> None:
        assert verify_basic_auth(_basic("user", "a:b"), "user", "a:b") is True


class TestMockService:
    def test_parse_and_record(self) -> None:
        service = MockCommunicationService()
        message = service.parse({"from": "x", "body": "hi"})
        assert message.sender == "x"
        assert service.parsed == [message]

    def test_token(self) -> None:
        service = MockCommunicationService(token="secret")
        assert service.verify_authentication("secret") is True
        assert service.verify_authentication(None) is False

    def test_malformed(self) -> None:
        with pytest.raises(MalformedPayloadError):
            MockCommunicationService().parse({"body": "hi"})


class TestHTTPService:
    def test_config_requires_both_credentials(self) -> None:
        with pytest.raises(ValidationError):
            HTTPServiceConfig(username="user")

    def test_open_when_unconfigured(self) -> None:
        service = HTTPCommunicationService()
        assert service.service_name == "http"
        assert service.verify_authentication(None) is True

    def test_basic_auth_when_configured(self) -> None:
        service = HTTPCommunicationService(
            HTTPServiceConfig(name="web", username="user", password="pass")
        )
        assert service.service_name == "web"
        assert service.verify_authentication(_basic("user", "pass")) is True
        assert service.verify_authentication(None) is False

    def test_parse(self) -> None:
        service = HTTPCommunicationService()
        message = service.parse(
            {"sender_id": "user-1", "body": "hello", "external_id": "e1", "metadata": {"a": 1}}
        )
        assert message.sender == "user-1"
        assert message.body == "hello"
        assert message.external_id == "e1"
        assert message.metadata == {"a": 1}
        assert service.room_type("user-1") == "webhook"

    @pytest.mark.parametrize(
        "payload",
        [
            {"body": "no sender"},
            {"from": "", "body": "empty sender"},
            {"from": "user-1"},
            {"from": "user-1", "body": "x", "metadata": ["not", "a", "dict"]},
        ],
    )
    def test_parse_malformed(self, payload: dict[str, object]) -> None:
        with pytest.raises(MalformedPayloadError):
            HTTPCommunicationService().parse(payload)

    def test_numeric_external_id_rejected(self) -> None:
        with pytest.raises(MalformedPayloadError):
            HTTPCommunicationService().parse({"from": "u1", "body": "hi", "external_id": 42})

    def test_non_object_body_rejected(self) -> None:
        with pytest.raises(MalformedPayloadError):
            HTTPCommunicationService().parse(["not", "an", "object"])  # type: ignore[arg-type]


class TestPhone:
    def test_normalize(self) -> None:
        assert normalize_phone("(650) 253-0000") == "+16502530000"
        assert normalize_phone("+1 650 253 0000") == "+16502530000"

    def test_invalid(self) -> None:
        assert is_valid_phone("12") is False
        with pytest.raises(ValueError):
            normalize_phone("not a number")


class TestSMSService:
    @pytest.fixture
    def service(self) -> SMSCommunicationService:
        return SMSCommunicationService(SMSServiceConfig(username="gw", password="s3cret"))

    def test_requires_auth(self, service: SMSCommunicationService) -> None:
        assert service.verify_authentication(None) is False
        assert service.verify_authentication(_basic("gw", "s3cret")) is True

    def test_parse_sms(self, service: SMSCommunicationService) -> None:
        message = service.parse(
            {"From": "(650) 253-0000", "Body": "hello", "MessageSid": "SM1", "To": "+15550001"}
        )
        assert message.sender == "+16502530000"
        assert message.body == "hello"
        assert message.external_id == "SM1"
        assert message.metadata == {"to": "+15550001"}
        assert service.room_type(message.sender) == "sms"

    def test_parse_whatsapp(self, service: SMSCommunicationService) -> None:
        message = service.parse({"From": "whatsapp:+16502530000", "Body": "hi"})
        assert message.sender == "whatsapp:+16502530000"
        assert service.room_type(message.sender) == "whatsapp"

    def test_parse_malformed(self, service: SMSCommunicationService) -> None:
        with pytest.raises(MalformedPayloadError):
            service.parse({"Body": "no sender"})
        with pytest.raises(MalformedPayloadError):
            service.parse({"From": "garbage", "Body": "x"})

    def test_numeric_message_sid_rejected(self, service: SMSCommunicationService) -> None:
        with pytest.raises(MalformedPayloadError):
            service.parse({"From": "+16502530000", "Body": "hi", "MessageSid": 42})

    def test_non_object_body_rejected(self, service: SMSCommunicationService) -> None:
        with pytest.raises(MalformedPayloadError):
            service.parse("From=+16502530000")  # type: ignore[arg-type]
