"""
Tests for the AI gateway client and its error mapping.
"""
from unittest.mock import MagicMock

import pytest
import requests

from gateway_client import (
    ConfigurationError,
    GatewayClient,
    GatewayError,
    PaymentRequiredError,
    RateLimitError,
)
from tests.conftest import make_gateway_response

CONVERSATION = [
    {"role": "user", "content": "I have a headache"},
    {"role": "assistant", "content": "How long has it lasted?"},
    {"role": "user", "content": "Two days"},
]


class TestCompletionRequest:
    """Tests for the outbound request"""

    def test_returns_reply_text(self, gateway_client, http_session):
        http_session.post.return_value = make_gateway_response(content="Rest and hydrate.")

        assert gateway_client.complete("system", CONVERSATION) == "Rest and hydrate."

    def test_payload_has_system_turn_first_and_keeps_order(self, gateway_client, http_session):
        gateway_client.complete("Be helpful", CONVERSATION)

        _, kwargs = http_session.post.call_args
        payload = kwargs["json"]
        assert payload["messages"][0] == {"role": "system", "content": "Be helpful"}
        assert payload["messages"][1:] == CONVERSATION
        assert payload["model"] == "google/gemini-2.5-flash"
        assert payload["temperature"] == 0.7
        assert payload["max_tokens"] == 2000

    def test_bearer_credential_and_url(self, gateway_client, http_session):
        gateway_client.complete("system", CONVERSATION)

        args, kwargs = http_session.post.call_args
        assert args[0] == "https://ai.gateway.lovable.dev/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"
        assert kwargs["headers"]["Content-Type"] == "application/json"

    def test_caller_list_not_modified(self, gateway_client):
        conversation = list(CONVERSATION)
        gateway_client.complete("system", conversation)
        assert conversation == CONVERSATION


class TestGatewayErrors:
    """Tests for mapping gateway failures onto exceptions"""

    def test_missing_api_key_fails_before_network_call(self):
        session = MagicMock()
        client = GatewayClient(None, "https://gateway.test", "m", 0.7, 2000, session=session)

        with pytest.raises(ConfigurationError, match="AI_GATEWAY_API_KEY is not configured"):
            client.complete("system", CONVERSATION)

        session.post.assert_not_called()

    def test_rate_limit(self, gateway_client, http_session):
        http_session.post.return_value = make_gateway_response(429, text="slow down")

        with pytest.raises(RateLimitError) as exc_info:
            gateway_client.complete("system", CONVERSATION)

        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "Rate limit exceeded. Please try again later."

    def test_payment_required(self, gateway_client, http_session):
        http_session.post.return_value = make_gateway_response(402, text="no credits")

        with pytest.raises(PaymentRequiredError) as exc_info:
            gateway_client.complete("system", CONVERSATION)

        assert exc_info.value.status_code == 402
        assert "add credits" in exc_info.value.message

    @pytest.mark.parametrize("status_code", [400, 401, 404, 500, 503])
    def test_other_statuses_are_generic(self, gateway_client, http_session, status_code):
        http_session.post.return_value = make_gateway_response(status_code, text="boom")

        with pytest.raises(GatewayError) as exc_info:
            gateway_client.complete("system", CONVERSATION)

        assert type(exc_info.value) is GatewayError
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "AI gateway error"

    def test_invalid_json_body(self, gateway_client, http_session):
        response = make_gateway_response(200)
        response.json.side_effect = ValueError("Expecting value")
        http_session.post.return_value = response

        with pytest.raises(GatewayError, match="AI gateway error"):
            gateway_client.complete("system", CONVERSATION)

    @pytest.mark.parametrize("body", [
        {},
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": None}}]},
        ["not", "an", "object"],
    ])
    def test_malformed_body(self, gateway_client, http_session, body):
        http_session.post.return_value = make_gateway_response(200, body=body)

        with pytest.raises(GatewayError, match="AI gateway error"):
            gateway_client.complete("system", CONVERSATION)

    def test_transport_error(self, gateway_client, http_session):
        http_session.post.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(GatewayError, match="AI gateway error"):
            gateway_client.complete("system", CONVERSATION)
