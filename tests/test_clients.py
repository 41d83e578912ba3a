"""
Tests for classifier provider clients and provider selection.

HTTP is mocked at requests.post; no network access.
"""

from unittest.mock import patch

import pytest
import requests

from conftest import chat_completion, fake_response
from smartmark.config.exceptions import (
    AuthMissingError,
    ConfigurationError,
    MalformedResponseError,
    RateLimitedError,
    UpstreamError,
)
from smartmark.services.llm.azure_client import AzureClient
from smartmark.services.llm.chat_client import ChatCompletionsClient
from smartmark.services.llm.classifier_factory import build_classifier
from smartmark.services.llm.gemini_client import GeminiClient
from smartmark.services.llm.rate_limiter import RateLimiter

POST = "smartmark.services.llm.base_client.requests.post"


@pytest.fixture
def groq():
    return ChatCompletionsClient(
        "groq", "gsk-test", "https://api.groq.com/openai/v1/chat/completions", "llama-3.1-8b-instant"
    )


class TestChatCompletionsClient:

    def test_classify_parses_completion(self, groq, classification_json):
        response = fake_response(json_data=chat_completion(f"Here:\n{classification_json}"))
        with patch(POST, return_value=response) as mock_post:
            result = groq.classify("https://ml.dev", "ML Dev")

        assert result.category == "Technology"
        assert result.subcategory == "AI"
        assert result.is_fallback is False

        kwargs = mock_post.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer gsk-test"
        assert kwargs["json"]["model"] == "llama-3.1-8b-instant"
        assert kwargs["json"]["temperature"] == 0.3
        assert kwargs["json"]["max_tokens"] == 200
        assert kwargs["timeout"] == groq.timeout
        assert "https://ml.dev" in kwargs["json"]["messages"][-1]["content"]

    def test_unparseable_completion_is_fallback_not_error(self, groq):
        response = fake_response(json_data=chat_completion("I cannot help with that."))
        with patch(POST, return_value=response):
            result = groq.classify("https://x.io", "X")
        assert result.is_fallback is True
        assert result.description == "X"

    def test_empty_completion_is_fallback(self, groq):
        response = fake_response(json_data=chat_completion(""))
        with patch(POST, return_value=response):
            result = groq.classify("https://x.io", "X")
        assert result.is_fallback is True

    def test_401_is_auth_missing(self, groq):
        with patch(POST, return_value=fake_response(401, text="bad key")):
            with pytest.raises(AuthMissingError):
                groq.classify("https://x.io", "X")

    def test_429_is_rate_limited_with_retry_after(self, groq):
        response = fake_response(429, text="slow down", headers={"Retry-After": "7"})
        with patch(POST, return_value=response):
            with pytest.raises(RateLimitedError) as exc:
                groq.classify("https://x.io", "X")
        assert exc.value.retry_after == 7.0

    def test_500_is_upstream_error(self, groq):
        with patch(POST, return_value=fake_response(500, text="oops")):
            with pytest.raises(UpstreamError) as exc:
                groq.classify("https://x.io", "X")
        assert exc.value.status_code == 500

    def test_network_failure_is_upstream_error(self, groq):
        with patch(POST, side_effect=requests.ConnectionError("refused")):
            with pytest.raises(UpstreamError):
                groq.classify("https://x.io", "X")

    def test_non_json_body_is_malformed(self, groq):
        with patch(POST, return_value=fake_response(200, json_data=None, text="<html>")):
            with pytest.raises(MalformedResponseError):
                groq.classify("https://x.io", "X")

    def test_missing_choices_is_malformed(self, groq):
        with patch(POST, return_value=fake_response(json_data={"id": "x"})):
            with pytest.raises(MalformedResponseError):
                groq.classify("https://x.io", "X")

    @pytest.mark.parametrize(
        "body",
        [
            {"choices": [{"message": {"content": [{"type": "text", "text": "{}"}]}}]},
            {"choices": ["not an object"]},
            {"choices": [{"message": "plain string"}]},
            {"choices": [{"message": {"content": 42}}]},
        ],
    )
    def test_unexpected_envelope_shapes_are_malformed(self, groq, body):
        with patch(POST, return_value=fake_response(json_data=body)):
            with pytest.raises(MalformedResponseError):
                groq.classify("https://x.io", "X")

    def test_null_content_is_fallback(self, groq):
        with patch(POST, return_value=fake_response(json_data=chat_completion(None))):
            assert groq.classify("https://x.io", "X").is_fallback is True

    def test_from_env_requires_key(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        with pytest.raises(AuthMissingError):
            ChatCompletionsClient.from_env("groq")

    def test_from_env_model_override(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
        monkeypatch.setenv("OPENROUTER_MODEL", "some/model")
        client = ChatCompletionsClient.from_env("openrouter")
        assert client.model == "some/model"
        assert client.endpoint.startswith("https://openrouter.ai/")

    def test_from_env_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            ChatCompletionsClient.from_env("nope")


class TestGeminiClient:

    def test_classify(self, classification_json):
        limiter = RateLimiter(0)
        client = GeminiClient("g-key", rate_limiter=limiter)
        body = {"candidates": [{"content": {"parts": [{"text": classification_json}]}}]}
        with patch(POST, return_value=fake_response(json_data=body)) as mock_post:
            result = client.classify("https://ml.dev", "ML Dev")

        assert result.category == "Technology"
        kwargs = mock_post.call_args.kwargs
        assert kwargs["params"] == {"key": "g-key"}
        assert "contents" in kwargs["json"]
        assert mock_post.call_args.args[0].endswith("gemini-2.0-flash:generateContent")

    def test_default_rate_limiter_is_per_instance(self):
        a = GeminiClient("k")
        b = GeminiClient("k")
        assert a.rate_limiter is not b.rate_limiter
        assert a.rate_limiter.min_interval_ms == 2000

    def test_acquire_called_before_each_request(self, classification_json):
        calls = []

        class CountingLimiter(RateLimiter):
            def acquire(self):
                calls.append(1)
                return 0.0

        client = GeminiClient("k", rate_limiter=CountingLimiter(0))
        body = {"candidates": [{"content": {"parts": [{"text": classification_json}]}}]}
        with patch(POST, return_value=fake_response(json_data=body)):
            client.classify("https://a.io", "A")
            client.classify("https://b.io", "B")
        assert len(calls) == 2

    def test_no_candidates_key_is_malformed(self):
        client = GeminiClient("k", rate_limiter=RateLimiter(0))
        with patch(POST, return_value=fake_response(json_data={"promptFeedback": {}})):
            with pytest.raises(MalformedResponseError):
                client.classify("https://a.io", "A")

    @pytest.mark.parametrize(
        "body",
        [
            {"candidates": ["oops"]},
            {"candidates": [{"content": "text"}]},
            {"candidates": [{"content": {"parts": "text"}}]},
            {"candidates": [{"content": {"parts": ["text"]}}]},
            {"candidates": [{"content": {"parts": [{"text": ["a", "b"]}]}}]},
        ],
    )
    def test_unexpected_envelope_shapes_are_malformed(self, body):
        client = GeminiClient("k", rate_limiter=RateLimiter(0))
        with patch(POST, return_value=fake_response(json_data=body)):
            with pytest.raises(MalformedResponseError):
                client.classify("https://a.io", "A")

    def test_empty_candidates_is_fallback(self):
        client = GeminiClient("k", rate_limiter=RateLimiter(0))
        with patch(POST, return_value=fake_response(json_data={"candidates": []})):
            result = client.classify("https://a.io", "A")
        assert result.is_fallback is True


class TestAzureClient:

    def test_send_returns_message_and_usage(self, classification_json):
        client = AzureClient("az-key", "gpt4o", "https://res.openai.azure.com/", "2024-06-01")
        assert client.full_endpoint == (
            "https://res.openai.azure.com/openai/deployments/gpt4o/chat/completions"
            "?api-version=2024-06-01"
        )
        with patch(POST, return_value=fake_response(json_data=chat_completion(classification_json))) as mock_post:
            message, usage = client.send("prompt")
        assert message == classification_json
        assert usage["total_tokens"] == 70
        assert mock_post.call_args.kwargs["headers"]["api-key"] == "az-key"

    def test_list_content_is_malformed(self):
        client = AzureClient("az-key", "gpt4o", "https://res.openai.azure.com", "2024-06-01")
        body = {"choices": [{"message": {"content": [{"type": "text", "text": "hi"}]}}]}
        with patch(POST, return_value=fake_response(json_data=body)):
            with pytest.raises(MalformedResponseError):
                client.send("prompt")

    def test_from_env_incomplete_returns_none(self, monkeypatch):
        for var in ("AZURE_OPENAI_API_KEY", "AZURE_OPENAI_DEPLOYMENT",
                    "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_VERSION"):
            monkeypatch.delenv(var, raising=False)
        assert AzureClient.from_env() is None


class TestBuildClassifier:

    def test_default_is_groq(self, monkeypatch):
        monkeypatch.delenv("CLASSIFIER_PROVIDER", raising=False)
        monkeypatch.setenv("GROQ_API_KEY", "gsk")
        client = build_classifier()
        assert isinstance(client, ChatCompletionsClient)
        assert client.provider == "groq"

    def test_provider_from_env(self, monkeypatch):
        monkeypatch.setenv("CLASSIFIER_PROVIDER", "Gemini")
        monkeypatch.setenv("GEMINI_API_KEY", "g")
        assert isinstance(build_classifier(), GeminiClient)

    def test_explicit_provider_wins(self, monkeypatch):
        monkeypatch.setenv("CLASSIFIER_PROVIDER", "gemini")
        monkeypatch.setenv("DEEPSEEK_API_KEY", "d")
        client = build_classifier("deepseek")
        assert client.provider == "deepseek"

    def test_timeout_passed_through(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk")
        monkeypatch.setenv("GEMINI_API_KEY", "g")
        assert build_classifier("groq", timeout=5).timeout == 5
        assert build_classifier("gemini", timeout=5).timeout == 5

    def test_azure_missing_config(self, monkeypatch):
        monkeypatch.delenv("AZURE_OPENAI_API_KEY", raising=False)
        with pytest.raises(AuthMissingError):
            build_classifier("azure")

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            build_classifier("carrier-pigeon")
