"""Unit tests for OpenAIProvider using a stand-in SDK client."""

from types import SimpleNamespace

import pytest

from quote_pricing.domain.ai import GenerationOptions, LLMInvalidResponseError
from quote_pricing.infrastructure.ai import OpenAIProvider


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.requests = []

    def create(self, **request):
        self.requests.append(request)
        message = SimpleNamespace(content=self.content)
        usage = SimpleNamespace(prompt_tokens=120, completion_tokens=40)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


def _client(content):
    completions = FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class TestOpenAIProvider:
    """Request shape and response handling."""

    def test_returns_message_content(self):
        """The first choice's text is returned unchanged."""
        client, completions = _client('{"recommended_price": 1000}')
        provider = OpenAIProvider(model="gpt-4o-mini", timeout=12.0, client=client)

        text = provider.generate_response("price this")

        assert text == '{"recommended_price": 1000}'
        request = completions.requests[0]
        assert request["model"] == "gpt-4o-mini"
        assert request["messages"] == [{"role": "user", "content": "price this"}]
        assert request["timeout"] == 12.0

    def test_json_mode_requested(self):
        """JSON output options ask for a JSON object response."""
        client, completions = _client("{}")
        provider = OpenAIProvider(client=client)

        provider.generate_response("p", GenerationOptions(temperature=0.0, json_output=True))

        assert completions.requests[0]["response_format"] == {"type": "json_object"}
        assert completions.requests[0]["temperature"] == 0.0

    def test_plain_text_mode(self):
        """Without JSON output no response_format is sent."""
        client, completions = _client("ok")
        provider = OpenAIProvider(client=client)

        provider.generate_response("p", GenerationOptions(json_output=False))

        assert "response_format" not in completions.requests[0]

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_empty_content_rejected(self, content):
        """Blank completions raise LLMInvalidResponseError."""
        client, _ = _client(content)
        provider = OpenAIProvider(client=client)

        with pytest.raises(LLMInvalidResponseError):
            provider.generate_response("p")
