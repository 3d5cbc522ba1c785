"""Unit tests for the LLM wrapper and the query parser."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from config import Settings
from providers.base import ProviderAuthError, ProviderError, ProviderResponseError, QueryParseError
from providers.llm import LLMClient, extract_json
from providers.parser import LLMQueryParser


def completion(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def sdk():
    return MagicMock()


@pytest.fixture
def llm(sdk):
    return LLMClient(sdk, "test-model")


class TestExtractJson:

    def test_plain_object(self):
        assert extract_json('{"a": 1}') == '{"a": 1}'

    def test_surrounding_prose_and_fences(self):
        text = 'Sure!\n```json\n{"a": {"b": 2}}\n```\nanything else'
        assert extract_json(text) == '{"a": {"b": 2}}'

    def test_trailing_commas_removed(self):
        assert extract_json('{"a": [1, 2,], "b": 3,}') == '{"a": [1, 2], "b": 3}'

    def test_no_object(self):
        assert extract_json("no json here") is None
        assert extract_json('{"unclosed": 1') is None


class TestLLMClient:

    def test_complete(self, llm, sdk):
        sdk.chat.completions.create.return_value = completion("hello")

        assert llm.complete("sys", "prompt") == "hello"

        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        assert "response_format" not in kwargs

    def test_complete_json(self, llm, sdk):
        sdk.chat.completions.create.return_value = completion('```json\n{"count": 5}\n```')

        assert llm.complete_json("sys", "prompt") == {"count": 5}
        assert sdk.chat.completions.create.call_args.kwargs["response_format"] == {"type": "json_object"}

    def test_sdk_error_wrapped(self, llm, sdk):
        sdk.chat.completions.create.side_effect = RuntimeError("rate limited")
        with pytest.raises(ProviderError):
            llm.complete("sys", "prompt")

    def test_empty_completion(self, llm, sdk):
        sdk.chat.completions.create.return_value = completion("")
        with pytest.raises(ProviderResponseError):
            llm.complete("sys", "prompt")

    def test_malformed_json(self, llm, sdk):
        sdk.chat.completions.create.return_value = completion('{"a": nope}')
        with pytest.raises(ProviderResponseError):
            llm.complete_json("sys", "prompt")

    def test_client_built_lazily(self, sdk):
        factory = MagicMock(return_value=sdk)
        sdk.chat.completions.create.return_value = completion("ok")
        llm = LLMClient(None, "m", factory=factory)

        factory.assert_not_called()
        llm.complete("s", "p")
        llm.complete("s", "p")

        factory.assert_called_once()

    def test_missing_credentials(self):
        llm = LLMClient(None, "m", factory=MagicMock(side_effect=RuntimeError("no api key")))
        with pytest.raises(ProviderAuthError):
            llm.complete("s", "p")

    def test_from_settings_defers_sdk(self):
        llm = LLMClient.from_settings(Settings(llm_provider="openai", llm_model="gpt-x"))
        assert llm.model == "gpt-x"
        assert llm._client is None


class FakeLLM:

    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.prompts = []

    def complete_json(self, system, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return dict(self.data)


class TestLLMQueryParser:

    def test_parses_structured_query(self):
        llm = FakeLLM({
            "count": 5, "role": "AI Engineer", "location": "Israel", "country_code": "il",
            "keywords": ["Python"], "google_query": 'site:linkedin.com/in "AI Engineer" "Israel" Python',
        })

        parsed = LLMQueryParser(llm).parse("5 AI Engineers in Israel with Python experience")

        assert parsed.count == 5
        assert parsed.country_code == "IL"
        assert parsed.keywords == ["Python"]
        assert '"5 AI Engineers in Israel with Python experience"' in llm.prompts[0]

    def test_nulls_use_defaults(self):
        parsed = LLMQueryParser(FakeLLM({
            "count": None, "role": "Java Developer", "location": "Google", "country_code": None,
            "keywords": None, "google_query": "site:linkedin.com/in Java",
        })).parse("Java developers at Google")

        assert parsed.count == 10
        assert parsed.country_code is None
        assert parsed.keywords == []

    def test_missing_google_query_is_built(self):
        parsed = LLMQueryParser(FakeLLM({
            "role": "Designer", "location": "Paris", "keywords": ["Figma"],
        })).parse("designers in paris")

        assert parsed.google_query == 'site:linkedin.com/in "Designer" "Paris" Figma'

    def test_llm_failure(self):
        with pytest.raises(QueryParseError):
            LLMQueryParser(FakeLLM(error=ProviderError("down"))).parse("designers")

    def test_invalid_fields(self):
        with pytest.raises(QueryParseError):
            LLMQueryParser(FakeLLM({"count": 500, "google_query": "q"})).parse("designers")
