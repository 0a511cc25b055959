import unittest
from types import SimpleNamespace
from unittest import mock

import httpx
import pytest
import requests
from openai import APIError

from nl2cypher.pipeline import llm_client
from nl2cypher.pipeline.llm_client import (
    BACKEND_SPECS,
    Backend,
    GenerationFailed,
    backend_status,
    generate_text,
    reset_usage_log,
    usage_totals,
)

KEY = "sk-test-123456"


def _response(status_code=200, payload=None, json_error=False):
    response = mock.Mock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    return response


def _chat_response(content, usage=None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=usage,
    )


class GeminiTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_usage_log()

    @mock.patch("nl2cypher.pipeline.llm_client.requests.post")
    def test_unwraps_candidate_text_and_records_usage(self, post):
        post.return_value = _response(
            payload={
                "candidates": [{"content": {"parts": [{"text": "MATCH (m:Movie) RETURN m"}]}}],
                "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5, "totalTokenCount": 15},
            }
        )
        text = generate_text(Backend.GEMINI, "system", "user", api_key=KEY, model="gemini-test", timeout=12)

        self.assertEqual(text, "MATCH (m:Movie) RETURN m")
        url = post.call_args.args[0]
        self.assertTrue(url.endswith(f"/gemini-test:generateContent?key={KEY}"))
        body = post.call_args.kwargs["json"]
        self.assertEqual(body["contents"][0]["parts"][0]["text"], "system\n\nuser")
        self.assertIn("topK", body["generationConfig"])
        self.assertEqual(post.call_args.kwargs["timeout"], 12)
        self.assertEqual(usage_totals(), {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15})

    @mock.patch("nl2cypher.pipeline.llm_client.requests.post")
    def test_non_2xx_is_generation_failure(self, post):
        post.return_value = _response(status_code=429, payload={"error": "quota"})

        with self.assertRaises(GenerationFailed) as ctx:
            generate_text(Backend.GEMINI, "s", "u", api_key=KEY)
        self.assertIn("HTTP 429", str(ctx.exception))
        self.assertIs(ctx.exception.backend, Backend.GEMINI)

    @mock.patch("nl2cypher.pipeline.llm_client.requests.post")
    def test_missing_field_path_is_generation_failure(self, post):
        post.return_value = _response(payload={"candidates": []})

        with self.assertRaises(GenerationFailed) as ctx:
            generate_text(Backend.GEMINI, "s", "u", api_key=KEY)
        self.assertIn("candidates.0.content.parts.0.text", str(ctx.exception))

    @mock.patch("nl2cypher.pipeline.llm_client.requests.post")
    def test_body_that_is_not_json_is_generation_failure(self, post):
        post.return_value = _response(json_error=True)

        with self.assertRaises(GenerationFailed):
            generate_text(Backend.GEMINI, "s", "u", api_key=KEY)

    @mock.patch("nl2cypher.pipeline.llm_client.requests.post")
    def test_transport_error_redacts_key(self, post):
        post.side_effect = requests.exceptions.ConnectionError(
            f"failed to reach https://example.test/models/x:generateContent?key={KEY}"
        )

        with self.assertRaises(GenerationFailed) as ctx:
            generate_text(Backend.GEMINI, "s", "u", api_key=KEY)
        self.assertNotIn(KEY, str(ctx.exception))
        self.assertIn("***", str(ctx.exception))

    @mock.patch("nl2cypher.pipeline.llm_client.requests.post")
    def test_timeout_is_generation_failure(self, post):
        post.side_effect = requests.exceptions.Timeout("read timed out")

        with self.assertRaises(GenerationFailed):
            generate_text(Backend.GEMINI, "s", "u", api_key=KEY, timeout=0.01)


class AnthropicTests(unittest.TestCase):
    @mock.patch("nl2cypher.pipeline.llm_client.requests.post")
    def test_sends_version_header_and_unwraps_content(self, post):
        post.return_value = _response(
            payload={"content": [{"type": "text", "text": "MATCH (p:Person) RETURN p.name"}], "usage": {}}
        )
        text = generate_text("anthropic", "system", "user", api_key=KEY)

        self.assertEqual(text, "MATCH (p:Person) RETURN p.name")
        self.assertTrue(post.call_args.args[0].endswith("/messages"))
        headers = post.call_args.kwargs["headers"]
        self.assertEqual(headers["x-api-key"], KEY)
        self.assertIn("anthropic-version", headers)
        body = post.call_args.kwargs["json"]
        self.assertEqual(body["messages"], [{"role": "user", "content": "system\n\nuser"}])
        self.assertEqual(body["model"], BACKEND_SPECS[Backend.ANTHROPIC].model)

    @mock.patch("nl2cypher.pipeline.llm_client.requests.post")
    def test_empty_text_is_generation_failure(self, post):
        post.return_value = _response(payload={"content": [{"text": "   "}]})

        with self.assertRaises(GenerationFailed):
            generate_text(Backend.ANTHROPIC, "s", "u", api_key=KEY)


class OpenAICompatibleTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_usage_log()

    def _patched_client(self, create):
        client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
        return mock.patch.object(llm_client, "_client", return_value=client)

    def test_openai_unwraps_first_choice(self):
        create = mock.Mock(
            return_value=_chat_response(
                "MATCH (n:Person) RETURN n", SimpleNamespace(prompt_tokens=3, completion_tokens=4, total_tokens=7)
            )
        )
        with self._patched_client(create) as factory:
            text = generate_text(Backend.OPENAI, "system", "user", api_key=KEY)

        self.assertEqual(text, "MATCH (n:Person) RETURN n")
        factory.assert_called_once_with(Backend.OPENAI, KEY, mock.ANY)
        params = create.call_args.kwargs
        self.assertEqual(params["messages"][0], {"role": "system", "content": "system"})
        self.assertNotIn("top_p", params)
        self.assertEqual(usage_totals()["total_tokens"], 7)

    def test_groq_sends_top_p(self):
        create = mock.Mock(return_value=_chat_response("RETURN 1"))
        with self._patched_client(create):
            generate_text(Backend.GROQ, "s", "u", api_key=KEY)

        self.assertIn("top_p", create.call_args.kwargs)
        self.assertEqual(create.call_args.kwargs["model"], BACKEND_SPECS[Backend.GROQ].model)

    def test_sdk_error_is_generation_failure_and_redacted(self):
        error = APIError(f"invalid key {KEY}", httpx.Request("POST", "https://api.test/v1/chat"), body=None)
        create = mock.Mock(side_effect=error)
        with self._patched_client(create):
            with self.assertRaises(GenerationFailed) as ctx:
                generate_text(Backend.OPENAI, "s", "u", api_key=KEY)
        self.assertNotIn(KEY, str(ctx.exception))

    def test_missing_choices_is_generation_failure(self):
        create = mock.Mock(return_value=SimpleNamespace(choices=[], usage=None))
        with self._patched_client(create):
            with self.assertRaises(GenerationFailed):
                generate_text(Backend.OPENAI, "s", "u", api_key=KEY)

    def test_client_is_built_without_retries(self):
        with mock.patch.object(llm_client, "OpenAI") as factory:
            llm_client._client_cache.clear()
            llm_client._client(Backend.GROQ, KEY, 5.0)
            llm_client._client(Backend.GROQ, KEY, 5.0)
        llm_client._client_cache.clear()

        factory.assert_called_once()
        self.assertEqual(factory.call_args.kwargs["max_retries"], 0)
        self.assertEqual(factory.call_args.kwargs["base_url"], BACKEND_SPECS[Backend.GROQ].base_url)


def test_missing_api_key_fails_before_network(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    with mock.patch("nl2cypher.pipeline.llm_client.requests.post") as post:
        with pytest.raises(GenerationFailed, match="API key is not configured"):
            generate_text(Backend.GEMINI, "s", "u")
    post.assert_not_called()


def test_per_backend_key_wins_over_shared_key(monkeypatch):
    monkeypatch.setenv("LLM_API_KEY", "shared")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "specific")
    with mock.patch("nl2cypher.pipeline.llm_client.requests.post") as post:
        post.return_value = _response(payload={"content": [{"text": "RETURN 1"}]})
        generate_text(Backend.ANTHROPIC, "s", "u")

    assert post.call_args.kwargs["headers"]["x-api-key"] == "specific"


def test_unknown_provider_is_a_configuration_error():
    with pytest.raises(ValueError, match="Unsupported LLM provider"):
        Backend.parse("mistral")


def test_parse_is_case_insensitive():
    assert Backend.parse(" Groq ") is Backend.GROQ


def test_backend_status_reports_configuration(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "k")
    status = backend_status("groq")

    assert status == {
        "provider": "groq",
        "model": BACKEND_SPECS[Backend.GROQ].model,
        "api_key_configured": True,
        "base_url": BACKEND_SPECS[Backend.GROQ].base_url,
    }


def test_backend_status_without_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("LLM_API_KEY", raising=False)

    assert backend_status(Backend.OPENAI)["api_key_configured"] is False
