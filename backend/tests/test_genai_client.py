# backend/tests/test_genai_client.py
import asyncio
import json

import httpx
import pytest

from ai.genai_client import GeminiClient, OllamaClient, StubClient, make_client
from core.config import Settings
from core.errors import GenerationError
from services.prompts import questions_prompt, scoring_prompt
from services.response_parser import parse_questions, parse_rating


def _gemini(handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiClient("test-key", "gemini-1.5-flash", "https://gemini.test", http=http)


def test_gemini_joins_candidate_parts():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": "Hello! "}, {"text": "I can respond."}]}}],
        })

    result = asyncio.run(_gemini(handler).send_message("Hello, can you respond?"))
    assert result.text() == "Hello! I can respond."
    assert result.provider == "gemini"
    assert "/v1beta/models/gemini-1.5-flash:generateContent" in seen["url"]
    assert "key=test-key" in seen["url"]
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "Hello, can you respond?"


def test_gemini_quota_error_is_rate_limited():
    def handler(request):
        return httpx.Response(429, json={"error": {"message": "Resource has been exhausted"}})

    with pytest.raises(GenerationError) as exc:
        asyncio.run(_gemini(handler).send_message("x"))
    assert exc.value.status == 429
    assert exc.value.is_rate_limited
    assert exc.value.message == "[429] Resource has been exhausted"


def test_gemini_empty_candidates():
    with pytest.raises(GenerationError, match="No response from AI"):
        asyncio.run(_gemini(lambda r: httpx.Response(200, json={"candidates": []})).send_message("x"))


def test_gemini_without_key():
    client = GeminiClient("", "gemini-1.5-flash", "https://gemini.test")
    with pytest.raises(GenerationError, match="GEMINI_API_KEY not set"):
        asyncio.run(client.send_message("x"))


def test_ollama_response_field():
    http = httpx.AsyncClient(transport=httpx.MockTransport(
        lambda r: httpx.Response(200, json={"model": "m", "response": "[]", "done": True})
    ))
    result = asyncio.run(OllamaClient("http://ollama.test", "m", http=http).send_message("x"))
    assert result.text() == "[]"


def test_stub_output_matches_parsers():
    stub = StubClient(question_count=5)
    questions = asyncio.run(stub.send_message(questions_prompt("Backend Engineer", "APIs all day", 3, "Go,Postgres")))
    parsed = parse_questions(questions.text())
    assert parsed.ok and len(parsed.value) == 5
    assert "Go" in parsed.value[0]["question"]

    rating = asyncio.run(stub.send_message(scoring_prompt("Q", "a fairly complete answer with several words in it", "A")))
    assert parse_rating(rating.text()).ok


def test_make_client_by_provider():
    assert make_client(Settings(AI_PROVIDER="gemini")).provider == "gemini"
    assert make_client(Settings(AI_PROVIDER="ollama")).provider == "ollama"
    assert make_client(Settings(AI_PROVIDER="something-else")).provider == "stub"
