# backend/ai/genai_client.py
"""
Generative-response clients.

Every provider exposes the same contract: ``await client.send_message(prompt)``
returns a GenerationResult whose ``text()`` is the model's free-form output.
Transport failures raise GenerationError carrying the HTTP status when there
is one (429 = quota / rate limit).
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from core.config import Settings
from core.errors import GenerationError

log = logging.getLogger(__name__)


class GenerationResult:
    def __init__(self, raw_text: str, provider: str, body: Any = None):
        self._text = raw_text or ""
        self.provider = provider
        self.body = body

    def text(self) -> str:
        return self._text


class GenerativeClient:
    provider = "base"

    async def send_message(self, prompt: str) -> GenerationResult:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class _HttpClient(GenerativeClient):
    def __init__(self, timeout: float = 60.0, http: Optional[httpx.AsyncClient] = None):
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, url: str, payload: Dict[str, Any], headers: Optional[dict] = None,
                    params: Optional[dict] = None) -> Any:
        try:
            r = await self._http.post(url, json=payload, headers=headers, params=params)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = _error_detail(e.response)
            log.warning("%s call failed: [%s] %s", self.provider, status, detail)
            raise GenerationError(f"[{status}] {detail}", status=status)
        except httpx.HTTPError as e:
            log.warning("%s call failed: %s", self.provider, e)
            raise GenerationError(f"Request to {self.provider} failed: {e}")
        try:
            return r.json()
        except ValueError:
            raise GenerationError(f"{self.provider} returned a non-JSON body")


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:300] or resp.reason_phrase
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str):
            return err
    return resp.reason_phrase


class GeminiClient(_HttpClient):
    """Google Generative Language API (models/{model}:generateContent)."""
    provider = "gemini"

    GENERATION_CONFIG = {
        "temperature": 1,
        "topP": 0.95,
        "topK": 40,
        "maxOutputTokens": 8192,
        "responseMimeType": "text/plain",
    }

    def __init__(self, api_key: str, model: str, base_url: str, timeout: float = 60.0,
                 http: Optional[httpx.AsyncClient] = None):
        super().__init__(timeout=timeout, http=http)
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")

    async def send_message(self, prompt: str) -> GenerationResult:
        if not self.api_key:
            raise GenerationError("GEMINI_API_KEY not set")
        url = f"{self.base_url}/v1beta/models/{self.model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": self.GENERATION_CONFIG,
        }
        body = await self._post(url, payload, params={"key": self.api_key})
        parts: List[str] = []
        for cand in (body or {}).get("candidates") or []:
            for part in ((cand.get("content") or {}).get("parts") or []):
                if isinstance(part.get("text"), str):
                    parts.append(part["text"])
            if parts:
                break
        if not parts:
            raise GenerationError("No response from AI")
        return GenerationResult("".join(parts), self.provider, body)


class OllamaClient(_HttpClient):
    provider = "ollama"

    def __init__(self, url: str, model: str, timeout: float = 120.0,
                 http: Optional[httpx.AsyncClient] = None):
        super().__init__(timeout=timeout, http=http)
        self.url = url.rstrip("/")
        self.model = model

    async def send_message(self, prompt: str) -> GenerationResult:
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        body = await self._post(f"{self.url}/api/generate", payload)
        # {"model": "...", "created_at": "...", "response": "<text>", "done": true}
        resp = body.get("response") if isinstance(body, dict) else None
        if not isinstance(resp, str):
            raise GenerationError("No response from AI")
        return GenerationResult(resp, self.provider, body)


class OpenAIClient(_HttpClient):
    provider = "openai"
    CHAT_URL = "https://api.openai.com/v1/chat/completions"

    def __init__(self, api_key: str, model: str, timeout: float = 120.0,
                 http: Optional[httpx.AsyncClient] = None):
        super().__init__(timeout=timeout, http=http)
        self.api_key = api_key
        self.model = model

    async def send_message(self, prompt: str) -> GenerationResult:
        if not self.api_key:
            raise GenerationError("OPENAI_API_KEY not set")
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.3,
        }
        data = await self._post(self.CHAT_URL, payload, headers=headers)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise GenerationError("No response from AI")
        return GenerationResult(content or "", self.provider, data)


# ------------------------------
# Stub (no network)
# ------------------------------
_STUB_POOL = [
    ("Walk me through a recent project where you used {tech}. What was your role?",
     "A strong answer names the project goal, the {tech} parts the candidate owned and a measurable outcome."),
    ("How would you structure a {tech} codebase so that it stays testable?",
     "Separate I/O from logic, inject dependencies and keep modules small with clear boundaries."),
    ("Describe how you would debug a production incident in a {tech} service.",
     "Start from logs and metrics, reproduce, bisect recent changes, fix, then add a regression test."),
    ("What trade-offs do you weigh when choosing {tech} for a new feature?",
     "Team familiarity, ecosystem maturity, performance characteristics and operational cost."),
    ("Explain a performance problem you solved with {tech}.",
     "Measure first, identify the bottleneck, change one thing at a time and verify with numbers."),
]


class StubClient(GenerativeClient):
    """Deterministic offline output shaped like what the prompts ask for."""
    provider = "stub"

    def __init__(self, question_count: int = 5):
        self.question_count = question_count

    async def send_message(self, prompt: str) -> GenerationResult:
        if '"ratings"' in prompt:
            words = len(re.findall(r"\w+", _between(prompt, 'User Answer: "', '"')))
            rating = max(1, min(10, words // 5))
            payload: Any = {"ratings": rating, "feedback": "Stub feedback: add concrete examples."}
        elif "Tech Stack:" in prompt:
            tech = _after(prompt, "Tech Stack:").split(",")[0].strip() or "your stack"
            payload = [
                {"question": q.format(tech=tech), "answer": a.format(tech=tech)}
                for q, a in _STUB_POOL[: self.question_count]
            ]
        else:
            return GenerationResult("Hello! I can respond.", self.provider)
        return GenerationResult("```json\n" + json.dumps(payload) + "\n```", self.provider)


def _between(text: str, start: str, end: str) -> str:
    i = text.find(start)
    if i == -1:
        return ""
    i += len(start)
    j = text.find(end, i)
    return text[i:j if j != -1 else None]


def _after(text: str, marker: str) -> str:
    i = text.find(marker)
    if i == -1:
        return ""
    return text[i + len(marker):].splitlines()[0]


def make_client(settings: Settings) -> GenerativeClient:
    provider = settings.provider
    timeout = settings.ai_timeout_seconds
    if provider == "gemini":
        return GeminiClient(settings.gemini_api_key, settings.gemini_model, settings.gemini_url, timeout=timeout)
    if provider == "ollama":
        return OllamaClient(settings.ollama_url, settings.ollama_model, timeout=timeout)
    if provider == "openai":
        return OpenAIClient(settings.openai_api_key, settings.openai_model, timeout=timeout)
    if provider != "stub":
        log.warning("Unknown AI_PROVIDER=%s, using stub", provider)
    return StubClient(settings.question_count)
