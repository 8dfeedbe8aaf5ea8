# backend/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, List
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown keys instead of crashing
    )

    # ---- DB (accept either)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    db_url_compat: Optional[str] = Field(default=None, alias="DB_URL")

    # ---- Generative provider: "stub" | "gemini" | "ollama" | "openai"
    ai_provider: str = Field("stub", alias="AI_PROVIDER")
    ai_timeout_seconds: float = Field(60.0, alias="AI_TIMEOUT_SECONDS")

    gemini_api_key: str = Field("", alias="GEMINI_API_KEY")
    gemini_model: str = Field("gemini-1.5-flash", alias="GEMINI_MODEL")
    gemini_url: str = Field("https://generativelanguage.googleapis.com", alias="GEMINI_URL")

    ollama_url: str = Field("http://127.0.0.1:11434", alias="OLLAMA_URL")
    ollama_model: str = Field("tinyllama:latest", alias="OLLAMA_MODEL")

    openai_api_key: str = Field("", alias="OPENAI_API_KEY")
    openai_model: str = Field("gpt-4o-mini", alias="OPENAI_MODEL")

    # ---- Interview flow knobs
    question_count: int = Field(5, alias="AI_Q_COUNT")
    min_answer_chars: int = Field(30, alias="MIN_ANSWER_CHARS")
    redirect_delay_ms: int = Field(500, alias="REDIRECT_DELAY_MS")
    not_found_redirect_ms: int = Field(3000, alias="NOT_FOUND_REDIRECT_MS")
    max_capture_sessions: int = Field(100, alias="MAX_CAPTURE_SESSIONS")

    # ---- Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(True, alias="LOG_JSON")

    # ---- CORS raw (we'll parse)
    cors_origins_raw: str = Field(
        "http://localhost:5173,http://127.0.0.1:5173",
        alias="CORS_ORIGINS",
    )

    # ---- Helpers / parsed properties
    @property
    def cors_origins(self) -> List[str]:
        s = (self.cors_origins_raw or "").strip()
        if not s:
            return ["http://localhost:5173", "http://127.0.0.1:5173"]
        if s.startswith("["):
            try:
                arr = json.loads(s)
                if isinstance(arr, list):
                    return [str(x).strip() for x in arr if str(x).strip()]
            except ValueError:
                pass
        return [x.strip() for x in s.split(",") if x.strip()]

    @property
    def database_url_effective(self) -> str:
        return self.database_url or self.db_url_compat or "sqlite:///./mock_interviews.sqlite"

    @property
    def provider(self) -> str:
        return (self.ai_provider or "stub").strip().lower()


def get_settings() -> Settings:
    """Fresh settings read from env / .env (the app keeps one instance on app.state)."""
    return Settings()
