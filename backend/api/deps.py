# api/deps.py
"""
Connection-scoped access to the clients built in main.lifespan.

Nothing here is a module-level singleton: the app owns the clients on
app.state and tests swap them through app.dependency_overrides.
"""
from starlette.requests import HTTPConnection

from ai.genai_client import GenerativeClient
from core.config import Settings
from db.store import DocumentStore
from services.mock_session import MockSessionRegistry


def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_store(conn: HTTPConnection) -> DocumentStore:
    return conn.app.state.store


def get_genai(conn: HTTPConnection) -> GenerativeClient:
    return conn.app.state.genai


def get_sessions(conn: HTTPConnection) -> MockSessionRegistry:
    return conn.app.state.sessions
