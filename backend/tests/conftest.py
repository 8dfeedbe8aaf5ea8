# backend/tests/conftest.py
import os
import sys
import pathlib
import tempfile

import pytest
from fastapi.testclient import TestClient

# -------------------------------------------------------------------------------------------------
# Path & environment setup (must happen BEFORE importing the app)
# -------------------------------------------------------------------------------------------------

# Ensure backend/ is importable
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Temp SQLite DB file for tests
TEST_DB_FILE = str(pathlib.Path(tempfile.gettempdir()) / "mock_interviews_test.sqlite")

os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_FILE}"
os.environ["AI_PROVIDER"] = "stub"
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")
os.environ.setdefault("LOG_JSON", "0")

# -------------------------------------------------------------------------------------------------
# Import app & modules AFTER env vars
# -------------------------------------------------------------------------------------------------
from main import app
from ai.genai_client import GenerationResult, GenerativeClient
from api import deps
from core.errors import GenerationError
from db.session import Base, make_engine, make_session_factory
from db.store import DocumentStore
from services.mock_session import MockSessionRegistry

# -------------------------------------------------------------------------------------------------
# Test DB engine + session factory
# -------------------------------------------------------------------------------------------------
engine = make_engine(f"sqlite:///{TEST_DB_FILE}")
TestingSessionLocal = make_session_factory(engine)


@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """Drop + recreate DB before each test function to ensure isolation"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


# -------------------------------------------------------------------------------------------------
# Scripted generative client (no network)
# -------------------------------------------------------------------------------------------------
class ScriptedGenAI(GenerativeClient):
    """Replies are consumed in order; an Exception instance in the script is raised instead."""
    provider = "scripted"

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def queue(self, *replies) -> "ScriptedGenAI":
        self.replies.extend(replies)
        return self

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def send_message(self, prompt: str) -> GenerationResult:
        self.prompts.append(prompt)
        if not self.replies:
            raise GenerationError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return GenerationResult(reply, self.provider)


@pytest.fixture(scope="function")
def genai():
    return ScriptedGenAI()


@pytest.fixture(scope="function")
def store():
    s = DocumentStore(TestingSessionLocal)
    yield s
    s.close()


@pytest.fixture(scope="function")
def sessions(store, genai):
    registry = MockSessionRegistry(store, genai)
    yield registry
    registry.close_all()


# -------------------------------------------------------------------------------------------------
# TestClient (lifespan runs; store / genai / sessions are swapped for the fixtures above)
# -------------------------------------------------------------------------------------------------
@pytest.fixture(scope="function")
def client(store, genai, sessions):
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_genai] = lambda: genai
    app.dependency_overrides[deps.get_sessions] = lambda: sessions
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


# -------------------------------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------------------------------
QUESTION_SET = (
    '```json\n['
    '{"question": "What is a goroutine?", "answer": "A lightweight thread managed by the Go runtime."},'
    '{"question": "How do channels work?", "answer": "Typed conduits for communication between goroutines."},'
    '{"question": "What is an index in Postgres?", "answer": "A structure that speeds up lookups."},'
    '{"question": "Explain MVCC.", "answer": "Multi-version concurrency control keeps row versions."},'
    '{"question": "What is context.Context for?", "answer": "Cancellation, deadlines and request values."}'
    ']\n```'
)

INTERVIEW_FORM = {
    "position": "Backend Engineer",
    "description": "Build and run APIs",
    "experience": 3,
    "techStack": "Go,Postgres",
}


@pytest.fixture(scope="function")
def interview(store):
    """A stored interview with two questions."""
    iid = store.create("interviews", {
        **INTERVIEW_FORM,
        "questions": [
            {"question": "What is a goroutine?", "answer": "A lightweight thread managed by the Go runtime."},
            {"question": "How do channels work?", "answer": "Typed conduits for communication between goroutines."},
        ],
        "createdAt": store.server_timestamp(),
    })
    return store.get("interviews", iid)
