# backend/services/mock_session.py
"""
The "start interview" page: loads an interview, keeps track of the active
question and owns one AnswerCaptureWorkflow at a time (the live-capture
buffer belongs to exactly one workflow).
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from ai.genai_client import GenerativeClient
from core.errors import StoreError
from db.models import INTERVIEWS
from db.store import DocumentStore
from services import answer_capture, ui
from services.answer_capture import AnswerCaptureWorkflow
from services.response_parser import parse_questions

log = logging.getLogger(__name__)

NOTE_TITLE = "Important Note"
NOTE_TEXT = (
    'Press "Record Answer" to begin answering the question. Once you finish the interview, '
    "you'll receive feedback comparing your responses with the ideal answers. "
    "Your video is never recorded. You can disable the webcam anytime if preferred."
)


def normalize_questions(raw: Any) -> List[Dict[str, str]]:
    """Stored question sets are usually a list; older records kept the raw model text."""
    if isinstance(raw, list):
        out = []
        for item in raw:
            if isinstance(item, dict) and item.get("question"):
                out.append({"question": str(item["question"]), "answer": str(item.get("answer") or "")})
        return out
    if isinstance(raw, str) and raw.strip():
        outcome = parse_questions(raw)
        return outcome.value if outcome.ok else []
    return []


class MockSession:
    def __init__(self, store: DocumentStore, genai: GenerativeClient, interview: Dict[str, Any],
                 min_chars: int = answer_capture.MIN_ANSWER_CHARS):
        self.id = uuid.uuid4().hex
        self.store = store
        self.genai = genai
        self.interview = interview
        self.questions = normalize_questions(interview.get("questions"))
        self.min_chars = min_chars
        self.active_index = 0
        self.camera_on = False
        self.workflow: Optional[AnswerCaptureWorkflow] = None
        self.closed = False
        if self.questions:
            self._open_workflow()

    @property
    def interview_id(self) -> str:
        return self.interview["id"]

    def _open_workflow(self) -> None:
        if self.workflow is not None:
            self.camera_on = self.workflow.model.camera_on
            self.workflow.close()
        self.workflow = AnswerCaptureWorkflow(
            self.store,
            self.genai,
            self.interview_id,
            self.questions[self.active_index],
            min_chars=self.min_chars,
            on_saved=self._advance,
        )
        self.workflow.model.camera_on = self.camera_on

    def select(self, index: int) -> bool:
        if not 0 <= index < len(self.questions):
            return False
        if index != self.active_index or self.workflow is None:
            self.active_index = index
            self._open_workflow()
        return True

    def _advance(self, saved: Dict[str, Any]) -> None:
        """Continuation after a save: move on to the next question, if any."""
        if self.active_index + 1 < len(self.questions):
            notes = self.workflow.drain_notifications() if self.workflow else []
            self.select(self.active_index + 1)
            self.workflow.model.notifications.extend(notes)

    def close(self) -> None:
        self.closed = True
        if self.workflow is not None:
            self.workflow.close()

    def view(self) -> Dict[str, Any]:
        """Current page view; pending notifications are handed out once."""
        view = page_view(self.interview, self.questions, self.active_index)
        view["session_id"] = self.id
        if self.workflow is not None:
            view["capture"] = answer_capture.render(self.workflow.model, self.workflow.drain_notifications())
        return view


class MockSessionRegistry:
    """
    Open capture sessions, keyed by session id (single process).

    One live session per interview: opening a new one replaces the previous
    page visit. Past `max_sessions` the oldest session is closed.
    """

    def __init__(self, store: DocumentStore, genai: GenerativeClient,
                 min_chars: int = answer_capture.MIN_ANSWER_CHARS, max_sessions: int = 100):
        self.store = store
        self.genai = genai
        self.min_chars = min_chars
        self.max_sessions = max_sessions
        self._sessions: Dict[str, MockSession] = {}

    def open(self, interview_id: str) -> Optional[MockSession]:
        interview = self.store.get(INTERVIEWS, interview_id)
        if interview is None:
            return None
        for sid, prev in list(self._sessions.items()):
            if prev.interview_id == interview_id:
                self.close(sid)
        while len(self._sessions) >= self.max_sessions:
            oldest = next(iter(self._sessions))
            log.info("evicting capture session", extra={"session_id": oldest})
            self.close(oldest)
        session = MockSession(self.store, self.genai, interview, min_chars=self.min_chars)
        self._sessions[session.id] = session
        log.info("capture session opened", extra={"interview_id": interview_id, "session_id": session.id})
        return session

    def get(self, session_id: str) -> Optional[MockSession]:
        return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def close_all(self) -> None:
        for sid in list(self._sessions):
            self.close(sid)

    def __len__(self) -> int:
        return len(self._sessions)


def load_view(store: DocumentStore, interview_id: str, not_found_redirect_ms: int = 3000) -> Dict[str, Any]:
    """Read-only page view (no session opened)."""
    try:
        interview = store.get(INTERVIEWS, interview_id)
    except StoreError as e:
        log.error("Error fetching interview %s: %s", interview_id, e.message)
        return _error_view(interview_id, "Failed to load interview data", not_found_redirect_ms)
    if interview is None:
        return _error_view(interview_id, "Interview not found", not_found_redirect_ms)
    return page_view(interview, normalize_questions(interview.get("questions")))


def page_view(interview: Dict[str, Any], questions: List[Dict[str, str]], active_index: int = 0) -> Dict[str, Any]:
    interview_id = interview["id"]
    position = interview.get("position") or "Interview"
    return {
        "view": "mock_interview",
        "session_id": None,
        "interview_id": interview_id,
        "breadcrumbs": ui.breadcrumbs("Start", (position, ui.interview_path(interview_id))),
        "note": {"title": NOTE_TITLE, "text": NOTE_TEXT},
        "questions": [q["question"] for q in questions],
        "active_index": active_index,
        "feedback_link": ui.feedback_path(interview_id),
        "error": None if questions else "No questions found for this interview.",
        "capture": None,
    }


def _error_view(interview_id: str, message: str, delay_ms: int) -> Dict[str, Any]:
    return {
        "view": "mock_interview",
        "interview_id": interview_id,
        "error": f"{message}. Redirecting...",
        "notifications": [ui.error(message).to_dict()],
        "redirect": ui.Redirect(ui.DASHBOARD_PATH, delay_ms).to_dict(),
    }
