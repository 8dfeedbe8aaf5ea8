# backend/services/answer_capture.py
"""
Answer capture workflow for one question.

    idle -> recording -> scoring -> scored -> saving -> saved
                 ^                                    |
                 +---------- record again ------------+

The browser does the speech-to-text; it pushes transcript segments here.
Each step is driven by an explicit user action, so a save can never run
before scoring has finished. The duplicate check before insert is a plain
query followed by a write, not a transaction: two saves racing for the same
question can both get through.
"""
from __future__ import annotations

import asyncio
import enum
import inspect
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ai.genai_client import GenerativeClient
from core.errors import GenerationError, StoreError
from db.models import USER_ANSWERS
from db.store import DocumentStore
from services import ui
from services.prompts import scoring_prompt
from services.response_parser import parse_rating

log = logging.getLogger(__name__)

MIN_ANSWER_CHARS = 30
RATE_LIMIT_MESSAGE = "Quota exceeded. Please wait 30 seconds or check your API plan."
INVALID_FORMAT = "Invalid response format from AI"

Continuation = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class CaptureState(str, enum.Enum):
    idle = "idle"
    recording = "recording"
    scoring = "scoring"
    scored = "scored"
    saving = "saving"
    saved = "saved"


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    state: CaptureState
    message: Optional[str] = None


@dataclass
class CaptureModel:
    question: Dict[str, str]
    state: CaptureState = CaptureState.idle
    segments: List[str] = field(default_factory=list)
    epoch: int = 0
    ai_result: Optional[Dict[str, Any]] = None
    validation_error: Optional[str] = None
    camera_on: bool = False
    camera_error: Optional[str] = None
    saved_id: Optional[str] = None
    notifications: List[ui.Notification] = field(default_factory=list)

    @property
    def answer(self) -> str:
        return " ".join(s for s in self.segments if s)


class AnswerCaptureWorkflow:
    def __init__(self, store: DocumentStore, genai: GenerativeClient, interview_id: str,
                 question: Dict[str, str], min_chars: int = MIN_ANSWER_CHARS,
                 on_saved: Optional[Continuation] = None):
        self.store = store
        self.genai = genai
        self.interview_id = interview_id
        self.min_chars = min_chars
        self.on_saved = on_saved
        self.model = CaptureModel(question=dict(question))
        self.closed = False

    @property
    def state(self) -> CaptureState:
        return self.model.state

    def _result(self, ok: bool, message: Optional[str] = None) -> ActionResult:
        return ActionResult(ok, self.model.state, message)

    # ---------------------------
    # capture
    # ---------------------------
    def start_capture(self) -> ActionResult:
        m = self.model
        if m.state not in (CaptureState.idle, CaptureState.scored, CaptureState.saved):
            return self._result(False, f"cannot start recording while {m.state.value}")
        m.state = CaptureState.recording
        m.validation_error = None
        return self._result(True)

    def add_segment(self, text: str, epoch: Optional[int] = None) -> bool:
        """Append a finished transcript segment; stale or out-of-recording segments are dropped."""
        m = self.model
        if m.state is not CaptureState.recording:
            return False
        if epoch is not None and epoch != m.epoch:
            log.debug("dropping segment from epoch %s (current %s)", epoch, m.epoch)
            return False
        text = (text or "").strip()
        if text:
            m.segments.append(text)
        return True

    async def stop_capture(self) -> ActionResult:
        m = self.model
        if m.state is not CaptureState.recording:
            return self._result(False, "not recording")
        if len(m.answer) < self.min_chars:
            m.state = CaptureState.idle
            m.validation_error = f"Your answer should be more than {self.min_chars} characters."
            m.notifications.append(ui.error("Error", m.validation_error))
            return self._result(False, m.validation_error)

        m.validation_error = None
        m.state = CaptureState.scoring
        epoch = m.epoch
        result = await self._score(m.question.get("question", ""), m.question.get("answer", ""), m.answer)

        if self.closed or epoch != m.epoch:
            log.info("discarding late scoring result", extra={"interview_id": self.interview_id})
            return self._result(False, "discarded")
        m.ai_result = result
        m.state = CaptureState.scored
        return self._result(True)

    async def _score(self, question: str, correct_answer: str, user_answer: str) -> Dict[str, Any]:
        prompt = scoring_prompt(question, user_answer, correct_answer)
        try:
            response = await self.genai.send_message(prompt)
            text = response.text()
            if not text or "{" not in text or "}" not in text:
                raise GenerationError(INVALID_FORMAT)
        except GenerationError as e:
            log.error("scoring failed: %s", e.message)
            if e.is_rate_limited:
                self.model.notifications.append(ui.error(RATE_LIMIT_MESSAGE))
            else:
                self.model.notifications.append(ui.error(f"Error generating feedback: {e.message}"))
            return {"ratings": 0, "feedback": f"Error: {e.message}"}
        return parse_rating(text).value

    def record_again(self) -> ActionResult:
        """Hard reset: drop the buffer and restart capture under a new epoch."""
        m = self.model
        m.epoch += 1
        m.segments = []
        m.ai_result = None
        m.saved_id = None
        m.validation_error = None
        m.state = CaptureState.recording
        return self._result(True)

    # ---------------------------
    # save
    # ---------------------------
    async def save(self) -> ActionResult:
        m = self.model
        if m.state is not CaptureState.scored:
            return self._result(False, "nothing scored to save")

        ai = m.ai_result or {}
        rating = ai.get("ratings")
        if (not ai.get("feedback") or not isinstance(rating, (int, float)) or isinstance(rating, bool)
                or not math.isfinite(rating)):
            msg = "Invalid feedback data. Please record your answer again."
            m.notifications.append(ui.error(msg))
            return self._result(False, msg)

        m.state = CaptureState.saving
        question = m.question.get("question", "")
        try:
            existing = await asyncio.to_thread(
                self.store.query, USER_ANSWERS, mockIdRef=self.interview_id, question=question
            )
            if existing:
                m.state = CaptureState.scored
                m.notifications.append(ui.info("Already Answered", "You have already answered this question."))
                return self._result(False, "already answered")

            record = {
                "mockIdRef": self.interview_id,
                "question": question,
                "correct_ans": m.question.get("answer", ""),
                "user_ans": m.answer,
                "feedback": ai["feedback"],
                "rating": clamp_rating(rating),
                "createdAt": self.store.server_timestamp(),
            }
            m.saved_id = await asyncio.to_thread(self.store.create, USER_ANSWERS, record)
        except StoreError as e:
            log.error("saving answer failed: %s", e.message)
            m.state = CaptureState.scored
            m.notifications.append(ui.error("An error occurred while saving your answer."))
            return self._result(False, e.message)

        m.state = CaptureState.saved
        m.notifications.append(ui.success("Your answer has been saved."))
        log.info("answer saved", extra={"interview_id": self.interview_id, "answer_id": m.saved_id})
        if self.on_saved is not None and not self.closed:
            out = self.on_saved({"id": m.saved_id, **record})
            if inspect.isawaitable(out):
                await out
        return self._result(True)

    # ---------------------------
    # camera preview
    # ---------------------------
    def toggle_camera(self) -> bool:
        self.model.camera_on = not self.model.camera_on
        if self.model.camera_on:
            self.model.camera_error = None
        return self.model.camera_on

    def camera_failed(self, reason: str = "Camera unavailable") -> None:
        self.model.camera_on = False
        self.model.camera_error = reason

    def close(self) -> None:
        self.closed = True

    def drain_notifications(self) -> List[ui.Notification]:
        out, self.model.notifications = self.model.notifications, []
        return out


def clamp_rating(value: float) -> int:
    return max(0, min(10, int(round(value))))


def render(model: CaptureModel, notifications: Optional[List[ui.Notification]] = None) -> Dict[str, Any]:
    state = model.state
    return {
        "state": state.value,
        "question": model.question.get("question", ""),
        "answer": model.answer,
        "answer_placeholder": "Start recording to see your answer here.",
        "epoch": model.epoch,
        "is_recording": state is CaptureState.recording,
        "is_ai_generating": state is CaptureState.scoring,
        "is_saving": state is CaptureState.saving,
        "can_save": state is CaptureState.scored,
        "validation_error": model.validation_error,
        "camera": {
            "on": model.camera_on,
            "placeholder": not model.camera_on,
            "error": model.camera_error,
        },
        "saved_id": model.saved_id,
        "notifications": [n.to_dict() for n in (notifications if notifications is not None else model.notifications)],
    }
