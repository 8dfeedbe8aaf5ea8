# backend/services/interview_editor.py
"""
Create / edit an interview: validate the form, ask the model for a question
set, persist it.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ai.genai_client import GenerativeClient
from core.errors import GenerationError, NotFoundError, StoreError
from db.models import INTERVIEWS
from db.store import DocumentStore
from schemas.interview import InterviewForm, field_errors
from services import ui
from services.prompts import questions_prompt
from services.response_parser import default_questions, parse_questions

log = logging.getLogger(__name__)

FORM_FIELDS = ("position", "description", "experience", "techStack")


@dataclass
class EditorState:
    initial: Optional[Dict[str, Any]] = None
    values: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    loading: bool = False
    saved_id: Optional[str] = None
    questions: List[Dict[str, str]] = field(default_factory=list)
    notifications: List[ui.Notification] = field(default_factory=list)
    redirect: Optional[ui.Redirect] = None

    @property
    def is_edit(self) -> bool:
        return self.initial is not None


def initial_values(initial: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    initial = initial or {}
    return {
        "position": initial.get("position") or "",
        "description": initial.get("description") or "",
        "experience": initial.get("experience") if initial.get("experience") is not None else 0,
        "techStack": initial.get("techStack") or "",
    }


class InterviewEditor:
    def __init__(self, store: DocumentStore, genai: GenerativeClient,
                 question_count: int = 5, redirect_delay_ms: int = 500):
        self.store = store
        self.genai = genai
        self.question_count = question_count
        self.redirect_delay_ms = redirect_delay_ms

    def open(self, initial: Optional[Dict[str, Any]] = None) -> EditorState:
        return EditorState(initial=initial, values=initial_values(initial))

    def validate(self, raw: Dict[str, Any]) -> tuple[Optional[InterviewForm], Dict[str, str]]:
        try:
            return InterviewForm.model_validate({k: raw.get(k) for k in FORM_FIELDS if k in raw}), {}
        except ValidationError as e:
            return None, field_errors(e)

    async def generate_questions(self, form: InterviewForm, state: EditorState) -> List[Dict[str, str]]:
        prompt = questions_prompt(
            form.position, form.description, form.experience, form.techStack, n=self.question_count
        )
        try:
            result = await self.genai.send_message(prompt)
        except GenerationError as e:
            log.error("question generation failed: %s", e.message)
            state.notifications.append(ui.error("Failed to generate questions from AI."))
            return default_questions()
        outcome = parse_questions(result.text())
        log.info("generated %d questions (parsed=%s)", len(outcome.value), outcome.ok)
        return outcome.value

    async def submit(self, state: EditorState, raw: Dict[str, Any]) -> EditorState:
        state.values = {**state.values, **{k: raw[k] for k in FORM_FIELDS if k in raw}}
        form, errors = self.validate(state.values)
        state.errors = errors
        if form is None:
            return state

        state.loading = True
        try:
            questions = await self.generate_questions(form, state)
            data = form.model_dump()
            data["questions"] = questions
            if state.is_edit:
                data["updatedAt"] = self.store.server_timestamp()
                await asyncio.to_thread(self.store.update, INTERVIEWS, state.initial["id"], data)
                state.saved_id = state.initial["id"]
            else:
                data["createdAt"] = self.store.server_timestamp()
                state.saved_id = await asyncio.to_thread(self.store.create, INTERVIEWS, data)
            state.questions = questions
            state.notifications.append(ui.success("Success!", "Mock interview saved."))
            state.redirect = ui.Redirect(ui.DASHBOARD_PATH, self.redirect_delay_ms)
            log.info("interview saved", extra={"interview_id": state.saved_id, "edit": state.is_edit})
        except (StoreError, NotFoundError) as e:
            log.error("saving interview failed: %s", e.message)
            state.notifications.append(ui.error("Error", "Something went wrong."))
        finally:
            state.loading = False
        return state


def render(state: EditorState) -> Dict[str, Any]:
    initial = state.initial
    title = initial["position"] if initial else "Create a new mock interview"
    return {
        "view": "interview_form",
        "breadcrumbs": ui.breadcrumbs(initial["position"] if initial else "Create"),
        "title": title,
        "interview_id": initial["id"] if initial else None,
        "can_delete": initial is not None,
        "submit_label": "Save Changes" if initial else "Create",
        "values": state.values,
        "errors": state.errors,
        "loading": state.loading,
        "saved_id": state.saved_id,
        "question_count": len(state.questions),
        "notifications": [n.to_dict() for n in state.notifications],
        "redirect": state.redirect.to_dict() if state.redirect else None,
    }
