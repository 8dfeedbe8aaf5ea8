# backend/api/interviews.py
import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from ai.genai_client import GenerativeClient
from api.deps import get_genai, get_settings, get_store
from core.config import Settings
from core.errors import NotFoundError
from db.models import INTERVIEWS
from db.store import DocumentStore
from services import feedback, interview_editor, ui
from services.dashboard import DashboardView
from services.interview_editor import InterviewEditor

router = APIRouter(prefix="/generate", tags=["interviews"])


def _editor(store: DocumentStore, genai: GenerativeClient, settings: Settings) -> InterviewEditor:
    return InterviewEditor(
        store,
        genai,
        question_count=settings.question_count,
        redirect_delay_ms=settings.redirect_delay_ms,
    )


def _form_response(state: interview_editor.EditorState, created: bool = False) -> JSONResponse:
    view = interview_editor.render(state)
    if state.errors:
        status = 422
    elif state.saved_id is None:
        status = 503  # valid form, persistence failed
    else:
        status = 201 if created else 200
    return JSONResponse(view, status_code=status)


# ---------------------------
# Dashboard
# ---------------------------

@router.get("")
def dashboard(store: DocumentStore = Depends(get_store)):
    view = DashboardView(store).mount()
    try:
        return view.render()
    finally:
        view.teardown()


# ---------------------------
# Create / edit
# ---------------------------

@router.get("/create")
def create_form(store: DocumentStore = Depends(get_store), genai: GenerativeClient = Depends(get_genai),
                settings: Settings = Depends(get_settings)):
    return interview_editor.render(_editor(store, genai, settings).open())


@router.post("/create")
async def create_interview(
    payload: Dict[str, Any] = Body(...),
    store: DocumentStore = Depends(get_store),
    genai: GenerativeClient = Depends(get_genai),
    settings: Settings = Depends(get_settings),
):
    editor = _editor(store, genai, settings)
    state = await editor.submit(editor.open(), payload)
    return _form_response(state, created=True)


@router.get("/interview/{interview_id}")
def load_interview(interview_id: str, store: DocumentStore = Depends(get_store),
                   genai: GenerativeClient = Depends(get_genai), settings: Settings = Depends(get_settings)):
    initial = store.get(INTERVIEWS, interview_id)
    if initial is None:
        return JSONResponse(_missing(interview_id, settings), status_code=404)
    view = interview_editor.render(_editor(store, genai, settings).open(initial))
    view["start_link"] = ui.start_path(interview_id)
    return view


@router.put("/interview/{interview_id}")
async def edit_interview(
    interview_id: str,
    payload: Dict[str, Any] = Body(...),
    store: DocumentStore = Depends(get_store),
    genai: GenerativeClient = Depends(get_genai),
    settings: Settings = Depends(get_settings),
):
    initial = await asyncio.to_thread(store.get, INTERVIEWS, interview_id)
    if initial is None:
        return JSONResponse(_missing(interview_id, settings), status_code=404)
    editor = _editor(store, genai, settings)
    state = await editor.submit(editor.open(initial), payload)
    return _form_response(state)


@router.delete("/interview/{interview_id}")
def delete_interview(interview_id: str, store: DocumentStore = Depends(get_store)):
    # answers that reference the interview are left in place
    if not store.delete(INTERVIEWS, interview_id):
        raise NotFoundError("Interview not found.")
    return {"ok": True, "deleted": interview_id, "redirect": ui.Redirect(ui.DASHBOARD_PATH).to_dict()}


# ---------------------------
# Feedback
# ---------------------------

@router.get("/feedback/{interview_id}")
def interview_feedback(interview_id: str, store: DocumentStore = Depends(get_store),
                       settings: Settings = Depends(get_settings)):
    view = feedback.load_feedback(store, interview_id, settings.not_found_redirect_ms)
    return JSONResponse(view, status_code=404 if view["redirect"] else 200)


def _missing(interview_id: str, settings: Settings) -> Dict[str, Any]:
    return {
        "view": "interview_form",
        "interview_id": interview_id,
        "error": "Interview not found.",
        "notifications": [ui.error("Interview not found.").to_dict()],
        "redirect": ui.Redirect(ui.DASHBOARD_PATH, settings.not_found_redirect_ms).to_dict(),
    }
