# backend/api/capture.py
"""
Start-interview page and its capture sessions.

A session is opened per page visit; the browser pushes transcript segments
and drives each workflow step with an explicit action.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.deps import get_sessions, get_settings, get_store
from core.config import Settings
from core.errors import NotFoundError
from db.store import DocumentStore
from services import mock_session
from services.mock_session import MockSession, MockSessionRegistry

router = APIRouter(prefix="/generate/interview/{interview_id}/start", tags=["capture"])


class SegmentIn(BaseModel):
    text: str
    epoch: Optional[int] = None


class CameraIn(BaseModel):
    # set by the browser when getUserMedia fails
    error: Optional[str] = None


def _session(interview_id: str, session_id: str, sessions: MockSessionRegistry) -> MockSession:
    session = sessions.get(session_id)
    if session is None or session.interview_id != interview_id:
        raise NotFoundError("Capture session not found.")
    return session


def _workflow(session: MockSession):
    if session.workflow is None:
        raise NotFoundError("No questions found for this interview.")
    return session.workflow


def _action(session: MockSession, result) -> dict:
    view = session.view()
    view["action"] = {"ok": result.ok, "state": result.state.value, "message": result.message}
    return view


@router.get("")
def start_page(interview_id: str, store: DocumentStore = Depends(get_store),
               settings: Settings = Depends(get_settings)):
    view = mock_session.load_view(store, interview_id, settings.not_found_redirect_ms)
    return JSONResponse(view, status_code=404 if view.get("redirect") else 200)


@router.post("/sessions", status_code=201)
def open_session(interview_id: str, sessions: MockSessionRegistry = Depends(get_sessions)):
    session = sessions.open(interview_id)
    if session is None:
        raise NotFoundError("Interview not found.")
    return session.view()


@router.get("/sessions/{session_id}")
def session_view(interview_id: str, session_id: str, sessions: MockSessionRegistry = Depends(get_sessions)):
    return _session(interview_id, session_id, sessions).view()


@router.delete("/sessions/{session_id}")
def close_session(interview_id: str, session_id: str, sessions: MockSessionRegistry = Depends(get_sessions)):
    _session(interview_id, session_id, sessions)
    sessions.close(session_id)
    return {"ok": True, "closed": session_id}


@router.post("/sessions/{session_id}/questions/{index}")
def select_question(interview_id: str, session_id: str, index: int,
                    sessions: MockSessionRegistry = Depends(get_sessions)):
    session = _session(interview_id, session_id, sessions)
    if not session.select(index):
        raise NotFoundError(f"Question {index} not found.")
    return session.view()


@router.post("/sessions/{session_id}/record")
def start_recording(interview_id: str, session_id: str, sessions: MockSessionRegistry = Depends(get_sessions)):
    session = _session(interview_id, session_id, sessions)
    return _action(session, _workflow(session).start_capture())


@router.post("/sessions/{session_id}/segments")
def push_segment(interview_id: str, session_id: str, body: SegmentIn,
                 sessions: MockSessionRegistry = Depends(get_sessions)):
    session = _session(interview_id, session_id, sessions)
    accepted = _workflow(session).add_segment(body.text, body.epoch)
    return {"accepted": accepted, "answer": session.workflow.model.answer, "epoch": session.workflow.model.epoch}


@router.post("/sessions/{session_id}/stop")
async def stop_recording(interview_id: str, session_id: str, sessions: MockSessionRegistry = Depends(get_sessions)):
    session = _session(interview_id, session_id, sessions)
    result = await _workflow(session).stop_capture()
    return _action(session, result)


@router.post("/sessions/{session_id}/record-again")
def record_again(interview_id: str, session_id: str, sessions: MockSessionRegistry = Depends(get_sessions)):
    session = _session(interview_id, session_id, sessions)
    return _action(session, _workflow(session).record_again())


@router.post("/sessions/{session_id}/camera")
def camera(interview_id: str, session_id: str, body: Optional[CameraIn] = None,
           sessions: MockSessionRegistry = Depends(get_sessions)):
    session = _session(interview_id, session_id, sessions)
    workflow = _workflow(session)
    if body is not None and body.error:
        workflow.camera_failed(body.error)
    else:
        workflow.toggle_camera()
    return session.view()


@router.post("/sessions/{session_id}/save")
async def save_answer(interview_id: str, session_id: str, sessions: MockSessionRegistry = Depends(get_sessions)):
    session = _session(interview_id, session_id, sessions)
    workflow = _workflow(session)
    result = await workflow.save()
    # on success the session may already have moved to the next question
    return _action(session, result)
