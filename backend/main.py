# backend/main.py
"""
Mock interview API: dashboard, interview editor, answer capture and feedback.

Clients are built once in the lifespan and kept on app.state; routes get
them through api.deps.
"""
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Candidate .env locations (in order)
#  - PROJECT_ROOT/.env
#  - BACKEND_DIR/.env
BASE_DIR = os.path.dirname(os.path.abspath(__file__))        # backend/
PROJECT_ROOT = os.path.dirname(BASE_DIR)

for _p in (os.path.join(PROJECT_ROOT, ".env"), os.path.join(BASE_DIR, ".env")):
    if os.path.exists(_p):
        load_dotenv(_p, override=False)
        break

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ai.genai_client import make_client
from api import capture, interviews, ops, ws_dashboard
from core.config import get_settings
from core.errors import AppError, app_error_handler, unhandled_exception_handler
from core.logging import setup_json_logging
from core.request_id import RequestIDMiddleware
from db.session import make_engine, make_session_factory
from db.store import open_store
from services.mock_session import MockSessionRegistry
from services.ui import DASHBOARD_PATH, not_found_view

settings = get_settings()
setup_json_logging(settings.log_level.upper(), use_json=settings.log_json)
log = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = get_settings()
    engine = make_engine(cfg.database_url_effective)
    store = open_store(make_session_factory(engine))
    genai = make_client(cfg)

    app.state.settings = cfg
    app.state.store = store
    app.state.genai = genai
    app.state.sessions = MockSessionRegistry(
        store, genai, min_chars=cfg.min_answer_chars, max_sessions=cfg.max_capture_sessions
    )
    log.info("startup", extra={"provider": genai.provider, "database": engine.url.render_as_string()})
    try:
        yield
    finally:
        app.state.sessions.close_all()
        await genai.aclose()
        store.close()
        engine.dispose()
        log.info("shutdown")


app = FastAPI(title="AI Mock Interview API", lifespan=lifespan)

app.include_router(interviews.router)
app.include_router(capture.router)
app.include_router(ws_dashboard.router)
app.include_router(ops.router)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(not_found_view(), status_code=404)
    return await http_exception_handler(request, exc)


# Minimal endpoints (always present)
@app.get("/health")
def health():
    return {"ok": True}


@app.get("/")
def root():
    return RedirectResponse(DASHBOARD_PATH)
