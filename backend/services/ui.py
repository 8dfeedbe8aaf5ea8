# backend/services/ui.py
"""Small building blocks shared by the view models: notifications, redirects, breadcrumbs."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

DASHBOARD_PATH = "/generate"
CREATE_PATH = "/generate/create"
NOT_FOUND_TITLE = "404 - Page Not Found"


def interview_path(interview_id: str) -> str:
    return f"/generate/interview/{interview_id}"


def start_path(interview_id: str) -> str:
    return f"/generate/interview/{interview_id}/start"


def feedback_path(interview_id: str) -> str:
    return f"/generate/feedback/{interview_id}"


@dataclass
class Notification:
    level: str  # "success" | "error" | "info"
    title: str
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def success(title: str, description: Optional[str] = None) -> Notification:
    return Notification("success", title, description)


def error(title: str, description: Optional[str] = None) -> Notification:
    return Notification("error", title, description)


def info(title: str, description: Optional[str] = None) -> Notification:
    return Notification("info", title, description)


@dataclass
class Redirect:
    to: str
    delay_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def breadcrumbs(page: str, *items: tuple) -> List[Dict[str, Optional[str]]]:
    crumbs = [{"label": "Mock Interviews", "link": DASHBOARD_PATH}]
    crumbs += [{"label": label, "link": link} for label, link in items]
    crumbs.append({"label": page, "link": None})
    return crumbs


def not_found_view() -> Dict[str, Any]:
    return {"view": "not_found", "title": NOT_FOUND_TITLE}
