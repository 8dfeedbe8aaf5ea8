# backend/services/dashboard.py
"""
Dashboard list view: a live list of interview cards.

The view subscribes to the interviews collection when it is mounted and
replaces its whole list with every snapshot the store pushes. Until the
first snapshot arrives it renders placeholder rows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from db.models import INTERVIEWS
from db.store import DocumentStore, Subscription
from services import ui

log = logging.getLogger(__name__)

PLACEHOLDER_ROWS = 6


@dataclass
class DashboardState:
    interviews: List[Dict[str, Any]] = field(default_factory=list)
    loading: bool = True
    notifications: List[ui.Notification] = field(default_factory=list)


class DashboardView:
    def __init__(self, store: DocumentStore, on_change: Optional[Callable[[Dict[str, Any]], None]] = None):
        self.store = store
        self.on_change = on_change
        self.state = DashboardState()
        self._sub: Optional[Subscription] = None

    def mount(self) -> "DashboardView":
        if self._sub is None:
            self._sub = self.store.subscribe(INTERVIEWS, self._on_snapshot, self._on_error)
        return self

    def teardown(self) -> None:
        if self._sub is not None:
            self._sub.unsubscribe()
            self._sub = None

    @property
    def mounted(self) -> bool:
        return self._sub is not None

    def _on_snapshot(self, snapshot: List[Dict[str, Any]]) -> None:
        # records already carry the store id
        self.state.interviews = [dict(doc) for doc in snapshot]
        self.state.loading = False
        self._emit()

    def _on_error(self, exc: Exception) -> None:
        log.error("Error fetching interviews: %s", exc)
        self.state.notifications.append(ui.error("Something went wrong. Try again later."))
        self.state.loading = False
        self._emit()

    def _emit(self) -> None:
        if self.on_change is not None:
            self.on_change(render(self.state))

    def render(self) -> Dict[str, Any]:
        return render(self.state)


def tech_badges(tech_stack: str) -> List[str]:
    return [t.strip() for t in (tech_stack or "").split(",") if t.strip()]


def _date_label(value: Any) -> Optional[str]:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        return f"{value.strftime('%Y-%m-%d')} - {value.strftime('%H:%M')}"
    return None


def interview_card(interview: Dict[str, Any], on_mock_page: bool = False) -> Dict[str, Any]:
    iid = interview["id"]
    return {
        "id": iid,
        "position": interview.get("position", ""),
        "description": interview.get("description", ""),
        "experience": interview.get("experience", 0),
        "tech_stack": tech_badges(interview.get("techStack", "")),
        "created": _date_label(interview.get("createdAt")),
        "links": None if on_mock_page else {
            "view": ui.interview_path(iid),
            "start": ui.start_path(iid),
            "feedback": ui.feedback_path(iid),
        },
    }


def render(state: DashboardState) -> Dict[str, Any]:
    view: Dict[str, Any] = {
        "view": "dashboard",
        "title": "Dashboard",
        "description": "Create and start your AI Mock interview",
        "add_new": ui.CREATE_PATH,
        "loading": state.loading,
        "notifications": [n.to_dict() for n in state.notifications],
    }
    if state.loading:
        view["placeholders"] = PLACEHOLDER_ROWS
        view["cards"] = []
    else:
        view["placeholders"] = 0
        view["cards"] = [interview_card(doc) for doc in state.interviews]
        if not state.interviews:
            view["empty"] = {
                "title": "No Data Found",
                "message": "There are no available interviews. Please add a new mock interview.",
            }
    return view
