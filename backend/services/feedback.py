# backend/services/feedback.py
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from core.errors import StoreError
from db.models import INTERVIEWS, USER_ANSWERS
from db.store import DocumentStore
from services import ui
from services.dashboard import interview_card

log = logging.getLogger(__name__)


def overall_rating(answers: Iterable[Dict[str, Any]]) -> str:
    """Arithmetic mean of `rating`, one decimal place; "0.0" when there are no answers."""
    ratings = [a.get("rating") or 0 for a in answers]
    if not ratings:
        return "0.0"
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return str(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def load_feedback(store: DocumentStore, interview_id: str, not_found_redirect_ms: int = 3000) -> Dict[str, Any]:
    notifications: List[ui.Notification] = []
    interview: Optional[Dict[str, Any]] = None
    answers: List[Dict[str, Any]] = []
    redirect = None

    try:
        interview = store.get(INTERVIEWS, interview_id)
        if interview is None:
            notifications.append(ui.error("Interview not found."))
            redirect = ui.Redirect(ui.DASHBOARD_PATH, not_found_redirect_ms)
    except StoreError as e:
        log.error("fetching interview %s failed: %s", interview_id, e.message)
        notifications.append(ui.error("Failed to fetch interview."))

    try:
        answers = store.query(USER_ANSWERS, mockIdRef=interview_id)
    except StoreError as e:
        log.error("fetching feedback for %s failed: %s", interview_id, e.message)
        notifications.append(ui.error("Failed to load feedback."))

    return render(interview_id, interview, answers, notifications, redirect)


def render(interview_id: str, interview: Optional[Dict[str, Any]], answers: List[Dict[str, Any]],
           notifications: List[ui.Notification], redirect: Optional[ui.Redirect] = None) -> Dict[str, Any]:
    position = interview["position"] if interview else ""
    return {
        "view": "feedback",
        "interview_id": interview_id,
        "breadcrumbs": ui.breadcrumbs("Feedback", (position, ui.interview_path(interview_id))),
        "title": "Congratulations!",
        "description": (
            "Your personalized feedback is now available. Dive in to see your strengths, "
            "areas for improvement, and tips to help you ace your next interview."
        ),
        "overall_rating": overall_rating(answers),
        "rating_scale": 10,
        "interview": interview_card(interview, on_mock_page=True) if interview else None,
        "feedbacks": [
            {
                "id": a["id"],
                "question": a["question"],
                "rating": a["rating"],
                "correct_ans": a["correct_ans"],
                "user_ans": a["user_ans"],
                "feedback": a["feedback"],
            }
            for a in answers
        ],
        "empty_message": None if answers else "No feedback available for this interview.",
        "notifications": [n.to_dict() for n in notifications],
        "redirect": redirect.to_dict() if redirect else None,
    }
