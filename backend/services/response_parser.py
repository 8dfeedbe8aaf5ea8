# backend/services/response_parser.py
"""
Pull structured data out of free-form model output.

Two shapes are understood:

* array mode - ``[{"question": ..., "answer": ...}, ...]`` (question sets)
* object mode - ``{"ratings": <number>, "feedback": <string>}`` (scoring)

Parsing never raises. A failure returns the shape's fallback value in a
ParseOutcome with ``ok=False`` and a reason, and logs a warning.
"""
from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

log = logging.getLogger(__name__)

DEFAULT_QUESTION = "Default question"
DEFAULT_ANSWER = "Default answer"
MISSING_QUESTION = "No question provided"
MISSING_ANSWER = "No answer provided"

NO_JSON_FEEDBACK = "No valid feedback generated."
PARSE_FAILURE_FEEDBACK = "Unable to parse AI response."

_FENCE_RE = re.compile(r"(json|```|`)")


@dataclass(frozen=True)
class ParseOutcome:
    ok: bool
    value: Any
    reason: Optional[str] = None


def default_questions() -> List[Dict[str, str]]:
    return [{"question": DEFAULT_QUESTION, "answer": DEFAULT_ANSWER}]


def fallback_rating(feedback: str) -> Dict[str, Any]:
    return {"ratings": 0, "feedback": feedback}


def extract_payload(raw_text: str) -> Optional[str]:
    """Slice from the first '{' or '[' to the last '}' or ']'; None if there is no such span."""
    text = (raw_text or "").strip()
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    end = max(text.rfind("}"), text.rfind("]"))
    if not starts or end == -1:
        return None
    start = min(starts)
    if end < start:
        return None
    return text[start:end + 1]


def _loads(payload: str) -> Any:
    try:
        return json.loads(payload)
    except ValueError:
        # fence markup left inside the span (```json ... ``` blocks glued together)
        return json.loads(_FENCE_RE.sub("", payload).strip())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def parse_questions(raw_text: str) -> ParseOutcome:
    """Array mode."""
    payload = extract_payload(raw_text)
    if payload is None:
        log.warning("no JSON array in model output", extra={"raw": (raw_text or "")[:300]})
        return ParseOutcome(False, default_questions(), "no JSON found")
    try:
        data = _loads(payload)
    except ValueError as e:
        log.warning("question set is not valid JSON: %s", e, extra={"raw": payload[:300]})
        return ParseOutcome(False, default_questions(), f"invalid JSON: {e}")

    if not isinstance(data, list):
        log.warning("question set root is %s, expected array", type(data).__name__)
        return ParseOutcome(False, default_questions(), "AI response is not an array")

    questions = []
    for item in data:
        item = item if isinstance(item, dict) else {}
        questions.append({
            "question": item.get("question") or MISSING_QUESTION,
            "answer": item.get("answer") or MISSING_ANSWER,
        })
    return ParseOutcome(True, questions)


def parse_rating(raw_text: str) -> ParseOutcome:
    """Object mode."""
    text = (raw_text or "").strip()
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end == -1 or end < start:
        log.warning("no JSON object in model output", extra={"raw": text[:300]})
        return ParseOutcome(False, fallback_rating(NO_JSON_FEEDBACK), "no JSON found")
    try:
        data = _loads(text[start:end + 1])
    except ValueError as e:
        log.warning("rating is not valid JSON: %s", e, extra={"raw": text[:300]})
        return ParseOutcome(False, fallback_rating(PARSE_FAILURE_FEEDBACK), f"invalid JSON: {e}")

    if not isinstance(data, dict):
        return ParseOutcome(False, fallback_rating(PARSE_FAILURE_FEEDBACK), "not an object")
    ratings, feedback = data.get("ratings"), data.get("feedback")
    if not _is_number(ratings):
        log.warning("non-numeric rating in model output: %r", ratings)
        return ParseOutcome(False, fallback_rating(PARSE_FAILURE_FEEDBACK), "rating is not a number")
    if not isinstance(feedback, str):
        log.warning("feedback is %s, expected string", type(feedback).__name__)
        return ParseOutcome(False, fallback_rating(PARSE_FAILURE_FEEDBACK), "feedback is not a string")
    return ParseOutcome(True, {"ratings": ratings, "feedback": feedback})
