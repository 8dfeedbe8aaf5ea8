# db/models.py
"""
Persisted record shapes.

Column names are the wire names the dashboard has always used
(``mockIdRef``, ``correct_ans``, ``techStack`` ...); python attributes are
snake_case and ``to_record()`` converts back to wire names.
"""
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    Text,
)

from .session import Base


def _new_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ts(value):
    return value.isoformat() if isinstance(value, datetime) else value


class RecordMixin:
    # wire name -> python attribute
    wire_fields: Dict[str, str] = {}

    def to_record(self) -> Dict[str, Any]:
        rec = {"id": self.id}
        for wire, attr in self.wire_fields.items():
            rec[wire] = _ts(getattr(self, attr))
        return rec

    def apply(self, data: Dict[str, Any]) -> None:
        for wire, value in data.items():
            attr = self.wire_fields.get(wire)
            if attr is None:
                raise KeyError(f"unknown field {wire!r} for {self.__tablename__}")
            setattr(self, attr, value)


class Interview(RecordMixin, Base):
    __tablename__ = "interviews"

    id = Column(String(32), primary_key=True, default=_new_id)
    position = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    experience = Column(Float, nullable=False, default=0)
    tech_stack = Column("techStack", Text, nullable=False)
    questions = Column(JSON, nullable=False, default=list)

    created_at = Column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column("updatedAt", DateTime(timezone=True), nullable=True)

    wire_fields = {
        "position": "position",
        "description": "description",
        "experience": "experience",
        "techStack": "tech_stack",
        "questions": "questions",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    }


class UserAnswer(RecordMixin, Base):
    __tablename__ = "userAnswers"

    id = Column(String(32), primary_key=True, default=_new_id)
    # no FK: deleting an interview leaves its answers behind
    mock_id_ref = Column("mockIdRef", String(32), nullable=False, index=True)
    question = Column(Text, nullable=False, index=True)
    correct_ans = Column(Text, nullable=False, default="")
    user_ans = Column(Text, nullable=False, default="")
    feedback = Column(Text, nullable=False, default="")
    rating = Column(Integer, nullable=False, default=0)

    created_at = Column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)

    wire_fields = {
        "mockIdRef": "mock_id_ref",
        "question": "question",
        "correct_ans": "correct_ans",
        "user_ans": "user_ans",
        "feedback": "feedback",
        "rating": "rating",
        "createdAt": "created_at",
    }


INTERVIEWS = Interview.__tablename__
USER_ANSWERS = UserAnswer.__tablename__

COLLECTIONS = {
    INTERVIEWS: Interview,
    USER_ANSWERS: UserAnswer,
}
