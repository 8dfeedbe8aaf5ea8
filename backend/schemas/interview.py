# backend/schemas/interview.py
import math
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError


class InterviewForm(BaseModel):
    """Editor form. Field names match the persisted record."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    position: str = Field(..., max_length=100)
    description: str
    experience: float = 0
    techStack: str

    @field_validator("position", mode="before")
    @classmethod
    def _position(cls, v: Any) -> Any:
        if not isinstance(v, str) or not v.strip():
            raise PydanticCustomError("position_required", "Position is required")
        if len(v.strip()) > 100:
            raise PydanticCustomError("position_too_long", "Position must be at most 100 characters")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v: Any) -> Any:
        if not isinstance(v, str) or len(v.strip()) < 10:
            raise PydanticCustomError("description_required", "Description is required")
        return v

    @field_validator("experience", mode="before")
    @classmethod
    def _experience(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise PydanticCustomError("experience_number", "Experience must be a number")
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        try:
            num = float(v)
        except (TypeError, ValueError):
            raise PydanticCustomError("experience_number", "Experience must be a number")
        if not math.isfinite(num):
            raise PydanticCustomError("experience_number", "Experience must be a number")
        if num < 0:
            raise PydanticCustomError("experience_negative", "Experience cannot be negative")
        return num

    @field_validator("techStack", mode="before")
    @classmethod
    def _tech_stack(cls, v: Any) -> Any:
        if not isinstance(v, str) or not v.strip():
            raise PydanticCustomError("tech_stack_required", "Tech stack must be at least a character")
        return v


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """First message per field, keyed by field name."""
    out: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("form",)
        key = str(loc[0])
        if err.get("type") == "missing":
            msg = {
                "position": "Position is required",
                "description": "Description is required",
                "techStack": "Tech stack must be at least a character",
            }.get(key, "Field required")
        else:
            msg = err.get("msg", "Invalid value")
        out.setdefault(key, msg)
    return out

