# backend/api/ops.py
from fastapi import APIRouter, Depends

from ai.genai_client import GenerativeClient
from api.deps import get_genai
from core.errors import GenerationError
from services.prompts import PING_PROMPT

router = APIRouter(prefix="/ops", tags=["ops"])


@router.get("/genai")
async def genai_status(genai: GenerativeClient = Depends(get_genai)):
    try:
        result = await genai.send_message(PING_PROMPT)
    except GenerationError as e:
        return {"genai": "offline", "error": e.message}
    return {"genai": "online", "provider": result.provider, "reply": result.text()}
