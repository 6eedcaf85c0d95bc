"""
app/flow/handlers/general.py

Handles: any other uploaded document

- Short LLM summary (text excerpt when the call fails)
- Saved as one insight entry for later context
"""

from typing import Any, Dict

from app.core.config import settings
from app.core.exceptions import LLMServiceError
from app.core.logging import get_logger
from app.services.insight_service import create_insight_entry
from app.services.llm_service import get_llm_service
from app.services.prompts import DOCUMENT_SUMMARY_PROMPT
from app.services.user_service import require_user_profile
from utils.constants import GENERAL_DOCUMENT_PROCESSED_MESSAGE, GENERAL_DOCUMENT_TAGS
from utils.validation_utils import truncate

logger = get_logger(__name__)

SUMMARY_INPUT_CHARS = 2000
FALLBACK_EXCERPT_CHARS = 200


async def summarize_document(filename: str, text: str) -> str:
    try:
        completion = await get_llm_service().complete(
            prompt=DOCUMENT_SUMMARY_PROMPT.format(filename=filename, content=truncate(text, SUMMARY_INPUT_CHARS)),
            model=settings.OPENAI_CHAT_MODEL,
            max_tokens=200,
            temperature=0.3,
        )
        if completion.content:
            return completion.content
    except LLMServiceError as e:
        logger.warning(f"Document summary failed, using excerpt: {e.message}")

    return f"Document: {filename} - {text[:FALLBACK_EXCERPT_CHARS]}..."


async def handle_general_document(email: str, text: str, filename: str) -> Dict[str, Any]:
    profile = await require_user_profile(email)
    summary = await summarize_document(filename, text)

    entry = await create_insight_entry(
        profile.record_id,
        f"Document uploaded: {filename}. Summary: {summary}. "
        "This provides context about their work and interests.",
        GENERAL_DOCUMENT_TAGS,
    )

    return {
        "success": True,
        "type": "general",
        "message": GENERAL_DOCUMENT_PROCESSED_MESSAGE.format(filename=filename),
        "summary": summary,
        "entry_id": entry.record_id,
    }
