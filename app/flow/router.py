"""
app/flow/router.py

Purpose: Document routing

- Classifies an uploaded document by filename and keyword heuristics
- Dispatches to the visioning, business plan or general handler
"""

from enum import Enum
from typing import Any, Dict

from app.core.logging import LogContext, get_logger
from app.flow.handlers.business_plan import handle_business_plan_document
from app.flow.handlers.general import handle_general_document
from app.flow.handlers.visioning import handle_visioning_document
from utils.constants import (
    BUSINESS_PLAN_FILENAME_KEYWORDS,
    BUSINESS_PLAN_INDICATORS,
    BUSINESS_PLAN_SCORE_THRESHOLD,
    VISIONING_FILENAME_KEYWORDS,
    VISIONING_INDICATORS,
    VISIONING_SCORE_THRESHOLD,
)

logger = get_logger(__name__)


class DocumentType(str, Enum):
    VISIONING = "visioning"
    BUSINESS_PLAN = "business-plan"
    GENERAL = "general"


def keyword_score(text: str, indicators) -> int:
    """Number of distinct indicators present in the (lowercased) text."""
    return sum(1 for indicator in indicators if indicator in text)


def classify_document(text: str, filename: str = "") -> DocumentType:
    """
    Classifies a document.

    Filename keywords win; otherwise at least 3 visioning indicators make a
    visioning document and at least 2 business plan indicators a business
    plan. Everything else is general.
    """
    name = (filename or "").lower()
    if any(keyword in name for keyword in VISIONING_FILENAME_KEYWORDS):
        return DocumentType.VISIONING
    if any(keyword in name for keyword in BUSINESS_PLAN_FILENAME_KEYWORDS):
        return DocumentType.BUSINESS_PLAN

    content = (text or "").lower()
    if keyword_score(content, VISIONING_INDICATORS) >= VISIONING_SCORE_THRESHOLD:
        return DocumentType.VISIONING
    if keyword_score(content, BUSINESS_PLAN_INDICATORS) >= BUSINESS_PLAN_SCORE_THRESHOLD:
        return DocumentType.BUSINESS_PLAN

    return DocumentType.GENERAL


async def route_document(email: str, text: str, filename: str = "") -> Dict[str, Any]:
    """
    Classifies a document and runs the matching handler.

    Returns:
        Handler result: {success, type, message, ...}
    """
    document_type = classify_document(text, filename)

    with LogContext(email=email, doc_type=document_type.value):
        logger.info(f"Routing document '{filename}' ({len(text)} chars)")

        if document_type == DocumentType.VISIONING:
            return await handle_visioning_document(email, text)
        if document_type == DocumentType.BUSINESS_PLAN:
            return await handle_business_plan_document(email, text)
        return await handle_general_document(email, text, filename)
