"""
app/flow/handlers/visioning.py

Handles: uploaded visioning homework

- Runs the full visioning analysis flow
- Returns the user-facing status message
"""

from typing import Any, Dict

from app.core.logging import get_logger
from app.services.visioning_service import process_visioning
from utils.constants import VISIONING_PROCESSED_MESSAGE

logger = get_logger(__name__)


async def handle_visioning_document(email: str, text: str) -> Dict[str, Any]:
    result = await process_visioning(email, text)
    logger.info(f"Visioning document processed with {result['insights_created']} insights")

    return {
        "success": True,
        "type": "visioning",
        "message": VISIONING_PROCESSED_MESSAGE.format(count=result["insights_created"]),
        "insights_created": result["insights_created"],
        "extracted_data": result["extracted_data"],
    }
