"""
app/flow/handlers/business_plan.py

Handles: uploaded business plans

- Extracts plan sections from plain text
- Stores the plan through the business plan flow
"""

from typing import Any, Dict

from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.services.business_plan_service import extract_business_plan_data, process_business_plan
from utils.constants import BUSINESS_PLAN_PROCESSED_MESSAGE

logger = get_logger(__name__)


async def handle_business_plan_document(email: str, text: str) -> Dict[str, Any]:
    """
    Raises:
        ValidationError: If no plan section could be found in the text
    """
    data = extract_business_plan_data(text)
    if data.is_empty():
        raise ValidationError("No business plan sections found in document")

    result = await process_business_plan(email, data)

    return {
        "success": True,
        "type": "business-plan",
        "message": BUSINESS_PLAN_PROCESSED_MESSAGE,
        "business_plan_id": result["business_plan_id"],
        "extracted_data": data.model_dump(by_alias=True, exclude_defaults=True),
    }
