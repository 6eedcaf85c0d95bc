"""
app/api/insights.py

Purpose: Personalgorithm™ endpoints

- /analyze-message: extracts insights from one chat exchange
- /synthesize-essence: regenerates the Essence Profile when it is stale
"""

from fastapi import APIRouter

from app.core.exceptions import SolError
from app.core.logging import LogContext, get_logger
from app.schemas.requests import AnalyzeMessageRequest, SynthesizeEssenceRequest
from app.services.insight_extractor import analyze_conversation_turn
from app.services.synthesis_service import synthesize_essence

logger = get_logger(__name__)
router = APIRouter()


@router.post("/analyze-message")
async def analyze_message(request: AnalyzeMessageRequest):
    with LogContext(email=request.email):
        try:
            result = await analyze_conversation_turn(
                request.email,
                request.user_message,
                request.sol_response,
                request.conversation_context,
            )
        except SolError:
            raise
        except Exception as e:
            logger.error(f"Message analysis failed: {e}", exc_info=True)
            raise SolError("Failed to analyze message", details=str(e)) from e

        return {"success": True, **result}


@router.post("/synthesize-essence")
async def synthesize(request: SynthesizeEssenceRequest):
    """
    Result carries success False (HTTP 200) when the user has too few
    insight entries to synthesize from.
    """
    with LogContext(email=request.email):
        try:
            return await synthesize_essence(request.email, force=request.force_regenerate)
        except SolError:
            raise
        except Exception as e:
            logger.error(f"Essence synthesis failed: {e}", exc_info=True)
            raise SolError("Failed to synthesize essence profile", details=str(e)) from e
