"""
app/api/context.py

Purpose: User context endpoint

Returns the aggregated context bundle and its flattened summary.
"""

from fastapi import APIRouter

from app.core.exceptions import SolError
from app.core.logging import LogContext, get_logger
from app.schemas.requests import UserContextRequest
from app.services.context_service import aggregate_context, build_context_summary

logger = get_logger(__name__)
router = APIRouter()


@router.post("/user-context")
async def user_context(request: UserContextRequest):
    with LogContext(email=request.email):
        try:
            bundle = await aggregate_context(request.email)
        except SolError:
            raise
        except Exception as e:
            logger.error(f"Context aggregation failed: {e}", exc_info=True)
            raise SolError("Failed to fetch user context", details=str(e)) from e

        if bundle.failed_slices:
            logger.warning(f"Context returned with missing slices: {', '.join(bundle.failed_slices)}")

        return {
            "success": True,
            "email": bundle.email,
            "summary": build_context_summary(bundle),
            "context": bundle.model_dump(exclude={"slice_status"}),
            "slice_status": bundle.slice_status,
        }
