"""
app/api/business_plan.py

Purpose: Aligned Business® Plan endpoints

- /process-business-plan: stores a plan submitted by the user
- /generate-business-plan: drafts a plan from the user's context
"""

from fastapi import APIRouter

from app.core.exceptions import SolError
from app.core.logging import LogContext, get_logger
from app.schemas.requests import GenerateBusinessPlanRequest, ProcessBusinessPlanRequest
from app.services.business_plan_service import process_business_plan
from app.services.plan_generator import generate_business_plan

logger = get_logger(__name__)
router = APIRouter()


@router.post("/process-business-plan")
async def submit_business_plan(request: ProcessBusinessPlanRequest):
    with LogContext(email=request.email, doc_type="business-plan"):
        try:
            return await process_business_plan(request.email, request.business_plan_data)
        except SolError:
            raise
        except Exception as e:
            logger.error(f"Business plan processing failed: {e}", exc_info=True)
            raise SolError("Failed to process business plan", details=str(e)) from e


@router.post("/generate-business-plan")
async def generate(request: GenerateBusinessPlanRequest):
    """
    A plan younger than the refresh window is returned with success False
    unless update_existing is set.
    """
    with LogContext(email=request.email, doc_type="business-plan"):
        try:
            return await generate_business_plan(
                request.email,
                plan_type=request.plan_type,
                update_existing=request.update_existing,
            )
        except SolError:
            raise
        except Exception as e:
            logger.error(f"Business plan generation failed: {e}", exc_info=True)
            raise SolError("Failed to generate business plan", details=str(e)) from e
