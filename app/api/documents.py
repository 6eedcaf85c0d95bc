"""
app/api/documents.py

Purpose: Document endpoints

- /process-file: classifies an uploaded document and runs its handler
- /process-visioning: analyzes visioning homework text directly
- /process-existing-visioning: re-analyzes stored visioning records
"""

from fastapi import APIRouter

from app.core.exceptions import SolError
from app.core.logging import LogContext, get_logger
from app.flow.router import route_document
from app.schemas.requests import ProcessExistingVisioningRequest, ProcessFileRequest, ProcessVisioningRequest
from app.services.visioning_service import process_existing_visioning, process_visioning

logger = get_logger(__name__)
router = APIRouter()


@router.post("/process-file")
async def process_file(request: ProcessFileRequest):
    try:
        return await route_document(request.email, request.text, request.filename)
    except SolError:
        raise
    except Exception as e:
        logger.error(f"File processing failed for '{request.filename}': {e}", exc_info=True)
        raise SolError("Failed to process file", details=str(e)) from e


@router.post("/process-visioning")
async def visioning(request: ProcessVisioningRequest):
    with LogContext(email=request.email, doc_type="visioning"):
        try:
            return await process_visioning(request.email, request.visioning_text)
        except SolError:
            raise
        except Exception as e:
            logger.error(f"Visioning processing failed: {e}", exc_info=True)
            raise SolError("Failed to process visioning", details=str(e)) from e


@router.post("/process-existing-visioning")
async def existing_visioning(request: ProcessExistingVisioningRequest):
    try:
        return await process_existing_visioning(
            email=request.email,
            visioning_id=request.visioning_id,
            force_reprocess=request.force_reprocess,
        )
    except SolError:
        raise
    except Exception as e:
        logger.error(f"Visioning reprocessing failed: {e}", exc_info=True)
        raise SolError("Failed to reprocess visioning", details=str(e)) from e
