"""
app/api/chat.py

Purpose: Chat endpoint

- Runs one coaching turn with the user's full context
- Queues activity, token and insight bookkeeping after the response
"""

from fastapi import APIRouter, BackgroundTasks

from app.core.exceptions import SolError
from app.core.logging import LogContext, get_logger
from app.schemas.requests import ChatRequest
from app.services.chat_service import handle_chat

logger = get_logger(__name__)
router = APIRouter()


@router.post("/chat")
async def chat(request: ChatRequest, background_tasks: BackgroundTasks):
    """
    One chat turn.

    The reply is returned as soon as it is generated; message analysis and
    token accounting run as background tasks.
    """
    with LogContext(email=request.email):
        try:
            return await handle_chat(
                request.email,
                request.message,
                request.conversation_history,
                background_tasks,
            )
        except SolError:
            raise
        except Exception as e:
            logger.error(f"Chat turn failed: {e}", exc_info=True)
            raise SolError("Failed to process chat message", details=str(e)) from e
