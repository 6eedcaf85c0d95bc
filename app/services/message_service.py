"""
app/services/message_service.py

Purpose: Conversation logging (Messages table)
"""

from typing import List, Optional

from app.core.logging import get_logger
from app.db.airtable import all_of, field_equals, field_on_or_after, get_store
from app.models.message import Message
from utils.constants import MESSAGE_ID_PREFIX, MESSAGES_TABLE, RECENT_MESSAGE_LIMIT
from utils.id_utils import generate_record_id
from utils.time_utils import cutoff_iso, iso_timestamp
from utils.validation_utils import normalize_email

logger = get_logger(__name__)


async def log_message(
    email: str,
    user_message: str,
    sol_response: str,
    tokens_used: int = 0,
    tags: str = "",
    timestamp: Optional[str] = None
) -> Message:
    """
    Appends one chat turn to the Messages table.

    Returns:
        The logged message
    """
    message = Message(
        message_id=generate_record_id(MESSAGE_ID_PREFIX),
        email=normalize_email(email),
        user_message=user_message,
        sol_response=sol_response,
        timestamp=timestamp or iso_timestamp(),
        tokens_used=tokens_used,
        tags=tags,
    )

    store = get_store()
    await store.create_record(MESSAGES_TABLE, message.to_fields())
    logger.info(f"Message logged: {message.message_id}")
    return message


async def fetch_recent_messages(
    email: str,
    hours: float = 24,
    limit: int = RECENT_MESSAGE_LIMIT
) -> List[Message]:
    """Newest-first messages from the last `hours` hours."""
    store = get_store()
    records = await store.find_records(
        MESSAGES_TABLE,
        formula=all_of(
            field_equals("User ID", normalize_email(email)),
            field_on_or_after("Timestamp", cutoff_iso(hours=hours)),
        ),
        sort=[("Timestamp", "desc")],
        max_records=limit,
    )
    return [Message.from_record(record) for record in records]
