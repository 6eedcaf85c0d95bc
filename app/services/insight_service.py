"""
app/services/insight_service.py

Purpose: Insight entry storage (Personalgorithm™ table)

- Append new entries linked to a user
- Read entries back newest-first for context and synthesis
"""

from typing import Iterable, List, Optional, Union

from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger
from app.db.airtable import get_store, linked_contains
from app.models.insight import DATE_CREATED_FIELD, USER_LINK_FIELD, CandidateInsight, InsightEntry
from app.services.user_service import get_user_record_id
from utils.constants import INSIGHT_CONTEXT_LIMIT, INSIGHT_ID_PREFIX, INSIGHTS_TABLE, SYNTHESIS_FETCH_LIMIT
from utils.id_utils import generate_record_id
from utils.tag_utils import merge_tags
from utils.time_utils import iso_timestamp
from utils.validation_utils import normalize_email

logger = get_logger(__name__)


async def create_insight_entry(
    user_record_id: str,
    notes: str,
    tags: Union[str, Iterable[str], None] = "auto-generated"
) -> InsightEntry:
    """
    Appends one insight entry for a user.

    Args:
        user_record_id: Users record ID to link to
        notes: The observation text
        tags: Comma-joined string or list of tags

    Returns:
        The stored entry
    """
    created_at = iso_timestamp()
    entry = InsightEntry(
        entry_id=generate_record_id(INSIGHT_ID_PREFIX),
        notes=notes,
        tags=merge_tags(tags),
    )

    store = get_store()
    record = await store.create_record(INSIGHTS_TABLE, entry.to_fields(user_record_id, created_at))
    entry.record_id = record.get("id")
    logger.info(f"Insight entry created: {notes[:50]}...", extra={"record_id": entry.record_id})
    return entry


async def create_insight_entries(
    email: str,
    candidates: List[CandidateInsight],
    user_record_id: Optional[str] = None
) -> List[InsightEntry]:
    """
    Stores a batch of extracted insights for one user.

    Raises:
        ResourceNotFoundError: If the user has no Users row
    """
    if not candidates:
        return []

    user_record_id = user_record_id or await get_user_record_id(email)
    if not user_record_id:
        raise ResourceNotFoundError(f"User not found: {email}")

    created = []
    for candidate in candidates:
        created.append(await create_insight_entry(user_record_id, candidate.note, candidate.tags))
    return created


async def fetch_insight_entries(email: str, limit: int = INSIGHT_CONTEXT_LIMIT) -> List[InsightEntry]:
    """Newest-first insight entries linked to the user."""
    store = get_store()
    records = await store.find_records(
        INSIGHTS_TABLE,
        formula=linked_contains(USER_LINK_FIELD, normalize_email(email)),
        sort=[(DATE_CREATED_FIELD, "desc")],
        max_records=limit,
    )
    entries = [InsightEntry.from_record(record) for record in records]
    return [entry for entry in entries if entry.notes]


async def fetch_all_insight_entries(email: str) -> List[InsightEntry]:
    """Entries for synthesis, newest first, bounded to keep prompts manageable."""
    return await fetch_insight_entries(email, limit=SYNTHESIS_FETCH_LIMIT)
