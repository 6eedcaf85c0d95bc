"""
app/services/user_service.py

Purpose: User data management

- Look up user rows by email (the table's primary key)
- Partial profile updates
- Tag merging
- Monthly token accounting and last-activity tracking
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Union

from app.core.exceptions import ResourceNotFoundError, StoreError
from app.core.logging import get_logger
from app.db.airtable import field_equals, get_store
from app.models.user import (
    LAST_MESSAGE_FIELD,
    TAGS_FIELD,
    TOKEN_HISTORY_FIELD,
    TOKENS_THIS_MONTH_FIELD,
    USER_ID_FIELD,
    UserProfile,
)
from utils.constants import USERS_TABLE
from utils.tag_utils import merge_tags
from utils.time_utils import iso_timestamp, utc_now
from utils.validation_utils import normalize_email

logger = get_logger(__name__)


async def get_user_record(email: str) -> Optional[Dict[str, Any]]:
    """
    Retrieves the raw Users row for an email.

    Returns:
        Airtable record or None if no row matches
    """
    store = get_store()
    return await store.find_first(USERS_TABLE, formula=field_equals(USER_ID_FIELD, normalize_email(email)))


async def get_user_profile(email: str) -> Optional[UserProfile]:
    record = await get_user_record(email)
    return UserProfile.from_record(record) if record else None


async def require_user_profile(email: str) -> UserProfile:
    """
    Retrieves a profile or raises.

    Raises:
        ResourceNotFoundError: If the email has no Users row
    """
    profile = await get_user_profile(email)
    if profile is None:
        raise ResourceNotFoundError(f"User not found: {email}")
    return profile


async def get_user_record_id(email: str) -> Optional[str]:
    """Record ID used when linking insights, visionings and plans to a user."""
    record = await get_user_record(email)
    return record["id"] if record else None


async def get_user_by_record_id(record_id: str) -> Optional[UserProfile]:
    store = get_store()
    try:
        record = await store.get_record(USERS_TABLE, record_id)
    except StoreError as e:
        if e.status == 404:
            return None
        raise
    return UserProfile.from_record(record)


async def update_user_profile(email: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Patches the user's row with the given fields.

    Args:
        email: User email
        updates: Airtable field name -> value

    Returns:
        Updated record, or None if the user does not exist
    """
    if not updates:
        return None

    record_id = await get_user_record_id(email)
    if not record_id:
        logger.warning(f"User not found for profile update: {email}")
        return None

    store = get_store()
    result = await store.update_record(USERS_TABLE, record_id, updates)
    logger.info(f"User profile updated ({', '.join(updates)})", extra={"record_id": record_id})
    return result


def merged_tags_update(profile: Optional[UserProfile], new_tags: Union[str, Iterable[str], None]) -> Dict[str, str]:
    """
    Builds a Tags update merging new tags into the profile's existing ones.
    Returns {} when there is nothing to add.
    """
    if not new_tags:
        return {}
    existing = profile.tags if profile else ""
    merged = merge_tags(existing, new_tags)
    if merged == merge_tags(existing):
        return {}
    return {TAGS_FIELD: merged}


def token_usage_updates(profile: UserProfile, tokens_used: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Computes the token accounting fields after a chat turn.

    When the previous message fell in an earlier month, that month's total is
    prepended to the usage history and the monthly counter restarts.
    """
    now = now or utc_now()
    current = profile.tokens_used_this_month
    updates: Dict[str, Any] = {}

    last = profile.last_message_date
    if last is not None and last.strftime("%Y-%m") != now.strftime("%Y-%m"):
        line = f"{last.strftime('%Y-%m')}: {current} tokens"
        history = profile.token_usage_history
        updates[TOKEN_HISTORY_FIELD] = f"{line}\n{history}" if history else line
        current = 0
        logger.info(f"Token rollover for {profile.email}: {line}")

    if tokens_used or updates:
        updates[TOKENS_THIS_MONTH_FIELD] = current + tokens_used
    return updates


async def record_chat_activity(email: str, tokens_used: int = 0, timestamp: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Updates Last Message Date and token accounting in a single write.

    Returns:
        Updated record, or None if the user does not exist
    """
    profile = await get_user_profile(email)
    if profile is None:
        logger.warning(f"User not found for activity update: {email}")
        return None

    updates = token_usage_updates(profile, tokens_used)
    updates[LAST_MESSAGE_FIELD] = timestamp or iso_timestamp()

    store = get_store()
    return await store.update_record(USERS_TABLE, profile.record_id, updates)
