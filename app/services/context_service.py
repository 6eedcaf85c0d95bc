"""
app/services/context_service.py

Purpose: Per-user context aggregation

- Fetches nine context slices concurrently
- Absorbs slice failures (missing data, logged as warnings)
- Flattens the bundle into a natural-language summary for prompts
"""

import asyncio
from typing import Any, Awaitable, Dict, List, Optional

from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.logging import get_logger
from app.db.airtable import all_of, field_equals, field_on_or_after, field_present, get_store, linked_contains
from app.models.insight import InsightEntry
from app.models.message import Message
from app.models.user import UserProfile
from app.models.visioning import VisioningDocument
from app.services.business_plan_service import fetch_business_plans
from app.services.insight_service import fetch_insight_entries
from app.services.message_service import fetch_recent_messages
from app.services.user_service import get_user_profile
from app.services.visioning_service import fetch_latest_visioning
from utils.constants import (
    CHECKIN_LIMIT,
    CHECKIN_WEEKS,
    COACHING_METHOD_LIMIT,
    COACHING_METHODS_TABLE,
    RECENT_MESSAGE_LIMIT,
    SOL_NOTE_LIMIT,
    SOL_NOTES_TABLE,
    TRANSCRIPT_DAYS,
    TRANSCRIPT_LIMIT,
    TRANSCRIPTS_TABLE,
    WEEKLY_CHECKINS_TABLE,
)
from utils.time_utils import cutoff_iso

logger = get_logger(__name__)

Fields = Dict[str, Any]

SLICE_OK = "ok"
SLICE_FAILED = "failed"

# Insights listed in the flattened summary
SUMMARY_INSIGHT_COUNT = 3


class ContextBundle(BaseModel):
    """Everything known about one user, gathered for a single request."""

    email: str
    profile: Optional[UserProfile] = None
    recent_messages: List[Message] = Field(default_factory=list)
    insights: List[InsightEntry] = Field(default_factory=list)
    visioning: Optional[VisioningDocument] = None
    business_plans: List[Fields] = Field(default_factory=list)
    coaching_methods: List[Fields] = Field(default_factory=list)
    transcripts: List[Fields] = Field(default_factory=list)
    weekly_checkins: List[Fields] = Field(default_factory=list)
    sol_notes: List[Fields] = Field(default_factory=list)
    slice_status: Dict[str, str] = Field(default_factory=dict)

    @property
    def failed_slices(self) -> List[str]:
        return [name for name, status in self.slice_status.items() if status == SLICE_FAILED]


# ============================================================
# READ-ONLY CONTEXT TABLES
# ============================================================

def _fields(records: List[Dict[str, Any]]) -> List[Fields]:
    return [dict(record.get("fields", {}), id=record.get("id")) for record in records]


async def fetch_coaching_methods(limit: int = COACHING_METHOD_LIMIT) -> List[Fields]:
    """Aligned Business® Method lessons that carry content."""
    store = get_store()
    records = await store.find_records(
        COACHING_METHODS_TABLE,
        formula=field_present("Lesson Content"),
        max_records=limit,
    )
    return _fields(records)


async def fetch_sol_notes(limit: int = SOL_NOTE_LIMIT) -> List[Fields]:
    store = get_store()
    records = await store.find_records(
        SOL_NOTES_TABLE,
        formula=field_present("Note"),
        sort=[("Date Submitted", "desc")],
        max_records=limit,
    )
    return _fields(records)


async def fetch_recent_transcripts(email: str, days: int = TRANSCRIPT_DAYS, limit: int = TRANSCRIPT_LIMIT) -> List[Fields]:
    store = get_store()
    records = await store.find_records(
        TRANSCRIPTS_TABLE,
        formula=all_of(
            field_equals("User ID", email),
            field_on_or_after("Dates of Transcript", cutoff_iso(days=days)),
        ),
        sort=[("Dates of Transcript", "desc")],
        max_records=limit,
    )
    return _fields(records)


async def fetch_weekly_checkins(email: str, weeks: int = CHECKIN_WEEKS, limit: int = CHECKIN_LIMIT) -> List[Fields]:
    store = get_store()
    records = await store.find_records(
        WEEKLY_CHECKINS_TABLE,
        formula=all_of(
            linked_contains("User ID", email),
            field_on_or_after("Check-in Date", cutoff_iso(days=weeks * 7)),
        ),
        sort=[("Check-in Date", "desc")],
        max_records=limit,
    )
    return _fields(records)


async def _business_plan_fields(email: str) -> List[Fields]:
    return _fields(await fetch_business_plans(email))


# ============================================================
# AGGREGATION
# ============================================================

async def aggregate_context(email: str) -> ContextBundle:
    """
    Gathers the user's context slices concurrently.

    A slice that fails is left empty and marked "failed" in slice_status;
    this function never raises for slice failures.

    Args:
        email: User email

    Returns:
        ContextBundle (profile is None if the user does not exist)
    """
    slices: Dict[str, Awaitable[Any]] = {
        "profile": get_user_profile(email),
        "recent_messages": fetch_recent_messages(
            email, hours=settings.RECENT_MESSAGE_HOURS, limit=RECENT_MESSAGE_LIMIT
        ),
        "insights": fetch_insight_entries(email),
        "visioning": fetch_latest_visioning(email),
        "business_plans": _business_plan_fields(email),
        "coaching_methods": fetch_coaching_methods(),
        "transcripts": fetch_recent_transcripts(email),
        "weekly_checkins": fetch_weekly_checkins(email),
        "sol_notes": fetch_sol_notes(),
    }

    results = await asyncio.gather(*slices.values(), return_exceptions=True)

    values: Dict[str, Any] = {}
    status: Dict[str, str] = {}
    for name, result in zip(slices, results):
        if isinstance(result, Exception):
            logger.warning(f"Context slice '{name}' failed: {result}")
            status[name] = SLICE_FAILED
            continue
        status[name] = SLICE_OK
        if result is not None:
            values[name] = result

    bundle = ContextBundle(email=email, slice_status=status, **values)

    logger.info(
        f"Context loaded: profile={'yes' if bundle.profile else 'no'}, "
        f"messages={len(bundle.recent_messages)}, insights={len(bundle.insights)}, "
        f"visioning={'yes' if bundle.visioning else 'no'}, plans={len(bundle.business_plans)}, "
        f"failed={bundle.failed_slices or 'none'}"
    )
    return bundle


def build_context_summary(bundle: ContextBundle) -> str:
    """
    Flattens a bundle into the summary block used in analysis prompts.
    Missing fields get neutral placeholders.
    """
    profile = bundle.profile

    def value(attr: str, placeholder: str) -> str:
        text = getattr(profile, attr, "") if profile else ""
        return text or placeholder

    summary = "USER CONTEXT SUMMARY:\n\n"
    summary += f"MEMBERSHIP: {value('membership_plan', 'Not specified')}\n"
    summary += f"JOINED: {value('date_joined', 'Unknown')}\n\n"
    summary += f"CURRENT VISION: {value('current_vision', 'Being developed...')}\n\n"
    summary += f"CURRENT STATE: {value('current_state', 'Assessing...')}\n\n"
    summary += f"COACHING STYLE: {value('essence', 'Learning preferences...')}\n\n"
    summary += f"CURRENT GOALS: {value('current_goals', 'Exploring direction...')}\n\n"

    visioning_summary = bundle.visioning.summary if bundle.visioning and bundle.visioning.summary else "Not yet completed"
    summary += f"VISIONING SUMMARY: {visioning_summary}\n\n"

    top = [entry.notes for entry in bundle.insights[:SUMMARY_INSIGHT_COUNT]]
    if top:
        summary += "KEY PERSONALGORITHM INSIGHTS:\n"
        summary += "\n".join(f"{index}. {note}" for index, note in enumerate(top, 1))
        summary += "\n"

    return summary
