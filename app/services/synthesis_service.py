"""
app/services/synthesis_service.py

Purpose: Essence Profile synthesis

- Decides when a profile is stale (age or volume of new entries)
- Buckets insight entries by keyword
- Prompts the language model for a narrative profile
- Writes the profile and synthesis date back to the user
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.core.config import settings
from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger
from app.models.insight import InsightEntry
from app.models.user import ESSENCE_FIELD, LAST_SYNTHESIS_FIELD, UserProfile
from app.services.insight_service import fetch_all_insight_entries
from app.services.llm_service import LLMService, get_llm_service
from app.services.prompts import ESSENCE_INSTRUCTIONS
from app.services.user_service import get_user_profile, update_user_profile
from utils.constants import SYNTHESIS_BUCKETS, UNIQUE_BUCKET
from utils.time_utils import days_since, iso_timestamp, utc_now
from utils.validation_utils import truncate

logger = get_logger(__name__)

BUCKET_SAMPLE_SIZE = 8
UNIQUE_SAMPLE_SIZE = 5
EVOLUTION_SAMPLE_SIZE = 5

BUCKET_HEADINGS = {
    "micro_patterns": "MICRO-PATTERNS",
    "communication": "COMMUNICATION ESSENCE",
    "decision_making": "DECISION-MAKING FINGERPRINT",
    "transformation": "TRANSFORMATION TRIGGERS",
    "emotional": "EMOTIONAL SIGNATURES",
    "business": "BUSINESS APPROACH",
    "evolution": "GROWTH AND SHIFTS",
    UNIQUE_BUCKET: "UNIQUE FACTORS",
}

DIVIDER = "=" * 39


def count_new_entries(entries: Sequence[InsightEntry], since: datetime) -> int:
    return sum(1 for entry in entries if entry.date_created and entry.date_created > since)


def should_synthesize(
    last_synthesis: Optional[datetime],
    entries: Sequence[InsightEntry],
    now: Optional[datetime] = None,
    force: bool = False
) -> Tuple[bool, str]:
    """
    Decides whether the Essence Profile should be regenerated.

    Runs when forced, when never synthesized, when the last synthesis is at
    least SYNTHESIS_MAX_AGE_DAYS old, or when SYNTHESIS_NEW_ENTRY_THRESHOLD
    entries have arrived since.

    Returns:
        (run, reason)
    """
    if force:
        return True, "Forced regeneration"
    if last_synthesis is None:
        return True, "No previous synthesis"

    age = days_since(last_synthesis, now)
    new_entries = count_new_entries(entries, last_synthesis)

    if age >= settings.SYNTHESIS_MAX_AGE_DAYS:
        return True, f"Last synthesis was {age:.1f} days ago"
    if new_entries >= settings.SYNTHESIS_NEW_ENTRY_THRESHOLD:
        return True, f"{new_entries} new entries since last synthesis"

    return False, f"Only {age:.1f} days and {new_entries} new entries since last synthesis"


def categorize_entries(entries: Sequence[InsightEntry]) -> Dict[str, List[InsightEntry]]:
    """
    Sorts entries into fixed buckets by tag and note keywords.
    The first matching bucket wins; unmatched entries land in "unique".
    """
    buckets: Dict[str, List[InsightEntry]] = {name: [] for name, _, _ in SYNTHESIS_BUCKETS}
    buckets[UNIQUE_BUCKET] = []

    for entry in entries:
        tags = entry.tags.lower()
        notes = entry.notes.lower()
        for name, tag_fragments, note_fragments in SYNTHESIS_BUCKETS:
            if any(fragment in tags for fragment in tag_fragments) or any(
                fragment in notes for fragment in note_fragments
            ):
                buckets[name].append(entry)
                break
        else:
            buckets[UNIQUE_BUCKET].append(entry)

    return buckets


def _bucket_block(heading: str, entries: List[InsightEntry], sample_size: int) -> str:
    samples = "\n\n".join(entry.notes for entry in entries[:sample_size]) or "None yet"
    return f"{DIVIDER}\n{heading} ({len(entries)} insights):\n{samples}\n\n"


def build_synthesis_prompt(profile: UserProfile, entries: Sequence[InsightEntry]) -> str:
    """
    Entries are expected newest first.
    """
    total = len(entries)
    buckets = categorize_entries(entries)

    prompt = (
        f'You are synthesizing {total} Personalgorithm™ observations into an '
        f'"impossibly perceptive" Essence Profile.\n\n'
        f"USER: {profile.email}\n"
        f"CURRENT VISION: {profile.current_vision or 'Not yet defined'}\n"
        f"CURRENT STATE: {profile.current_state or 'Not yet defined'}\n"
        f"CURRENT GOALS: {profile.current_goals or 'Not yet defined'}\n\n"
        f"PERSONALGORITHM™ DATA ({total} observations):\n\n"
    )

    for name, _, _ in SYNTHESIS_BUCKETS:
        prompt += _bucket_block(BUCKET_HEADINGS[name], buckets[name], BUCKET_SAMPLE_SIZE)

    early = list(entries[-EVOLUTION_SAMPLE_SIZE:])
    recent = list(entries[:EVOLUTION_SAMPLE_SIZE])
    prompt += f"{DIVIDER}\nPATTERN EVOLUTION (early vs recent):\n\n"
    prompt += "EARLY PATTERNS:\n" + "\n".join(f"• {entry.notes}" for entry in early) + "\n\n"
    prompt += "RECENT PATTERNS:\n" + "\n".join(f"• {entry.notes}" for entry in recent) + "\n\n"

    prompt += _bucket_block(BUCKET_HEADINGS[UNIQUE_BUCKET], buckets[UNIQUE_BUCKET], UNIQUE_SAMPLE_SIZE)
    prompt += f"{DIVIDER}\n\n{ESSENCE_INSTRUCTIONS}"
    return prompt


async def synthesize_essence(email: str, force: bool = False, llm: Optional[LLMService] = None) -> Dict[str, Any]:
    """
    Regenerates the user's Essence Profile when it is stale.

    Returns:
        Result dict; success is False when there are too few entries

    Raises:
        ResourceNotFoundError: If the user does not exist
        LLMServiceError: If the synthesis call fails
    """
    profile = await get_user_profile(email)
    if profile is None:
        raise ResourceNotFoundError(f"User not found: {email}")

    entries = await fetch_all_insight_entries(email)
    if len(entries) < settings.SYNTHESIS_MIN_ENTRIES:
        return {
            "success": False,
            "message": (
                f"Need at least {settings.SYNTHESIS_MIN_ENTRIES} Personalgorithm™ entries to create "
                f"meaningful synthesis. Currently have: {len(entries)}"
            ),
            "count": len(entries),
        }

    now = utc_now()
    run, reason = should_synthesize(profile.last_synthesis_date, entries, now=now, force=force)
    if not run:
        logger.info(f"Essence synthesis skipped: {reason}")
        return {
            "success": True,
            "message": "Essence is current - no regeneration needed",
            "last_synthesis": iso_timestamp(profile.last_synthesis_date),
            "skip_reason": reason,
        }

    logger.info(f"Synthesizing essence from {len(entries)} entries ({reason})")
    llm = llm or get_llm_service()
    completion = await llm.complete(
        prompt=build_synthesis_prompt(profile, entries),
        model=settings.OPENAI_ANALYSIS_MODEL,
        max_tokens=1800,
        temperature=0.35,
    )

    essence = truncate(completion.content, settings.ESSENCE_MAX_CHARS)
    await update_user_profile(email, {
        ESSENCE_FIELD: essence,
        LAST_SYNTHESIS_FIELD: iso_timestamp(now),
    })

    return {
        "success": True,
        "message": "Personalgorithm™ Essence profile generated successfully",
        "entries_analyzed": len(entries),
        "essence_length": len(essence),
        "preview": essence[:250] + "...",
    }
