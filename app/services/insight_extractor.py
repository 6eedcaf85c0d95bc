"""
app/services/insight_extractor.py

Purpose: Insight extraction pipeline

- Decides whether a chat turn is worth analyzing
- Prompts the language model for nine labeled bracketed lists
- Filters candidates by length and novelty, then caps them
- Stores the survivors as insight entries
"""

import re
from typing import Dict, Iterable, List, Optional, Sequence

from app.core.config import settings
from app.core.exceptions import ExtractionError, LLMServiceError, ResourceNotFoundError
from app.core.logging import get_logger
from app.models.insight import CandidateInsight
from app.models.message import ConversationTurn
from app.services.llm_service import LLMService, get_llm_service
from app.services.prompts import CONVERSATION_SOURCE, DOCUMENT_SOURCE, INSIGHT_EXTRACTION_PROMPT
from utils.constants import (
    GENERIC_MESSAGE_PATTERNS,
    INSIGHT_LABELS,
    MIN_ANALYZED_SOL_RESPONSE,
    MIN_ANALYZED_USER_MESSAGE,
)
from utils.parsing_utils import parse_bracketed_lists
from utils.tag_utils import merge_tags
from utils.validation_utils import truncate

logger = get_logger(__name__)

GENERIC_MESSAGES = [re.compile(pattern, re.IGNORECASE) for pattern in GENERIC_MESSAGE_PATTERNS]

# Token-set overlap at or above this marks a candidate as already known
NOVELTY_JACCARD_THRESHOLD = 0.8

# Prior turns included with a conversation analysis
CONVERSATION_CONTEXT_TURNS = 3

DOCUMENT_EXTRACTION_MAX_CHARS = 12000


def should_analyze_message(user_message: str, sol_response: str) -> bool:
    """
    Skips exchanges too brief to reveal anything: short messages and greetings.
    """
    if len(user_message) < MIN_ANALYZED_USER_MESSAGE or len(sol_response) < MIN_ANALYZED_SOL_RESPONSE:
        return False

    stripped = user_message.strip()
    return not any(pattern.match(stripped) for pattern in GENERIC_MESSAGES)


# ============================================================
# NOVELTY
# ============================================================

def normalize_note(text: str) -> str:
    return " ".join(re.sub(r"[^a-z0-9]+", " ", text.lower()).split())


def _jaccard(a: set, b: set) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def is_near_duplicate(candidate: str, known: Iterable[str]) -> bool:
    """
    True if the candidate is contained in, contains, or heavily overlaps a known note.
    All inputs are expected to be normalized.
    """
    if not candidate:
        return True
    candidate_tokens = set(candidate.split())
    for note in known:
        if not note:
            continue
        if candidate in note or note in candidate:
            return True
        if _jaccard(candidate_tokens, set(note.split())) >= NOVELTY_JACCARD_THRESHOLD:
            return True
    return False


def filter_novel(notes: Iterable[str], existing_notes: Iterable[str]) -> List[str]:
    """Keeps notes that are not near-duplicates of existing or earlier ones."""
    known = [normalize_note(note) for note in existing_notes if note]
    novel = []
    for note in notes:
        normalized = normalize_note(note)
        if is_near_duplicate(normalized, known):
            continue
        known.append(normalized)
        novel.append(note)
    return novel


def label_tag(label: str) -> str:
    """COMMUNICATION_PATTERNS -> communication-patterns"""
    return label.lower().replace("_", "-")


def select_insights(
    parsed: Dict[str, List[str]],
    existing_notes: Iterable[str],
    cap: int,
    source_tag: str = "conversation-derived"
) -> List[CandidateInsight]:
    """
    Flattens parsed lists in label order, drops near-duplicates, and caps.

    Args:
        parsed: Label -> cleaned lines (see parse_bracketed_lists)
        existing_notes: Notes already stored for the user
        cap: Maximum insights returned
        source_tag: Tag recording where the insight came from

    Returns:
        At most `cap` novel insights
    """
    if cap <= 0:
        return []

    known = [normalize_note(note) for note in existing_notes if note]
    selected: List[CandidateInsight] = []

    for label in INSIGHT_LABELS:
        for line in parsed.get(label, []):
            normalized = normalize_note(line)
            if is_near_duplicate(normalized, known):
                continue
            known.append(normalized)
            selected.append(CandidateInsight(
                category=label,
                note=line,
                tags=f"{label_tag(label)}, {source_tag}",
            ))
            if len(selected) >= cap:
                return selected

    return selected


# ============================================================
# EXTRACTION
# ============================================================

def build_extraction_prompt(source_text: str, source_description: str, context_summary: str = "") -> str:
    return INSIGHT_EXTRACTION_PROMPT.format(
        source_description=source_description,
        context_summary=context_summary or "No prior context available.",
        source_text=source_text,
    )


def _has_any_label(text: str) -> bool:
    return any(re.search(rf"{label}\s*:", text) for label in INSIGHT_LABELS)


async def extract_insights(
    source_text: str,
    source_description: str,
    cap: int,
    context_summary: str = "",
    existing_notes: Sequence[str] = (),
    source_tag: str = "conversation-derived",
    llm: Optional[LLMService] = None
) -> List[CandidateInsight]:
    """
    Runs one extraction call and returns capped, novel insights.

    Raises:
        ExtractionError: If the model call fails or the reply has no labeled lists
    """
    llm = llm or get_llm_service()
    prompt = build_extraction_prompt(source_text, source_description, context_summary)

    try:
        completion = await llm.complete(
            prompt=prompt,
            model=settings.OPENAI_ANALYSIS_MODEL,
            max_tokens=settings.INSIGHT_MAX_TOKENS,
            temperature=0.3,
        )
    except LLMServiceError as e:
        raise ExtractionError("Insight extraction request failed", details=e.details) from e

    content = completion.content
    if not content:
        raise ExtractionError("Insight extraction returned an empty response")
    if content.strip().upper() == "NONE":
        return []
    if not _has_any_label(content):
        raise ExtractionError("Insight extraction response had no labeled lists", details=content[:200])

    parsed = parse_bracketed_lists(content, INSIGHT_LABELS, settings.INSIGHT_MIN_LENGTH)
    found = sum(len(lines) for lines in parsed.values())
    insights = select_insights(parsed, existing_notes, cap, source_tag)

    logger.info(f"Extracted {found} candidate insights, kept {len(insights)} (cap {cap})")
    return insights


async def extract_document_insights(
    text: str,
    document_type: str,
    primary_notes: Sequence[str],
    existing_notes: Sequence[str],
    tags: Iterable[str]
) -> List[CandidateInsight]:
    """
    Candidate insights for one uploaded document, capped at DOCUMENT_INSIGHT_CAP.

    Notes produced by the document's own analysis come first; the nine-label
    extractor fills the remaining slots. An extraction failure is logged and
    leaves only the primary notes.
    """
    cap = settings.DOCUMENT_INSIGHT_CAP
    tags = merge_tags(tags)

    novel = filter_novel(primary_notes, existing_notes)[:cap]
    candidates = [CandidateInsight(category="DOCUMENT_ANALYSIS", note=note, tags=tags) for note in novel]

    remaining = cap - len(candidates)
    if remaining <= 0:
        return candidates

    try:
        extracted = await extract_insights(
            truncate(text, DOCUMENT_EXTRACTION_MAX_CHARS),
            source_description=DOCUMENT_SOURCE.format(document_type=document_type),
            cap=remaining,
            existing_notes=list(existing_notes) + novel,
            source_tag="document-derived",
        )
    except ExtractionError as e:
        logger.warning(f"Document insight extraction failed, keeping analysis insights: {e.message}")
        return candidates

    for candidate in extracted:
        candidate.tags = merge_tags(candidate.tags, tags)
    return candidates + extracted


def format_conversation(
    user_message: str,
    sol_response: str,
    conversation_context: Sequence[ConversationTurn] = ()
) -> str:
    text = f'USER MESSAGE: "{user_message}"\nSOL RESPONSE: "{sol_response}"'
    recent = list(conversation_context)[-CONVERSATION_CONTEXT_TURNS:]
    if recent:
        previous = "\n".join(f'{turn.role}: "{turn.content}"' for turn in recent)
        text += f"\n\nPREVIOUS CONTEXT:\n{previous}"
    return text


async def analyze_conversation_turn(
    email: str,
    user_message: str,
    sol_response: str,
    conversation_context: Sequence[ConversationTurn] = ()
) -> Dict[str, object]:
    """
    Extracts and stores up to CHAT_INSIGHT_CAP insights from one chat turn.

    Returns:
        Result dict with analyzed flag, entries_created and a short preview

    Raises:
        ResourceNotFoundError: If the user does not exist
        ExtractionError: If extraction fails
    """
    if not should_analyze_message(user_message, sol_response):
        return {
            "analyzed": False,
            "reason": "Conversation too brief for meaningful Personalgorithm™ analysis",
            "entries_created": 0,
            "created_entries": [],
        }

    # Deferred: context_service reaches this module through visioning_service
    from app.services.context_service import aggregate_context, build_context_summary
    from app.services.insight_service import create_insight_entries

    bundle = await aggregate_context(email)
    if bundle.profile is None:
        raise ResourceNotFoundError(f"User not found: {email}")

    candidates = await extract_insights(
        format_conversation(user_message, sol_response, conversation_context),
        source_description=CONVERSATION_SOURCE,
        cap=settings.CHAT_INSIGHT_CAP,
        context_summary=build_context_summary(bundle),
        existing_notes=[entry.notes for entry in bundle.insights],
        source_tag="conversation-derived",
    )

    created = await create_insight_entries(email, candidates, user_record_id=bundle.profile.record_id)

    return {
        "analyzed": True,
        "entries_created": len(created),
        "created_entries": [
            {"insight": entry.notes[:100] + "...", "entry_id": entry.record_id, "category": candidate.category}
            for entry, candidate in zip(created, candidates)
        ],
        "message": (
            f"Added {len(created)} new Personalgorithm™ insights from this conversation"
            if created else "Conversation analyzed - no new significant patterns detected"
        ),
    }
