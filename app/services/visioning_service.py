"""
app/services/visioning_service.py

Purpose: Visioning homework analysis and storage

- Sectioned LLM analysis of a visioning questionnaire
- Visioning table reads and writes
- Full processing flow for new submissions
- Reprocessing of visionings already stored in the table
"""

from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import (
    ExtractionError,
    LLMServiceError,
    ResourceNotFoundError,
    SolError,
    StoreError,
    ValidationError,
)
from app.core.logging import get_logger
from app.db.airtable import get_store, linked_contains
from app.models.user import CURRENT_GOALS_FIELD, CURRENT_STATE_FIELD, CURRENT_VISION_FIELD
from app.models.visioning import (
    ACTION_STEPS_FIELD,
    NOTES_FIELD,
    REVIEWED_FIELD,
    SUBMITTED_FIELD,
    SUMMARY_FIELD,
    TAGS_FIELD,
    TEXT_FIELD,
    USER_LINK_FIELD,
    VISIONING_ID_FIELD,
    VisioningAnalysis,
    VisioningDocument,
)
from app.services.insight_extractor import extract_document_insights
from app.services.insight_service import create_insight_entries, fetch_insight_entries
from app.services.llm_service import LLMService, get_llm_service
from app.services.prompts import VISIONING_ANALYSIS_PROMPT
from app.services.user_service import get_user_by_record_id, get_user_profile, merged_tags_update, update_user_profile
from utils.constants import (
    EXISTING_VISIONING_INSIGHT_TAGS,
    VISIONING_ID_PREFIX,
    VISIONING_INSIGHT_TAGS,
    VISIONING_TABLE,
)
from utils.id_utils import generate_record_id
from utils.parsing_utils import as_text, parse_bracketed_list, parse_json_section, parse_quoted_field
from utils.time_utils import iso_timestamp

logger = get_logger(__name__)

VISIONING_SECTIONS = (
    "BUSINESS_BASICS",
    "VISION_AND_VALUES",
    "CURRENT_STATE",
    "IDEAL_CLIENT",
    "MARKETING_SALES",
    "COACHING_INSIGHTS",
)

# Analysis insights are short sentences; anything at or under this is noise
ANALYSIS_INSIGHT_MIN_LENGTH = 10

# A stored summary longer than this means the record was already analyzed
ANALYZED_SUMMARY_LENGTH = 100

DEFAULT_NEW_VISIONING_TAG = "visioning-completed"
DEFAULT_ANALYZED_VISIONING_TAG = "visioning-analyzed"


# ============================================================
# ANALYSIS
# ============================================================

def combine_horizons(basics: Dict[str, Any]) -> str:
    """
    Joins the 1/3/7-year goals that are present, e.g. "Launch (1yr), Scale (3yr)".
    """
    parts = []
    for key, horizon in (("goals1Year", "1yr"), ("goals3Years", "3yr"), ("goals7Years", "7yr")):
        value = as_text(basics.get(key))
        if value:
            parts.append(f"{value} ({horizon})")
    return ", ".join(parts)


def parse_visioning_analysis(content: str) -> VisioningAnalysis:
    """
    Flattens a sectioned analysis completion into a VisioningAnalysis.
    Missing or malformed sections contribute empty values.
    """
    sections = {label: parse_json_section(content, label) for label in VISIONING_SECTIONS}

    basics = sections["BUSINESS_BASICS"]
    values = sections["VISION_AND_VALUES"]
    state = sections["CURRENT_STATE"]
    client = sections["IDEAL_CLIENT"]
    marketing = sections["MARKETING_SALES"]
    coaching = sections["COACHING_INSIGHTS"]

    def text(section: Dict[str, Any], key: str) -> str:
        return as_text(section.get(key))

    return VisioningAnalysis(
        business_name=text(basics, "businessName"),
        industry=text(basics, "industry"),
        business_stage=text(basics, "businessStage"),
        vision=combine_horizons(basics),
        goals=text(basics, "goals1Year"),
        current_state=text(state, "businessHistory"),
        values=text(values, "coreValues"),
        mission_statement=text(values, "missionStatement"),
        differentiation=text(values, "differentiation"),
        inspiration=text(values, "inspiration"),
        challenges=text(state, "currentChallenges"),
        strengths=text(state, "strengths"),
        mindset_blocks=text(state, "mindsetBlocks"),
        ideal_client=text(client, "clientProfile"),
        client_problems=text(client, "clientProblems"),
        current_offerings=text(marketing, "currentOfferings"),
        marketing_efforts=text(marketing, "marketingEfforts"),
        communication_style=text(coaching, "communicationStyle"),
        learning_style=text(coaching, "learningStyle"),
        transformation_triggers=text(coaching, "transformationTriggers"),
        coaching_needs=text(coaching, "coachingNeeds"),
        insights=parse_bracketed_list(content, "PERSONALGORITHM_INSIGHTS", ANALYSIS_INSIGHT_MIN_LENGTH),
        tags=parse_quoted_field(content, "TAGS"),
        sections=sections,
    )


async def analyze_visioning_document(text: str, llm: Optional[LLMService] = None) -> VisioningAnalysis:
    """
    Runs the sectioned visioning analysis.

    Raises:
        ExtractionError: If the model call fails
    """
    llm = llm or get_llm_service()

    try:
        completion = await llm.complete(
            prompt=VISIONING_ANALYSIS_PROMPT.format(visioning_text=text),
            model=settings.OPENAI_ANALYSIS_MODEL,
            max_tokens=1000,
            temperature=0.3,
        )
    except LLMServiceError as e:
        raise ExtractionError("Visioning analysis failed", details=e.details) from e

    analysis = parse_visioning_analysis(completion.content)
    parsed = [label for label, section in analysis.sections.items() if section]
    logger.info(f"Visioning analysis parsed sections: {', '.join(parsed) or 'none'}")
    return analysis


# ============================================================
# STORE
# ============================================================

async def create_visioning_entry(user_record_id: str, text: str, analysis: VisioningAnalysis) -> Dict[str, Any]:
    fields = {
        VISIONING_ID_FIELD: generate_record_id(VISIONING_ID_PREFIX),
        USER_LINK_FIELD: [user_record_id],
        SUBMITTED_FIELD: iso_timestamp(),
        SUMMARY_FIELD: analysis.summary(),
        TEXT_FIELD: text,
        TAGS_FIELD: analysis.tags or DEFAULT_NEW_VISIONING_TAG,
        ACTION_STEPS_FIELD: analysis.action_steps(),
        NOTES_FIELD: analysis.notes_for_sol(),
    }
    store = get_store()
    return await store.create_record(VISIONING_TABLE, fields)


async def update_visioning_record(record_id: str, analysis: VisioningAnalysis) -> Dict[str, Any]:
    """Writes a fresh analysis onto an existing record and marks it reviewed."""
    fields = {
        SUMMARY_FIELD: analysis.summary(include_goals=True),
        TAGS_FIELD: analysis.tags or DEFAULT_ANALYZED_VISIONING_TAG,
        ACTION_STEPS_FIELD: analysis.action_steps(),
        NOTES_FIELD: analysis.notes_for_sol(),
        REVIEWED_FIELD: True,
    }
    store = get_store()
    return await store.update_record(VISIONING_TABLE, record_id, fields)


async def get_visioning(record_id: str) -> VisioningDocument:
    """
    Raises:
        ResourceNotFoundError: If the record does not exist
    """
    store = get_store()
    try:
        record = await store.get_record(VISIONING_TABLE, record_id)
    except StoreError as e:
        if e.status == 404:
            raise ResourceNotFoundError(f"Visioning record not found: {record_id}") from e
        raise
    return VisioningDocument.from_record(record)


async def fetch_user_visionings(email: str, limit: Optional[int] = None) -> List[VisioningDocument]:
    """Newest-first visioning records linked to the user."""
    store = get_store()
    records = await store.find_records(
        VISIONING_TABLE,
        formula=linked_contains(USER_LINK_FIELD, email),
        sort=[(SUBMITTED_FIELD, "desc")],
        max_records=limit,
    )
    return [VisioningDocument.from_record(record) for record in records]


async def fetch_latest_visioning(email: str) -> Optional[VisioningDocument]:
    documents = await fetch_user_visionings(email, limit=1)
    return documents[0] if documents else None


# ============================================================
# FLOWS
# ============================================================

def profile_updates_from_analysis(analysis: VisioningAnalysis) -> Dict[str, str]:
    """Vision, goals and state fields; empty values leave the profile untouched."""
    updates = {
        CURRENT_VISION_FIELD: analysis.vision,
        CURRENT_GOALS_FIELD: analysis.goals,
        CURRENT_STATE_FIELD: analysis.current_state,
    }
    return {field: value for field, value in updates.items() if value}


async def _apply_analysis(email: str, text: str, analysis: VisioningAnalysis, insight_tags) -> int:
    """
    Updates the profile and stores insights for one analyzed visioning.

    Returns:
        Number of insight entries created
    """
    profile = await get_user_profile(email)
    if profile is None:
        raise ResourceNotFoundError(f"User not found: {email}")

    updates = profile_updates_from_analysis(analysis)
    updates.update(merged_tags_update(profile, analysis.tags))
    await update_user_profile(email, updates)

    existing = await fetch_insight_entries(email)
    candidates = await extract_document_insights(
        text,
        document_type="visioning",
        primary_notes=analysis.insights,
        existing_notes=[entry.notes for entry in existing],
        tags=insight_tags,
    )
    created = await create_insight_entries(email, candidates, user_record_id=profile.record_id)
    return len(created)


async def process_visioning(email: str, text: str) -> Dict[str, Any]:
    """
    Analyzes a new visioning submission and stores everything derived from it.

    Returns:
        {success, visioning_processed, visioning_id, insights_created, extracted_data}

    Raises:
        ValidationError: If the text is empty
        ResourceNotFoundError: If the user does not exist
        ExtractionError: If the analysis call fails
    """
    if not text or not text.strip():
        raise ValidationError("Visioning text is required")

    profile = await get_user_profile(email)
    if profile is None:
        raise ResourceNotFoundError(f"User not found: {email}")

    analysis = await analyze_visioning_document(text)
    record = await create_visioning_entry(profile.record_id, text, analysis)
    logger.info("Visioning entry created", extra={"record_id": record.get("id")})

    insight_count = await _apply_analysis(email, text, analysis, VISIONING_INSIGHT_TAGS)

    return {
        "success": True,
        "visioning_processed": True,
        "visioning_id": record.get("id"),
        "insights_created": insight_count,
        "extracted_data": analysis.extracted_data(),
    }


async def _resolve_record_email(document: VisioningDocument, email: Optional[str]) -> str:
    if email:
        return email
    if not document.user_links:
        raise ResourceNotFoundError(f"Visioning record {document.record_id} has no linked user")
    user = await get_user_by_record_id(document.user_links[0])
    if user is None or not user.email:
        raise ResourceNotFoundError(f"Linked user not found for visioning record {document.record_id}")
    return user.email


async def process_existing_visioning(
    email: Optional[str] = None,
    visioning_id: Optional[str] = None,
    force_reprocess: bool = False
) -> Dict[str, Any]:
    """
    Re-analyzes visioning records already stored in the table.

    Targets one record when `visioning_id` is given, otherwise every record
    of the user. Records with a substantial summary are skipped unless
    `force_reprocess`. Per-record failures are collected, not raised.

    Raises:
        ValidationError: If neither email nor visioning_id is given
        ResourceNotFoundError: If no user or no visioning records are found
    """
    if not email and not visioning_id:
        raise ValidationError("Email or visioning_id is required")

    if visioning_id:
        documents = [await get_visioning(visioning_id)]
    else:
        if await get_user_profile(email) is None:
            raise ResourceNotFoundError(f"User not found: {email}")
        documents = await fetch_user_visionings(email)

    if not documents:
        raise ResourceNotFoundError("No visioning homework found")

    processed = 0
    insight_count = 0
    errors: List[str] = []

    for document in documents:
        if not document.text:
            errors.append(f"Record {document.record_id}: No text content found")
            continue

        if not force_reprocess and len(document.summary) > ANALYZED_SUMMARY_LENGTH:
            logger.info("Visioning already analyzed, skipping", extra={"record_id": document.record_id})
            continue

        try:
            record_email = await _resolve_record_email(document, email)
            analysis = await analyze_visioning_document(document.text)
            # Marked analyzed before any profile or insight writes
            await update_visioning_record(document.record_id, analysis)
            insight_count += await _apply_analysis(
                record_email, document.text, analysis, EXISTING_VISIONING_INSIGHT_TAGS
            )
            processed += 1
        except SolError as e:
            logger.error(f"Visioning reprocessing failed: {e.message}", extra={"record_id": document.record_id})
            errors.append(f"Record {document.record_id}: {e.message}")

    return {
        "success": True,
        "message": (
            f"Successfully processed {processed} visioning record(s) and created "
            f"{insight_count} Personalgorithm™ insights."
        ),
        "processed_count": processed,
        "insight_count": insight_count,
        "errors": errors,
        "records": [
            {"id": document.record_id, "summary": document.summary or "No summary"}
            for document in documents
        ],
    }
