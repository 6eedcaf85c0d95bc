"""
app/services/business_plan_service.py

Purpose: Business plan intake (Aligned Business® Plans table)

- Keyword section extraction from plain-text plans
- Plan record creation and lookup
- Processing of user-supplied plans into profile updates and insights
"""

from typing import Any, Dict, List, Optional

from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.core.logging import get_logger
from app.db.airtable import get_store, linked_contains
from app.models.business_plan import SUBMITTED_FIELD, USER_LINK_FIELD, BusinessPlanData
from app.models.insight import CandidateInsight
from app.models.user import CURRENT_GOALS_FIELD
from app.services.insight_service import create_insight_entries
from app.services.user_service import get_user_profile, merged_tags_update, update_user_profile
from utils.constants import BUSINESS_PLAN_CONTEXT_LIMIT, BUSINESS_PLAN_ID_PREFIX, BUSINESS_PLAN_SECTIONS, BUSINESS_PLANS_TABLE
from utils.id_utils import generate_record_id
from utils.parsing_utils import extract_section
from utils.time_utils import format_date, iso_timestamp, utc_now

logger = get_logger(__name__)


def extract_business_plan_data(text: str) -> BusinessPlanData:
    """
    Pulls plan sections out of plain text by heading keywords.

    Each section is the content under the first line mentioning one of its
    keywords (10-line look-ahead, about 500 characters).
    """
    sections = {key: extract_section(text, keywords) for key, keywords in BUSINESS_PLAN_SECTIONS.items()}
    found = [key for key, value in sections.items() if value]
    logger.info(f"Business plan sections found: {', '.join(found) or 'none'}")
    return BusinessPlanData.model_validate(sections)


async def create_business_plan_entry(
    user_record_id: str,
    data: BusinessPlanData,
    sol_notes: Optional[str] = None
) -> Dict[str, Any]:
    submitted_at = utc_now()
    notes = sol_notes or f"Generated from business planning session on {format_date(submitted_at)}"
    fields = data.to_fields(
        plan_id=generate_record_id(BUSINESS_PLAN_ID_PREFIX),
        user_record_id=user_record_id,
        submitted_at=iso_timestamp(submitted_at),
        sol_notes=notes,
    )
    store = get_store()
    record = await store.create_record(BUSINESS_PLANS_TABLE, fields)
    logger.info("Business plan entry created", extra={"record_id": record.get("id")})
    return record


async def fetch_business_plans(email: str, limit: int = BUSINESS_PLAN_CONTEXT_LIMIT) -> List[Dict[str, Any]]:
    """Newest-first plan records linked to the user."""
    store = get_store()
    return await store.find_records(
        BUSINESS_PLANS_TABLE,
        formula=linked_contains(USER_LINK_FIELD, email),
        sort=[(SUBMITTED_FIELD, "desc")],
        max_records=limit,
    )


def plan_insights(data: BusinessPlanData) -> List[CandidateInsight]:
    insights = []
    if data.challenges:
        insights.append(CandidateInsight(
            category="BUSINESS_PLAN",
            note=(
                f"Business challenges identified: {data.challenges}. This reveals areas where "
                "targeted support and strategy development will be most valuable."
            ),
            tags="business-plan, challenges, strategy",
        ))
    if data.ideal_client:
        insights.append(CandidateInsight(
            category="BUSINESS_PLAN",
            note=(
                "Ideal client profile shows they understand their market and have clarity "
                f"on who they serve best: {data.ideal_client}"
            ),
            tags="business-plan, client-clarity, market-awareness",
        ))
    return insights


async def process_business_plan(email: str, data: BusinessPlanData) -> Dict[str, Any]:
    """
    Stores a user-supplied plan and folds it into the profile.

    Returns:
        {success, business_plan_id, profile_updates, insights_created, message}

    Raises:
        ValidationError: If the plan carries no content
        ResourceNotFoundError: If the user does not exist
    """
    if data.is_empty():
        raise ValidationError("Business plan data is empty")

    profile = await get_user_profile(email)
    if profile is None:
        raise ResourceNotFoundError(f"User not found: {email}")

    record = await create_business_plan_entry(profile.record_id, data)

    updates: Dict[str, Any] = {}
    if data.top_goals:
        updates[CURRENT_GOALS_FIELD] = data.top_goals
    if data.business_type or data.stage:
        updates.update(merged_tags_update(profile, [data.business_type, "business-planning", data.stage]))
    if updates:
        await update_user_profile(email, updates)

    created = await create_insight_entries(email, plan_insights(data), user_record_id=profile.record_id)

    return {
        "success": True,
        "business_plan_id": record.get("id"),
        "profile_updates": updates,
        "insights_created": len(created),
        "message": (
            "Business plan processed successfully! Your strategic insights have been "
            "added to your Personalgorithm™."
        ),
    }
