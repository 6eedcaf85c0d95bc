"""
app/services/plan_generator.py

Purpose: LLM-generated Aligned Business® Plans

- Builds a plan prompt from the aggregated user context
- Parses labeled JSON sections into a GeneratedPlan (fallback when nothing parses)
- Guards against regenerating a fresh plan
- Stores the plan and updates the profile and insights
"""

import re
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger
from app.models.business_plan import SUBMITTED_FIELD, GeneratedPlan
from app.models.insight import CandidateInsight
from app.models.user import CURRENT_GOALS_FIELD, CURRENT_STATE_FIELD
from app.services.business_plan_service import create_business_plan_entry
from app.services.context_service import ContextBundle, aggregate_context
from app.services.insight_extractor import filter_novel
from app.services.insight_service import create_insight_entries
from app.services.llm_service import LLMService, get_llm_service
from app.services.prompts import BUSINESS_PLAN_FORMAT
from app.services.user_service import merged_tags_update, update_user_profile
from utils.constants import (
    BUSINESS_PLAN_GENERATED_MESSAGE,
    GENERATED_PLAN_INSIGHT_TAGS,
    RECENT_BUSINESS_PLAN_MESSAGE,
)
from utils.parsing_utils import as_text, parse_bracketed_list, parse_json_section
from utils.time_utils import days_since, format_date, iso_timestamp, parse_timestamp, utc_now

logger = get_logger(__name__)

PLAN_SECTIONS = (
    "FUTURE_VISION",
    "BUSINESS_ANALYSIS",
    "TOP_3_GOALS",
    "IDEAL_CLIENT",
    "OFFERS_STRATEGY",
    "MARKETING_SYSTEM",
    "SALES_SYSTEM",
    "NEXT_STEPS",
)

PROMPT_INSIGHT_LIMIT = 20
PLAN_INSIGHT_MIN_LENGTH = 10

STATE_PREFIX = re.compile(r"^Business plan updated: [^.]*\.\s*")

FALLBACK_INSIGHTS = [
    "Business plan generated from available context - ready for strategic development",
    "Comprehensive planning shows commitment to structured business growth",
]


# ============================================================
# FORMATTING
# ============================================================

def format_goals(section: Dict[str, Any]) -> str:
    if not section:
        return "Goals to be determined based on vision and capacity"
    goals = [
        f"{index}) {as_text(section.get(key))}"
        for index, key in enumerate(("goal1", "goal2", "goal3"), 1)
        if as_text(section.get(key))
    ]
    return " ".join(goals) if goals else "Goals to be determined"


def format_marketing_system(section: Dict[str, Any]) -> str:
    if not section:
        return "Marketing system to be developed based on communication style and ideal client"
    return (
        f"Discovery: {as_text(section.get('discoverability')) or 'TBD'}. "
        f"Nurturing: {as_text(section.get('nurturingStrategy')) or 'TBD'}. "
        f"Conversion: {as_text(section.get('conversionStrategy')) or 'TBD'}."
    )


def format_sales_system(section: Dict[str, Any]) -> str:
    if not section:
        return "Sales system to be developed based on communication preferences and client needs"
    return (
        f"Process: {as_text(section.get('salesProcess')) or 'TBD'}. "
        f"Components: {as_text(section.get('salesSystemComponents')) or 'TBD'}. "
        f"Optimization: {as_text(section.get('conversionOptimization')) or 'TBD'}."
    )


def format_next_steps(section: Dict[str, Any]) -> str:
    if not section:
        return "Next steps to be determined based on current capacity and priorities"
    steps = []
    for key, label in (("immediate30Days", "30 days"), ("next60Days", "60 days"), ("next90Days", "90 days")):
        if as_text(section.get(key)):
            steps.append(f"{label}: {as_text(section[key])}")
    return " | ".join(steps) if steps else "Action plan to be developed"


# ============================================================
# CONTEXT AND PROMPT
# ============================================================

def data_sources(bundle: ContextBundle) -> List[str]:
    """Human-readable list of the context that informed a plan."""
    sources = []
    if bundle.profile:
        sources.append("User Profile")
    if bundle.insights:
        sources.append(f"Personalgorithm ({len(bundle.insights)} insights)")
    if bundle.visioning:
        sources.append("Visioning Homework")
    if bundle.business_plans:
        sources.append(f"Previous Business Plans ({len(bundle.business_plans)})")
    if bundle.weekly_checkins:
        sources.append(f"Weekly Check-ins ({len(bundle.weekly_checkins)})")
    if bundle.recent_messages:
        sources.append(f"Recent Conversations ({len(bundle.recent_messages)})")
    return sources


def build_business_plan_prompt(bundle: ContextBundle) -> str:
    profile = bundle.profile

    prompt = (
        "You are Sol™, creating a personalized Aligned Business Plan using Kelsey's Aligned Business® Method. "
        "Generate a comprehensive business plan based on everything you know about this person.\n\n"
        "USER CONTEXT:\n"
        f"Email: {profile.email or 'Unknown'}\n"
        f"Current Vision: {profile.current_vision or 'Not set'}\n"
        f"Current Goals: {profile.current_goals or 'Not set'}\n"
        f"Current State: {profile.current_state or 'Not set'}\n"
        f"Coaching Style Match: {profile.essence or 'Not determined'}\n"
        f"Tags: {profile.tags or 'None'}\n\n"
    )

    if bundle.insights:
        prompt += "PERSONALGORITHM INSIGHTS (How this person operates best):\n"
        for index, entry in enumerate(bundle.insights[:PROMPT_INSIGHT_LIMIT], 1):
            prompt += f"{index}. {entry.notes}\n"
        prompt += "\n"

    visioning = bundle.visioning
    if visioning:
        prompt += "VISIONING HOMEWORK INSIGHTS:\n"
        if visioning.summary:
            prompt += f"Summary: {visioning.summary}\n"
        if visioning.action_steps:
            prompt += f"Action Steps: {visioning.action_steps}\n"
        if visioning.notes_for_sol:
            prompt += f"Sol Notes: {visioning.notes_for_sol}\n"
        prompt += "\n"

    if bundle.weekly_checkins:
        checkin = bundle.weekly_checkins[0]
        prompt += "LATEST WEEKLY CHECK-IN:\n"
        for field, label in (
            ("This is who I am now...", "Identity"),
            ("What worked this week?", "Recent Wins"),
            ("What would you love help with right now?", "Current Challenges"),
        ):
            if checkin.get(field):
                prompt += f"{label}: {checkin[field]}\n"
        prompt += "\n"

    if bundle.business_plans:
        previous = bundle.business_plans[0]
        prompt += "PREVIOUS BUSINESS PLAN CONTEXT:\n"
        if previous.get("Future Vision"):
            prompt += f"Previous Vision: {previous['Future Vision']}\n"
        if previous.get("Top 3 Goals"):
            prompt += f"Previous Goals: {previous['Top 3 Goals']}\n"
        prompt += "\n"

    return prompt + BUSINESS_PLAN_FORMAT


# ============================================================
# PARSING
# ============================================================

def fallback_plan(bundle: ContextBundle) -> GeneratedPlan:
    profile = bundle.profile
    return GeneratedPlan(
        future_vision=profile.current_vision or "Business vision to be developed through coaching",
        top_goals=profile.current_goals or "Goals to be defined based on vision and capacity",
        challenges="Strategic challenges to be identified and addressed",
        ideal_client="Ideal client profile to be developed",
        current_offers="Current offerings to be documented and optimized",
        marketing_system="Marketing system to be built based on strengths and communication style",
        sales_system="Sales system to be developed aligned with values and client needs",
        next_steps="Action plan to be created based on priorities and capacity",
        insights=list(FALLBACK_INSIGHTS),
        generated_date=iso_timestamp(),
        based_on_data=data_sources(bundle),
        is_fallback=True,
    )


def parse_business_plan(content: str, bundle: ContextBundle) -> GeneratedPlan:
    """
    Builds a GeneratedPlan from labeled JSON sections.

    Missing values get "to be ..." placeholders; when no section parses at
    all the fallback plan built from the profile is returned.
    """
    sections = {label: parse_json_section(content, label) for label in PLAN_SECTIONS}
    if not any(sections.values()):
        logger.warning("Business plan response had no parseable sections; using fallback plan")
        return fallback_plan(bundle)

    def text(section: Dict[str, Any], key: str, placeholder: str) -> str:
        return as_text(section.get(key)) or placeholder

    vision = sections["FUTURE_VISION"]
    analysis = sections["BUSINESS_ANALYSIS"]
    client = sections["IDEAL_CLIENT"]
    offers = sections["OFFERS_STRATEGY"]

    return GeneratedPlan(
        future_vision=text(vision, "longTermVision", "Vision to be developed"),
        core_values=text(vision, "coreValues", "Values to be defined"),
        mission_statement=text(vision, "missionStatement", "Mission to be crafted"),
        business_stage=text(analysis, "businessStage", "growing"),
        current_strengths=text(analysis, "currentStrengths", "Strengths to be identified"),
        key_opportunities=text(analysis, "keyOpportunities", "Opportunities to be explored"),
        challenges=text(analysis, "problemsToSolve", "Challenges to be addressed"),
        top_goals=format_goals(sections["TOP_3_GOALS"]),
        ideal_client=text(client, "clientProfile", "Ideal client to be defined"),
        client_problems=text(client, "clientProblems", "Client problems to be identified"),
        qualified_lead_factors=text(client, "qualifiedLeadFactors", "Lead qualification to be developed"),
        current_offers=text(offers, "currentOffers", "Offers to be defined"),
        future_offers=text(offers, "futureOffers", "Future offers to be developed"),
        pricing_strategy=text(offers, "pricingStrategy", "Pricing strategy to be determined"),
        marketing_system=format_marketing_system(sections["MARKETING_SYSTEM"]),
        sales_system=format_sales_system(sections["SALES_SYSTEM"]),
        next_steps=format_next_steps(sections["NEXT_STEPS"]),
        insights=parse_bracketed_list(content, "PERSONALGORITHM_INSIGHTS", PLAN_INSIGHT_MIN_LENGTH),
        generated_date=iso_timestamp(),
        based_on_data=data_sources(bundle),
    )


def plan_age_days(plan_fields: Dict[str, Any]) -> Optional[float]:
    return days_since(parse_timestamp(plan_fields.get(SUBMITTED_FIELD)))


# ============================================================
# FLOW
# ============================================================

async def generate_business_plan(
    email: str,
    plan_type: str = "full",
    update_existing: bool = False,
    llm: Optional[LLMService] = None
) -> Dict[str, Any]:
    """
    Drafts a new Aligned Business Plan from everything known about the user.

    A plan newer than BUSINESS_PLAN_REFRESH_DAYS blocks generation unless
    `update_existing` is set; the blocked result has success False.

    Raises:
        ResourceNotFoundError: If the user does not exist
        LLMServiceError: If the generation call fails
    """
    bundle = await aggregate_context(email)
    profile = bundle.profile
    if profile is None:
        raise ResourceNotFoundError(f"User profile not found: {email}")

    if bundle.business_plans and not update_existing:
        existing = bundle.business_plans[0]
        age = plan_age_days(existing)
        if age is not None and age < settings.BUSINESS_PLAN_REFRESH_DAYS:
            logger.info(f"Recent business plan exists ({age:.1f} days); generation skipped")
            return {
                "success": False,
                "message": RECENT_BUSINESS_PLAN_MESSAGE,
                "existing_plan": existing,
                "plan_age": round(age),
            }

    logger.info(f"Generating {plan_type} business plan from: {', '.join(data_sources(bundle))}")
    llm = llm or get_llm_service()
    completion = await llm.complete(
        prompt=build_business_plan_prompt(bundle),
        model=settings.OPENAI_ANALYSIS_MODEL,
        max_tokens=2000,
        temperature=0.4,
    )
    plan = parse_business_plan(completion.content, bundle)

    today = format_date(utc_now())
    completeness = plan.completeness()
    sources = ", ".join(plan.based_on_data) or "user profile"
    record = await create_business_plan_entry(
        profile.record_id,
        plan.to_plan_data(),
        sol_notes=f"Auto-generated business plan on {today}. Based on: {sources}. Completeness: {completeness}%",
    )

    previous_state = STATE_PREFIX.sub("", profile.current_state)
    updates: Dict[str, Any] = {
        CURRENT_GOALS_FIELD: plan.top_goals or profile.current_goals,
        CURRENT_STATE_FIELD: f"Business plan updated: {today}. {previous_state}".strip(),
    }
    updates.update(merged_tags_update(profile, [
        "business-plan-generated", "strategic-planning", plan.business_stage or "planning-stage",
    ]))
    await update_user_profile(email, updates)

    novel = filter_novel(plan.insights, [entry.notes for entry in bundle.insights])
    candidates = [
        CandidateInsight(category="BUSINESS_PLAN", note=note, tags=", ".join(GENERATED_PLAN_INSIGHT_TAGS))
        for note in novel[:settings.DOCUMENT_INSIGHT_CAP]
    ]
    created = await create_insight_entries(email, candidates, user_record_id=profile.record_id)

    return {
        "success": True,
        "business_plan": plan.model_dump(),
        "business_plan_id": record.get("id"),
        "profile_updates": updates,
        "insights_created": len(created),
        "message": BUSINESS_PLAN_GENERATED_MESSAGE,
        "insights": {
            "data_sources_used": plan.based_on_data,
            "plan_completeness": completeness,
            "next_steps": plan.next_steps,
        },
    }
