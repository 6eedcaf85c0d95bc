"""
app/models/business_plan.py

Purpose: Business plan models (Aligned Business® Plans table)

- BusinessPlanData: plan content supplied by the user or extracted from text
- GeneratedPlan: a plan drafted by the language model
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PLAN_ID_FIELD = "AB Plan ID"
USER_LINK_FIELD = "User ID"
SUBMITTED_FIELD = "Date Submitted"

# Plan fields that count towards completeness
COMPLETENESS_FIELDS = (
    "future_vision", "top_goals", "ideal_client", "current_offers",
    "marketing_system", "sales_system", "next_steps",
)


class BusinessPlanData(BaseModel):
    """Accepts snake_case or camelCase keys (futureVision, topGoals, ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    future_vision: str = ""
    top_goals: str = ""
    challenges: str = ""
    ideal_client: str = ""
    current_offers: str = ""
    marketing_system: str = ""
    sales_system: str = ""
    next_steps: str = ""
    lead_factors: str = ""
    business_type: str = ""
    stage: str = ""

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())

    def to_fields(self, plan_id: str, user_record_id: str, submitted_at: str, sol_notes: str) -> Dict[str, Any]:
        return {
            PLAN_ID_FIELD: plan_id,
            USER_LINK_FIELD: [user_record_id],
            SUBMITTED_FIELD: submitted_at,
            "Future Vision": self.future_vision,
            "Potential Problem Solving": self.challenges,
            "Top 3 Goals": self.top_goals,
            "Next Steps": self.next_steps,
            "Ideal Client": self.ideal_client,
            "Current Offers & Pricing": self.current_offers,
            "Qualified Lead Factors": self.lead_factors,
            "Marketing System": self.marketing_system,
            "Sales System": self.sales_system,
            "Sol Notes": sol_notes,
        }


class GeneratedPlan(BaseModel):
    future_vision: str
    core_values: str = ""
    mission_statement: str = ""
    business_stage: str = "growing"
    current_strengths: str = ""
    key_opportunities: str = ""
    challenges: str = ""
    top_goals: str = ""
    ideal_client: str = ""
    client_problems: str = ""
    qualified_lead_factors: str = ""
    current_offers: str = ""
    future_offers: str = ""
    pricing_strategy: str = ""
    marketing_system: str = ""
    sales_system: str = ""
    next_steps: str = ""
    insights: List[str] = Field(default_factory=list)
    generated_date: str = ""
    based_on_data: List[str] = Field(default_factory=list)
    is_fallback: bool = False

    def completeness(self) -> int:
        """Percentage of core fields holding real content (not placeholders)."""
        completed = 0
        for name in COMPLETENESS_FIELDS:
            value = getattr(self, name)
            if value and value != "TBD" and "to be" not in value:
                completed += 1
        return round(completed / len(COMPLETENESS_FIELDS) * 100)

    def to_plan_data(self) -> BusinessPlanData:
        return BusinessPlanData(
            future_vision=self.future_vision,
            top_goals=self.top_goals,
            challenges=self.challenges,
            ideal_client=self.ideal_client,
            current_offers=self.current_offers,
            marketing_system=self.marketing_system,
            sales_system=self.sales_system,
            next_steps=self.next_steps,
            lead_factors=self.qualified_lead_factors,
            stage=self.business_stage,
        )

