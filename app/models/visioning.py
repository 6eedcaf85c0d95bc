"""
app/models/visioning.py

Purpose: Visioning models

- VisioningDocument: one row of the Visioning table
- VisioningAnalysis: structured extraction from a visioning questionnaire
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from utils.time_utils import parse_timestamp

VISIONING_ID_FIELD = "Visioning ID"
USER_LINK_FIELD = "User ID"
SUBMITTED_FIELD = "Date of Submission"
SUMMARY_FIELD = "Summary of Visioning"
TEXT_FIELD = "Visioning Homework - Text Format"
TAGS_FIELD = "Tags"
ACTION_STEPS_FIELD = "Action Steps"
NOTES_FIELD = "Notes for Sol"
REVIEWED_FIELD = "Reviewed (?)"

NOT_SPECIFIED = "Not specified"


class VisioningDocument(BaseModel):
    record_id: str
    visioning_id: str = ""
    user_links: List[str] = Field(default_factory=list)
    submitted_at: Optional[datetime] = None
    summary: str = ""
    text: str = ""
    tags: str = ""
    action_steps: str = ""
    notes_for_sol: str = ""
    reviewed: bool = False

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "VisioningDocument":
        fields = record.get("fields", {})
        links = fields.get(USER_LINK_FIELD) or []
        if isinstance(links, str):
            links = [links]
        return cls(
            record_id=record["id"],
            visioning_id=fields.get(VISIONING_ID_FIELD, "") or "",
            user_links=list(links),
            submitted_at=parse_timestamp(fields.get(SUBMITTED_FIELD)),
            summary=fields.get(SUMMARY_FIELD, "") or "",
            text=fields.get(TEXT_FIELD, "") or "",
            tags=fields.get(TAGS_FIELD, "") or "",
            action_steps=fields.get(ACTION_STEPS_FIELD, "") or "",
            notes_for_sol=fields.get(NOTES_FIELD, "") or "",
            reviewed=bool(fields.get(REVIEWED_FIELD)),
        )


class VisioningAnalysis(BaseModel):
    """
    Flattened result of a visioning analysis.

    `sections` keeps the raw labeled JSON objects for reference.
    """

    business_name: str = ""
    industry: str = ""
    business_stage: str = ""
    vision: str = ""
    goals: str = ""
    current_state: str = ""
    values: str = ""
    mission_statement: str = ""
    differentiation: str = ""
    inspiration: str = ""
    challenges: str = ""
    strengths: str = ""
    mindset_blocks: str = ""
    ideal_client: str = ""
    client_problems: str = ""
    current_offerings: str = ""
    marketing_efforts: str = ""
    communication_style: str = ""
    learning_style: str = ""
    transformation_triggers: str = ""
    coaching_needs: str = ""
    insights: List[str] = Field(default_factory=list)
    tags: str = ""
    sections: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def summary(self, include_goals: bool = False) -> str:
        parts = [
            f"Business: {self.business_name or NOT_SPECIFIED}",
            f"Industry: {self.industry or NOT_SPECIFIED}",
            f"Vision: {self.vision or NOT_SPECIFIED}",
        ]
        if include_goals:
            parts.append(f"Goals: {self.goals or NOT_SPECIFIED}")
        return " | ".join(parts)

    def action_steps(self) -> str:
        return (
            "Based on comprehensive visioning: "
            f"1) Focus on {self.goals or 'identified goals'} "
            f"2) Address challenges: {self.challenges or 'noted obstacles'} "
            f"3) Leverage strengths: {self.strengths or 'identified assets'} "
            f"4) Develop ideal client: {self.ideal_client or 'target audience'}"
        )

    def notes_for_sol(self) -> str:
        return (
            f"Learning Style: {self.learning_style or NOT_SPECIFIED}. "
            f"Communication: {self.communication_style or NOT_SPECIFIED}. "
            f"Transformation Triggers: {self.transformation_triggers or NOT_SPECIFIED}. "
            f"Coaching Needs: {self.coaching_needs or NOT_SPECIFIED}."
        )

    def extracted_data(self) -> Dict[str, str]:
        return {
            "business_name": self.business_name,
            "industry": self.industry,
            "business_stage": self.business_stage,
            "vision": self.vision,
        }
