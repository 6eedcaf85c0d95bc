"""
app/models/user.py

Purpose: User profile model (Users table)

- Email is the unique key and the table's primary field
- Holds the Essence Profile in "Coaching Style Match"
- Monthly token accounting fields
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from utils.time_utils import parse_timestamp

USER_ID_FIELD = "User ID"
CURRENT_VISION_FIELD = "Current Vision"
CURRENT_STATE_FIELD = "Current State"
CURRENT_GOALS_FIELD = "Current Goals"
ESSENCE_FIELD = "Coaching Style Match"
TAGS_FIELD = "Tags"
LAST_SYNTHESIS_FIELD = "Last Synthesis Date"
LAST_MESSAGE_FIELD = "Last Message Date"
MEMBERSHIP_FIELD = "Membership Plan"
DATE_JOINED_FIELD = "Date Joined"
TOKENS_THIS_MONTH_FIELD = "Tokens Used this Month"
TOKEN_HISTORY_FIELD = "Token Usage History"


class UserProfile(BaseModel):
    """One row of the Users table."""

    record_id: str = Field(..., description="Airtable record ID")
    email: str = Field(..., description="User ID (email)")
    current_vision: str = ""
    current_state: str = ""
    current_goals: str = ""
    essence: str = Field(default="", description="Synthesized Essence Profile")
    tags: str = ""
    last_synthesis_date: Optional[datetime] = None
    last_message_date: Optional[datetime] = None
    membership_plan: str = ""
    date_joined: str = ""
    tokens_used_this_month: int = 0
    token_usage_history: str = ""

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "UserProfile":
        fields = record.get("fields", {})
        return cls(
            record_id=record["id"],
            email=fields.get(USER_ID_FIELD, ""),
            current_vision=fields.get(CURRENT_VISION_FIELD, "") or "",
            current_state=fields.get(CURRENT_STATE_FIELD, "") or "",
            current_goals=fields.get(CURRENT_GOALS_FIELD, "") or "",
            essence=fields.get(ESSENCE_FIELD, "") or "",
            tags=fields.get(TAGS_FIELD, "") or "",
            last_synthesis_date=parse_timestamp(fields.get(LAST_SYNTHESIS_FIELD)),
            last_message_date=parse_timestamp(fields.get(LAST_MESSAGE_FIELD)),
            membership_plan=fields.get(MEMBERSHIP_FIELD, "") or "",
            date_joined=str(fields.get(DATE_JOINED_FIELD, "") or ""),
            tokens_used_this_month=int(fields.get(TOKENS_THIS_MONTH_FIELD) or 0),
            token_usage_history=fields.get(TOKEN_HISTORY_FIELD, "") or "",
        )
