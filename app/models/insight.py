"""
app/models/insight.py

Purpose: Insight entry model (Personalgorithm™ table)

- Short observations about how a user operates
- Append-only; the synthesizer reads them back in bulk
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from utils.time_utils import parse_timestamp

ENTRY_ID_FIELD = "Personalgorithm™ ID"
USER_LINK_FIELD = "User"
NOTES_FIELD = "Personalgorithm™ Notes"
TAGS_FIELD = "Tags"
DATE_CREATED_FIELD = "Date created"


class InsightEntry(BaseModel):
    record_id: Optional[str] = None
    entry_id: str = ""
    notes: str
    tags: str = ""
    date_created: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "InsightEntry":
        fields = record.get("fields", {})
        return cls(
            record_id=record.get("id"),
            entry_id=fields.get(ENTRY_ID_FIELD, "") or "",
            notes=fields.get(NOTES_FIELD, "") or "",
            tags=fields.get(TAGS_FIELD, "") or "",
            date_created=parse_timestamp(fields.get(DATE_CREATED_FIELD)),
        )

    def to_fields(self, user_record_id: str, created_at: str) -> Dict[str, Any]:
        return {
            ENTRY_ID_FIELD: self.entry_id,
            USER_LINK_FIELD: [user_record_id],
            NOTES_FIELD: self.notes,
            DATE_CREATED_FIELD: created_at,
            TAGS_FIELD: self.tags,
        }


class CandidateInsight(BaseModel):
    """An extracted insight not yet written to the store."""

    category: str
    note: str
    tags: str

