"""
app/schemas/requests.py

Purpose: Request bodies for the coaching API

- Accepts snake_case or camelCase keys from the web app
- Validates and trims the email used as the user key
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.models.business_plan import BusinessPlanData
from app.models.message import ConversationTurn
from utils.validation_utils import normalize_email, validate_email


def _checked_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not validate_email(value):
        raise ValueError("A valid email is required")
    return normalize_email(value)


class SolRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str = Field(..., description="User email (the user key)")

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        return _checked_email(value)


class ChatRequest(SolRequest):
    message: str = Field(..., min_length=1)
    conversation_history: List[ConversationTurn] = Field(default_factory=list)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "email": "coach@example.com",
                "message": "How should I price my new offer?",
                "conversation_history": [{"role": "user", "content": "Hi Sol"}],
            }
        },
    )


class UserContextRequest(SolRequest):
    pass


class AnalyzeMessageRequest(SolRequest):
    user_message: str
    sol_response: str
    conversation_context: List[ConversationTurn] = Field(default_factory=list)


class SynthesizeEssenceRequest(SolRequest):
    force_regenerate: bool = False


class ProcessFileRequest(SolRequest):
    """Text is extracted client-side; only the plain text is sent."""

    filename: str = ""
    text: str = Field(..., min_length=1)


class ProcessVisioningRequest(SolRequest):
    visioning_text: str = Field(..., min_length=1)


class ProcessBusinessPlanRequest(SolRequest):
    business_plan_data: BusinessPlanData


class ProcessExistingVisioningRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: Optional[str] = None
    visioning_id: Optional[str] = None
    force_reprocess: bool = False

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        return _checked_email(value)

    @model_validator(mode="after")
    def require_target(self):
        if not self.email and not self.visioning_id:
            raise ValueError("Either email or visioning_id is required")
        return self


class GenerateBusinessPlanRequest(SolRequest):
    plan_type: str = "full"
    update_existing: bool = False
