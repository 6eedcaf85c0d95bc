"""
app/models/message.py

Purpose: Conversation log model (Messages table)

Append-only; one row per chat turn.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class Message(BaseModel):
    message_id: str
    email: str
    user_message: str
    sol_response: str
    timestamp: str
    tokens_used: int = 0
    tags: str = ""

    def to_fields(self) -> Dict[str, Any]:
        return {
            "Message ID": self.message_id,
            "User ID": self.email,
            "User Message": self.user_message,
            "Sol Response": self.sol_response,
            "Timestamp": self.timestamp,
            "Tokens Used": self.tokens_used,
            "Tags": self.tags,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Message":
        fields = record.get("fields", {})
        return cls(
            message_id=fields.get("Message ID", record.get("id", "")),
            email=fields.get("User ID", ""),
            user_message=fields.get("User Message", "") or "",
            sol_response=fields.get("Sol Response", "") or "",
            timestamp=fields.get("Timestamp", "") or "",
            tokens_used=int(fields.get("Tokens Used") or 0),
            tags=fields.get("Tags", "") or "",
        )


class ConversationTurn(BaseModel):
    """One prior message sent by the chat UI."""

    role: str = Field(..., description="'user' or 'sol'")
    content: str = ""

    def to_openai(self) -> Dict[str, str]:
        return {
            "role": "assistant" if self.role in ("sol", "assistant") else "user",
            "content": self.content,
        }
