"""
app/services/chat_service.py

Purpose: Chat turns with Sol

- Detects visioning homework pasted into chat and acknowledges it
- Builds the persona system prompt from the user's context
- Calls the language model (fallback text on failure)
- Logs every turn and schedules post-response work
"""

from typing import Any, Dict, List, Sequence, Tuple

from fastapi import BackgroundTasks

from app.core.config import settings
from app.core.exceptions import LLMServiceError, StoreError
from app.core.logging import get_logger
from app.models.message import ConversationTurn
from app.services.context_service import ContextBundle, aggregate_context
from app.services.insight_extractor import analyze_conversation_turn
from app.services.llm_service import Completion, get_llm_service
from app.services.message_service import log_message
from app.services.prompts import PERSONA_GUIDELINES
from app.services.user_service import record_chat_activity
from app.services.visioning_service import process_visioning
from utils.constants import (
    CHAT_FALLBACK_MESSAGE,
    GENERAL_SUPPORT_TAG,
    VISIONING_ACK_EMOTIONAL,
    VISIONING_ACK_OPENING,
    VISIONING_ACK_QUESTION,
    VISIONING_ACK_VALIDATION,
    VISIONING_CHAT_MARKERS,
    VISIONING_CHAT_MIN_LENGTH,
    VISIONING_DETECTED_TAG,
    VISIONING_HELP_MESSAGE,
    VISIONING_HELP_PHRASES,
)
from utils.time_utils import iso_timestamp
from utils.validation_utils import truncate

logger = get_logger(__name__)

FALLBACK_MODEL = "fallback"

# System prompt limits
PROMPT_PATTERN_LIMIT = 10
PROMPT_SOL_NOTE_LIMIT = 5
PROMPT_METHOD_LIMIT = 3
PROMPT_METHOD_CHARS = 200
PROMPT_ESSENCE_CHARS = 2000
PROMPT_VISION_CHARS = 500
PROMPT_GOALS_CHARS = 300
PROMPT_STATE_CHARS = 300

# Escalation triggers for the advanced model
COMPLEX_MESSAGE_LENGTH = 500
COMPLEX_MESSAGE_KEYWORDS = ("strategy", "pricing", "business plan", "launch", "offer")


# ============================================================
# DETECTION
# ============================================================

def is_visioning_content(message: str) -> bool:
    """A long message carrying visioning homework markers."""
    if len(message) <= VISIONING_CHAT_MIN_LENGTH:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in VISIONING_CHAT_MARKERS)


def is_visioning_help_request(message: str, has_visioning: bool) -> bool:
    if has_visioning:
        return False
    lowered = message.lower()
    return any(phrase in lowered for phrase in VISIONING_HELP_PHRASES)


def warm_acknowledgment(bundle: ContextBundle) -> str:
    """
    Immediate reply to pasted visioning homework, shaped by known patterns.
    """
    response = VISIONING_ACK_OPENING

    if any("emotional" in entry.tags.lower() or "emotional" in entry.notes.lower() for entry in bundle.insights):
        response += VISIONING_ACK_EMOTIONAL

    if any(
        "validation" in entry.notes.lower() or "acknowledgment" in entry.notes.lower()
        for entry in bundle.insights
    ):
        response += VISIONING_ACK_VALIDATION

    return response + VISIONING_ACK_QUESTION


# ============================================================
# PROMPT AND MODEL
# ============================================================

def build_system_prompt(bundle: ContextBundle) -> str:
    prompt = (
        "You are Sol™, an AI business partner trained with Kelsey's Aligned Business® Method.\n\n"
        f"USER: {bundle.email}\n\n"
    )

    if bundle.insights:
        prompt += "=== HOW THIS PERSON WORKS (Top Patterns) ===\n"
        for entry in bundle.insights[:PROMPT_PATTERN_LIMIT]:
            prompt += f"- {entry.notes}\n"
        prompt += "\n"

    profile = bundle.profile
    if profile and profile.essence:
        prompt += "=== ESSENCE ===\n"
        prompt += truncate(profile.essence, PROMPT_ESSENCE_CHARS, "...") + "\n\n"

    if bundle.sol_notes:
        prompt += "=== GENERAL PRINCIPLES ===\n"
        for note in bundle.sol_notes[:PROMPT_SOL_NOTE_LIMIT]:
            prompt += f"{note.get('Note', '')}\n"
        prompt += "\n"

    if bundle.coaching_methods:
        prompt += "=== KEY FRAMEWORKS ===\n"
        for method in bundle.coaching_methods[:PROMPT_METHOD_LIMIT]:
            content = truncate(method.get("Lesson Content"), PROMPT_METHOD_CHARS) or "Available"
            prompt += f"**{method.get('Name of Lesson', 'Lesson')}**: {content}\n"
        prompt += "\n"

    prompt += "=== USER CONTEXT ===\n\n"
    if profile:
        if profile.current_vision:
            prompt += f"Vision: {truncate(profile.current_vision, PROMPT_VISION_CHARS)}\n"
        if profile.current_goals:
            prompt += f"Goals: {truncate(profile.current_goals, PROMPT_GOALS_CHARS)}\n"
        if profile.current_state:
            prompt += f"State: {truncate(profile.current_state, PROMPT_STATE_CHARS)}\n"
        prompt += "\n"

    if bundle.visioning:
        prompt += "User has submitted visioning homework\n\n"

    return prompt + PERSONA_GUIDELINES


def is_complex_message(message: str) -> bool:
    lowered = message.lower()
    return len(message) > COMPLEX_MESSAGE_LENGTH or any(keyword in lowered for keyword in COMPLEX_MESSAGE_KEYWORDS)


def select_model(message: str) -> Tuple[str, int]:
    """
    Returns (model, max_tokens). The advanced model is only used when
    escalation is enabled and the message looks complex.
    """
    if settings.ENABLE_MODEL_ESCALATION and is_complex_message(message):
        return settings.OPENAI_ADVANCED_MODEL, 800
    return settings.OPENAI_CHAT_MODEL, 400


def build_messages(
    system_prompt: str,
    message: str,
    history: Sequence[ConversationTurn]
) -> List[Dict[str, str]]:
    recent = list(history)[-settings.CHAT_HISTORY_TURNS:] if settings.CHAT_HISTORY_TURNS else []
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(turn.to_openai() for turn in recent)
    messages.append({"role": "user", "content": message})
    return messages


async def generate_response(message: str, history: Sequence[ConversationTurn], bundle: ContextBundle) -> Completion:
    """
    Runs the chat completion, falling back to a warm apology on failure.
    """
    model, max_tokens = select_model(message)
    messages = build_messages(build_system_prompt(bundle), message, history)

    try:
        return await get_llm_service().complete(
            messages=messages,
            model=model,
            max_tokens=max_tokens,
            temperature=0.7,
        )
    except LLMServiceError as e:
        logger.error(f"Chat completion failed, using fallback: {e.message}")
        return Completion(content=CHAT_FALLBACK_MESSAGE, tokens_used=0, model=FALLBACK_MODEL)


# ============================================================
# BACKGROUND WORK
# ============================================================

async def process_visioning_in_background(email: str, text: str):
    try:
        result = await process_visioning(email, text)
        logger.info(f"Background visioning processed: {result['insights_created']} insights")
    except Exception as e:
        logger.error(f"Background visioning processing failed: {e}", exc_info=True)


async def analyze_turn_in_background(
    email: str,
    user_message: str,
    sol_response: str,
    history: Sequence[ConversationTurn]
):
    try:
        result = await analyze_conversation_turn(email, user_message, sol_response, history)
        logger.info(f"Background turn analysis: {result['entries_created']} entries created")
    except Exception as e:
        logger.error(f"Background turn analysis failed: {e}", exc_info=True)


async def record_activity_in_background(email: str, tokens_used: int, timestamp: str):
    try:
        await record_chat_activity(email, tokens_used, timestamp)
    except Exception as e:
        logger.error(f"Activity update failed: {e}", exc_info=True)


async def _log_turn(email: str, message: str, response: str, tokens_used: int, tags: str, timestamp: str):
    try:
        await log_message(email, message, response, tokens_used=tokens_used, tags=tags, timestamp=timestamp)
    except StoreError as e:
        logger.error(f"Message logging failed: {e.message}")


# ============================================================
# CHAT TURN
# ============================================================

async def handle_chat(
    email: str,
    message: str,
    history: Sequence[ConversationTurn],
    background_tasks: BackgroundTasks,
) -> Dict[str, Any]:
    """
    Handles one chat turn.

    Returns:
        {success, response, tags, tokens_used, model}
    """
    timestamp = iso_timestamp()
    bundle = await aggregate_context(email)

    if is_visioning_content(message):
        logger.info("Visioning content detected in chat; processing in background")
        reply = warm_acknowledgment(bundle)
        await _log_turn(email, message, reply, 0, VISIONING_DETECTED_TAG, timestamp)
        background_tasks.add_task(process_visioning_in_background, email, message)
        background_tasks.add_task(record_activity_in_background, email, 0, timestamp)
        return {
            "success": True,
            "response": reply,
            "tags": VISIONING_DETECTED_TAG,
            "tokens_used": 0,
            "model": None,
        }

    if is_visioning_help_request(message, has_visioning=bundle.visioning is not None):
        await _log_turn(email, message, VISIONING_HELP_MESSAGE, 0, VISIONING_DETECTED_TAG, timestamp)
        background_tasks.add_task(record_activity_in_background, email, 0, timestamp)
        return {
            "success": True,
            "response": VISIONING_HELP_MESSAGE,
            "tags": VISIONING_DETECTED_TAG,
            "tokens_used": 0,
            "model": None,
        }

    completion = await generate_response(message, history, bundle)
    await _log_turn(email, message, completion.content, completion.tokens_used, GENERAL_SUPPORT_TAG, timestamp)

    if settings.ENABLE_CHAT_INSIGHTS and completion.model != FALLBACK_MODEL:
        background_tasks.add_task(analyze_turn_in_background, email, message, completion.content, list(history))
    background_tasks.add_task(record_activity_in_background, email, completion.tokens_used, timestamp)

    return {
        "success": True,
        "response": completion.content,
        "tags": GENERAL_SUPPORT_TAG,
        "tokens_used": completion.tokens_used,
        "model": completion.model,
    }
