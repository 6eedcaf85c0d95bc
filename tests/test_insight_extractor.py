import pytest

from app.core.exceptions import ExtractionError, LLMServiceError, ResourceNotFoundError
from app.services.insight_extractor import (
    analyze_conversation_turn,
    extract_document_insights,
    extract_insights,
    filter_novel,
    format_conversation,
    is_near_duplicate,
    normalize_note,
    select_insights,
    should_analyze_message,
)
from app.models.message import ConversationTurn
from utils.constants import INSIGHTS_TABLE

TEST_EMAIL = "kai@example.com"

LONG_USER_MESSAGE = "I keep putting off raising my coaching prices even though my calendar is full."
LONG_SOL_RESPONSE = "It sounds like your pricing is lagging behind the demand you have already created for yourself."

EXTRACTION_REPLY = """
COMMUNICATION_PATTERNS: [
  "Frames money decisions as questions of fairness to clients",
  "Opens with context before stating what they actually want"
]
DECISION_MAKING_STYLE: [
  "Delays pricing changes until external proof feels overwhelming"
]
GROWTH_EDGES: [
  "Undervalues expertise when demand is clearly strong"
]
"""


# ============================================================
# FILTERS
# ============================================================

def test_short_or_generic_turns_are_not_analyzed():
    assert not should_analyze_message("Too short", LONG_SOL_RESPONSE)
    assert not should_analyze_message(LONG_USER_MESSAGE, "Short reply")
    assert should_analyze_message(LONG_USER_MESSAGE, LONG_SOL_RESPONSE)


def test_greeting_is_generic_even_when_padded():
    padded = "Hello" + " " * 40
    assert not should_analyze_message(padded, LONG_SOL_RESPONSE)


def test_near_duplicates_by_containment_and_overlap():
    known = [normalize_note("Prefers voice notes over long written plans")]
    assert is_near_duplicate(normalize_note("prefers voice notes over long written plans!"), known)
    assert is_near_duplicate(normalize_note("Prefers voice notes"), known)
    assert is_near_duplicate(normalize_note("Prefers voice notes over long written plans today"), known)
    assert not is_near_duplicate(normalize_note("Gets energized by teaching live workshops"), known)


def test_filter_novel_drops_repeats_within_batch():
    notes = ["Needs quiet mornings to plan", "needs quiet mornings to plan.", "Thinks best while walking outdoors"]
    assert filter_novel(notes, []) == ["Needs quiet mornings to plan", "Thinks best while walking outdoors"]


def test_select_insights_caps_in_label_order():
    parsed = {
        "COMMUNICATION_PATTERNS": ["Opens with context before stating what they want"],
        "GROWTH_EDGES": ["Undervalues expertise when demand is clearly strong"],
        "DECISION_MAKING_STYLE": ["Delays pricing changes until proof is overwhelming"],
    }
    selected = select_insights(parsed, existing_notes=[], cap=2)

    assert [insight.category for insight in selected] == ["COMMUNICATION_PATTERNS", "DECISION_MAKING_STYLE"]
    assert selected[0].tags == "communication-patterns, conversation-derived"


def test_select_insights_skips_existing_notes():
    parsed = {"GROWTH_EDGES": ["Undervalues expertise when demand is clearly strong"]}
    assert select_insights(parsed, ["Undervalues expertise when demand is clearly strong"], cap=5) == []
    assert select_insights(parsed, [], cap=0) == []


def test_format_conversation_includes_last_three_turns():
    history = [ConversationTurn(role="user", content=f"turn {i}") for i in range(5)]
    text = format_conversation("question", "answer", history)

    assert 'USER MESSAGE: "question"' in text
    assert "turn 1" not in text
    assert 'user: "turn 4"' in text


# ============================================================
# EXTRACTION
# ============================================================

async def test_extract_insights_respects_cap(llm):
    llm.reply(EXTRACTION_REPLY)

    insights = await extract_insights("conversation", "a coaching conversation", cap=2)

    assert len(insights) == 2
    call = llm.complete.call_args
    assert call.kwargs["temperature"] == 0.3
    assert "a coaching conversation" in call.kwargs["prompt"]


async def test_extract_insights_none_reply_is_empty(llm):
    llm.reply("NONE")
    assert await extract_insights("conversation", "chat", cap=2) == []


async def test_extract_insights_empty_reply_raises(llm):
    llm.reply("")
    with pytest.raises(ExtractionError):
        await extract_insights("conversation", "chat", cap=2)


async def test_extract_insights_unlabeled_reply_raises(llm):
    llm.reply("Here are some thoughts about this person.")
    with pytest.raises(ExtractionError):
        await extract_insights("conversation", "chat", cap=2)


async def test_extract_insights_maps_llm_failure(llm):
    llm.fail(LLMServiceError("Language model request failed", details="timeout"))
    with pytest.raises(ExtractionError) as exc_info:
        await extract_insights("conversation", "chat", cap=2)
    assert exc_info.value.details == "timeout"


async def test_document_insights_put_analysis_notes_first(llm):
    llm.reply(EXTRACTION_REPLY)

    candidates = await extract_document_insights(
        "visioning text",
        document_type="visioning",
        primary_notes=["Wants a business that funds long summers with family"],
        existing_notes=[],
        tags=["visioning-derived", "intake"],
    )

    assert candidates[0].note == "Wants a business that funds long summers with family"
    assert candidates[0].tags == "visioning-derived, intake"
    assert len(candidates) == 5
    assert all("visioning-derived" in candidate.tags for candidate in candidates)
    assert "document-derived" in candidates[1].tags


async def test_document_insights_are_capped(llm):
    primary = [f"Distinct analysis observation number {word}" for word in
               ("alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "golf", "hotel", "india")]

    candidates = await extract_document_insights("text", "visioning", primary, [], "visioning-derived")

    assert len(candidates) == 8
    llm.complete.assert_not_called()


async def test_document_insights_survive_extractor_failure(llm):
    llm.fail(LLMServiceError("down"))

    candidates = await extract_document_insights(
        "text", "business-plan", ["Clear on serving burned-out nurse practitioners"], [], "business-plan"
    )

    assert [candidate.note for candidate in candidates] == ["Clear on serving burned-out nurse practitioners"]


# ============================================================
# CONVERSATION TURNS
# ============================================================

async def test_brief_turn_is_not_analyzed(store, llm):
    result = await analyze_conversation_turn(TEST_EMAIL, "ok", LONG_SOL_RESPONSE)

    assert result["analyzed"] is False
    assert result["entries_created"] == 0
    llm.complete.assert_not_called()


async def test_turn_analysis_creates_at_most_two_entries(store, llm):
    user = store.add_user()
    llm.reply(EXTRACTION_REPLY)

    result = await analyze_conversation_turn(TEST_EMAIL, LONG_USER_MESSAGE, LONG_SOL_RESPONSE)

    assert result["analyzed"] is True
    assert result["entries_created"] == 2
    created = store.created_in(INSIGHTS_TABLE)
    assert len(created) == 2
    assert created[0]["User"] == [user["id"]]
    assert "conversation-derived" in created[0]["Tags"]
    assert result["created_entries"][0]["insight"].endswith("...")


async def test_turn_analysis_skips_known_insights(store, llm):
    store.add_user()
    store.add(INSIGHTS_TABLE, {"Personalgorithm™ Notes": "Frames money decisions as questions of fairness to clients"})
    llm.reply(EXTRACTION_REPLY)

    result = await analyze_conversation_turn(TEST_EMAIL, LONG_USER_MESSAGE, LONG_SOL_RESPONSE)

    notes = [fields["Personalgorithm™ Notes"] for fields in store.created_in(INSIGHTS_TABLE)]
    assert "Frames money decisions as questions of fairness to clients" not in notes
    assert result["entries_created"] == 2


async def test_turn_analysis_requires_user(store, llm):
    llm.reply(EXTRACTION_REPLY)
    with pytest.raises(ResourceNotFoundError):
        await analyze_conversation_turn(TEST_EMAIL, LONG_USER_MESSAGE, LONG_SOL_RESPONSE)
