from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import ResourceNotFoundError
from app.models.insight import InsightEntry
from app.models.user import ESSENCE_FIELD, LAST_SYNTHESIS_FIELD, UserProfile
from app.services.synthesis_service import (
    build_synthesis_prompt,
    categorize_entries,
    count_new_entries,
    should_synthesize,
    synthesize_essence,
)
from utils.constants import INSIGHTS_TABLE, USERS_TABLE
from utils.time_utils import iso_timestamp

TEST_EMAIL = "kai@example.com"
NOW = datetime(2024, 6, 15, 12, tzinfo=timezone.utc)


def entries_created_at(*moments):
    return [InsightEntry(notes=f"note {index}", date_created=moment) for index, moment in enumerate(moments)]


# ============================================================
# FRESHNESS
# ============================================================

def test_never_synthesized_runs():
    run, reason = should_synthesize(None, [], now=NOW)
    assert run
    assert reason == "No previous synthesis"


def test_old_synthesis_runs():
    run, _ = should_synthesize(NOW - timedelta(days=7), [], now=NOW)
    assert run


def test_many_new_entries_run():
    last = NOW - timedelta(days=1)
    entries = entries_created_at(*[last + timedelta(minutes=i + 1) for i in range(15)])
    run, reason = should_synthesize(last, entries, now=NOW)
    assert run
    assert reason.startswith("15 new entries")


def test_recent_and_quiet_is_skipped():
    last = NOW - timedelta(days=2)
    entries = entries_created_at(last + timedelta(hours=1), last - timedelta(days=3))
    run, reason = should_synthesize(last, entries, now=NOW)
    assert not run
    assert reason == "Only 2.0 days and 1 new entries since last synthesis"


def test_force_always_runs():
    run, _ = should_synthesize(NOW - timedelta(hours=1), [], now=NOW, force=True)
    assert run


def test_count_new_entries_ignores_undated():
    since = NOW - timedelta(days=1)
    entries = entries_created_at(NOW, None, since - timedelta(days=1))
    assert count_new_entries(entries, since) == 1


# ============================================================
# BUCKETS AND PROMPT
# ============================================================

def test_first_matching_bucket_wins():
    entries = [
        InsightEntry(notes="Uses lots of exclamation marks", tags="micro-pattern, communication"),
        InsightEntry(notes="Likes to express ideas through stories", tags="chat"),
        InsightEntry(notes="Needs to decide alone before sharing", tags=""),
        InsightEntry(notes="Raised prices after a client win", tags="pricing"),
        InsightEntry(notes="Morning walks spark new ideas", tags="conversation-derived"),
    ]
    buckets = categorize_entries(entries)

    assert [entry.notes for entry in buckets["micro_patterns"]] == ["Uses lots of exclamation marks"]
    assert [entry.notes for entry in buckets["communication"]] == ["Likes to express ideas through stories"]
    assert [entry.notes for entry in buckets["decision_making"]] == ["Needs to decide alone before sharing"]
    assert [entry.notes for entry in buckets["business"]] == ["Raised prices after a client win"]
    assert [entry.notes for entry in buckets["unique"]] == ["Morning walks spark new ideas"]


def test_prompt_lists_profile_and_evolution():
    profile = UserProfile(record_id="recUser", email=TEST_EMAIL, current_vision="A calm studio")
    entries = [InsightEntry(notes=f"Observation {i}", tags="growth") for i in range(12)]

    prompt = build_synthesis_prompt(profile, entries)

    assert "CURRENT VISION: A calm studio" in prompt
    assert "CURRENT GOALS: Not yet defined" in prompt
    assert "GROWTH AND SHIFTS (12 insights)" in prompt
    assert "EARLY PATTERNS:\n• Observation 7" in prompt
    assert "RECENT PATTERNS:\n• Observation 0" in prompt


# ============================================================
# SYNTHESIS FLOW
# ============================================================

def seed_entries(store, count, created=None):
    for index in range(count):
        store.add(INSIGHTS_TABLE, {
            "Personalgorithm™ Notes": f"Distinct observation {index}",
            "Tags": "communication",
            "Date created": iso_timestamp(created) if created else None,
        })


async def test_too_few_entries(store, llm):
    store.add_user()
    seed_entries(store, 3)

    result = await synthesize_essence(TEST_EMAIL)

    assert result["success"] is False
    assert result["count"] == 3
    llm.complete.assert_not_called()


async def test_fresh_essence_is_skipped(store, llm):
    recent = datetime.now(timezone.utc) - timedelta(days=1)
    store.add_user(**{LAST_SYNTHESIS_FIELD: iso_timestamp(recent)})
    seed_entries(store, 6, created=recent - timedelta(days=2))

    result = await synthesize_essence(TEST_EMAIL)

    assert result["success"] is True
    assert result["message"] == "Essence is current - no regeneration needed"
    assert "skip_reason" in result
    llm.complete.assert_not_called()


async def test_essence_is_generated_and_stored(store, llm):
    user = store.add_user()
    seed_entries(store, 6)
    llm.reply("ESSENCE: builds momentum through conversation. " * 10)

    result = await synthesize_essence(TEST_EMAIL)

    assert result["success"] is True
    assert result["entries_analyzed"] == 6
    assert result["preview"].endswith("...")
    call = llm.complete.call_args
    assert call.kwargs["max_tokens"] == 1800
    assert call.kwargs["temperature"] == 0.35

    table, record_id, fields = store.updated[-1]
    assert (table, record_id) == (USERS_TABLE, user["id"])
    assert fields[ESSENCE_FIELD].startswith("ESSENCE: builds momentum")
    assert LAST_SYNTHESIS_FIELD in fields


async def test_force_regenerates_fresh_essence(store, llm):
    store.add_user(**{LAST_SYNTHESIS_FIELD: iso_timestamp()})
    seed_entries(store, 5)
    llm.reply("Essence text")

    result = await synthesize_essence(TEST_EMAIL, force=True)

    assert result["essence_length"] == len("Essence text")
    llm.complete.assert_awaited_once()


async def test_missing_user(store, llm):
    with pytest.raises(ResourceNotFoundError):
        await synthesize_essence(TEST_EMAIL)


async def test_only_own_entries_count_toward_synthesis(store, llm):
    user = store.add_user()
    other = store.add_user("mikai@example.com")
    for index in range(6):
        store.add(INSIGHTS_TABLE, {"Personalgorithm™ Notes": f"Their observation {index}", "User": [other["id"]]})
    for index in range(3):
        store.add(INSIGHTS_TABLE, {"Personalgorithm™ Notes": f"My observation {index}", "User": [user["id"]]})

    result = await synthesize_essence(TEST_EMAIL)

    assert result["success"] is False
    assert result["count"] == 3
    llm.complete.assert_not_called()
