from datetime import datetime, timezone

import pytest

from app.core.exceptions import ResourceNotFoundError
from app.models.user import (
    LAST_MESSAGE_FIELD,
    TAGS_FIELD,
    TOKEN_HISTORY_FIELD,
    TOKENS_THIS_MONTH_FIELD,
    UserProfile,
)
from app.services.message_service import log_message
from app.services.user_service import (
    merged_tags_update,
    record_chat_activity,
    require_user_profile,
    token_usage_updates,
    update_user_profile,
)
from utils.constants import MESSAGES_TABLE, USERS_TABLE

TEST_EMAIL = "kai@example.com"


def profile_with(**fields) -> UserProfile:
    return UserProfile(record_id="recUser", email=TEST_EMAIL, **fields)


# ============================================================
# TOKEN ACCOUNTING
# ============================================================

def test_tokens_accumulate_within_a_month():
    profile = profile_with(
        tokens_used_this_month=1000,
        last_message_date=datetime(2024, 5, 3, tzinfo=timezone.utc),
    )
    updates = token_usage_updates(profile, 250, now=datetime(2024, 5, 20, tzinfo=timezone.utc))
    assert updates == {TOKENS_THIS_MONTH_FIELD: 1250}


def test_new_month_rolls_total_into_history():
    profile = profile_with(
        tokens_used_this_month=1000,
        token_usage_history="2024-03: 800 tokens",
        last_message_date=datetime(2024, 4, 28, tzinfo=timezone.utc),
    )
    updates = token_usage_updates(profile, 250, now=datetime(2024, 5, 2, tzinfo=timezone.utc))
    assert updates == {
        TOKEN_HISTORY_FIELD: "2024-04: 1000 tokens\n2024-03: 800 tokens",
        TOKENS_THIS_MONTH_FIELD: 250,
    }


def test_rollover_resets_counter_even_without_tokens():
    profile = profile_with(tokens_used_this_month=40, last_message_date=datetime(2024, 1, 31, tzinfo=timezone.utc))
    updates = token_usage_updates(profile, 0, now=datetime(2024, 2, 1, tzinfo=timezone.utc))
    assert updates == {TOKEN_HISTORY_FIELD: "2024-01: 40 tokens", TOKENS_THIS_MONTH_FIELD: 0}


def test_first_message_has_no_rollover():
    updates = token_usage_updates(profile_with(), 75, now=datetime(2024, 2, 1, tzinfo=timezone.utc))
    assert updates == {TOKENS_THIS_MONTH_FIELD: 75}


# ============================================================
# TAGS
# ============================================================

def test_merged_tags_update_only_when_something_is_new():
    profile = profile_with(tags="coach, early-stage")
    assert merged_tags_update(profile, ["Coach"]) == {}
    assert merged_tags_update(profile, "pricing") == {TAGS_FIELD: "coach, early-stage, pricing"}
    assert merged_tags_update(profile, None) == {}


# ============================================================
# STORE
# ============================================================

async def test_record_chat_activity_writes_once(store):
    user = store.add_user(**{TOKENS_THIS_MONTH_FIELD: 10})

    await record_chat_activity(TEST_EMAIL, 5, timestamp="2024-05-02T10:00:00.000Z")

    assert len(store.updated) == 1
    table, record_id, fields = store.updated[0]
    assert (table, record_id) == (USERS_TABLE, user["id"])
    assert fields[LAST_MESSAGE_FIELD] == "2024-05-02T10:00:00.000Z"
    assert fields[TOKENS_THIS_MONTH_FIELD] == 15


async def test_record_chat_activity_unknown_user(store):
    assert await record_chat_activity(TEST_EMAIL, 5) is None
    assert store.updated == []


async def test_update_user_profile_skips_empty_updates(store):
    store.add_user()
    assert await update_user_profile(TEST_EMAIL, {}) is None
    assert store.updated == []


async def test_require_user_profile(store):
    with pytest.raises(ResourceNotFoundError):
        await require_user_profile(TEST_EMAIL)

    store.add_user(**{"Current Goals": "Launch a podcast"})
    profile = await require_user_profile(TEST_EMAIL)
    assert profile.current_goals == "Launch a podcast"


async def test_log_message_appends_turn(store):
    message = await log_message(" kai@example.com ", "Hi Sol", "Hi Kai", tokens_used=12, tags="general-support")

    fields = store.created_in(MESSAGES_TABLE)[0]
    assert fields["User ID"] == TEST_EMAIL
    assert fields["Tokens Used"] == 12
    assert fields["Message ID"] == message.message_id
    assert message.message_id.startswith("msg_")
