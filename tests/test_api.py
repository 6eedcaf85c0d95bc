from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app
from utils.constants import BUSINESS_PLANS_TABLE, INSIGHTS_TABLE, MESSAGES_TABLE, USERS_TABLE

client = TestClient(app)

TEST_EMAIL = "kai@example.com"


# ============================================================
# HEALTH
# ============================================================

def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_live():
    assert client.get("/live").json() == {"status": "alive"}


def test_health_with_reachable_store(store):
    response = client.get("/health")
    data = response.json()

    assert response.status_code == 200
    assert data["checks"] == {"airtable": "healthy", "openai": "configured"}


def test_ready_reports_unreachable_store(store):
    store.fail(USERS_TABLE)

    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json() == {"status": "not_ready", "reason": "airtable_unavailable"}


# ============================================================
# CHAT AND CONTEXT
# ============================================================

def test_chat_turn(store, llm, monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_CHAT_INSIGHTS", False)
    store.add_user()
    llm.reply("Let's start with what feels heavy this week.", tokens_used=90)

    response = client.post("/api/chat", json={
        "email": " kai@example.com ",
        "message": "I feel stuck on my launch",
        "conversationHistory": [{"role": "user", "content": "Hi Sol"}],
    })

    assert response.status_code == 200
    data = response.json()
    assert data["response"] == "Let's start with what feels heavy this week."
    assert data["tokens_used"] == 90
    assert store.created_in(MESSAGES_TABLE)[0]["User ID"] == TEST_EMAIL
    # Activity update ran as a background task
    assert store.updated[-1][0] == USERS_TABLE


def test_chat_requires_message(store, llm):
    response = client.post("/api/chat", json={"email": TEST_EMAIL, "message": ""})
    assert response.status_code == 422


def test_user_context(store):
    store.add_user(**{"Current Vision": "A calm studio"})

    response = client.post("/api/user-context", json={"email": TEST_EMAIL})

    assert response.status_code == 200
    data = response.json()
    assert data["context"]["profile"]["current_vision"] == "A calm studio"
    assert "CURRENT VISION: A calm studio" in data["summary"]
    assert len(data["slice_status"]) == 9


# ============================================================
# INSIGHTS
# ============================================================

def test_analyze_brief_exchange(store, llm):
    response = client.post("/api/analyze-message", json={
        "email": TEST_EMAIL,
        "userMessage": "Thanks!",
        "solResponse": "Anytime.",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["analyzed"] is False
    llm.complete.assert_not_called()


def test_synthesize_with_too_few_entries(store, llm):
    store.add_user()
    store.add(INSIGHTS_TABLE, {"Personalgorithm™ Notes": "Thinks out loud before deciding"})

    response = client.post("/api/synthesize-essence", json={"email": TEST_EMAIL, "forceRegenerate": True})

    assert response.status_code == 200
    assert response.json()["success"] is False
    llm.complete.assert_not_called()


def test_synthesize_unknown_user(store, llm):
    response = client.post("/api/synthesize-essence", json={"email": TEST_EMAIL})

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


# ============================================================
# DOCUMENTS
# ============================================================

def test_process_general_file(store, llm):
    store.add_user()
    llm.reply("Notes on upcoming podcast guests.")

    response = client.post("/api/process-file", json={
        "email": TEST_EMAIL,
        "filename": "guests.txt",
        "text": "Guest list and episode ideas for the spring season",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["type"] == "general"
    assert data["summary"] == "Notes on upcoming podcast guests."


def test_existing_visioning_needs_a_target():
    response = client.post("/api/process-existing-visioning", json={"forceReprocess": True})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_business_plan_accepts_camel_case(store, llm):
    store.add_user()
    llm.reply("NONE")

    response = client.post("/api/process-business-plan", json={
        "email": TEST_EMAIL,
        "businessPlanData": {
            "futureVision": "A studio that runs on three days a week",
            "topGoals": "Fill the spring cohort",
            "businessType": "coaching",
        },
    })

    assert response.status_code == 200
    data = response.json()
    assert data["profile_updates"]["Current Goals"] == "Fill the spring cohort"
    stored = store.created_in(BUSINESS_PLANS_TABLE)[0]
    assert stored["Future Vision"] == "A studio that runs on three days a week"


def test_empty_business_plan_is_rejected(store):
    store.add_user()

    response = client.post("/api/process-business-plan", json={"email": TEST_EMAIL, "businessPlanData": {}})

    assert response.status_code == 422
