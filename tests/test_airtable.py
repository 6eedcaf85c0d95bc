import json

import httpx
import pytest

from app.core.exceptions import StoreError
from app.db.airtable import (
    AirtableClient,
    all_of,
    escape_formula_value,
    field_equals,
    field_on_or_after,
    field_present,
    linked_contains,
)


def make_client(handler) -> AirtableClient:
    return AirtableClient(token="tok", base_id="appTEST", transport=httpx.MockTransport(handler))


# ============================================================
# FORMULAS
# ============================================================

def test_formula_values_are_escaped():
    assert escape_formula_value('say "hi"') == 'say \\"hi\\"'
    assert field_equals("User ID", 'a"b@example.com') == '{User ID}="a\\"b@example.com"'


LINKED_KAI = 'FIND(", kai@example.com, ", ", " & ARRAYJOIN({User}, ", ") & ", ")>0'


def airtable_find(needle: str, links) -> bool:
    """FIND over the delimited haystack that ARRAYJOIN builds for a link list."""
    return needle in ", " + ", ".join(links) + ", "


def test_linked_contains_matches_whole_link_values():
    assert linked_contains("User", "kai@example.com") == LINKED_KAI

    needle = ", kai@example.com, "
    assert airtable_find(needle, ["lee@example.com", "kai@example.com"])
    assert not airtable_find(needle, ["mikai@example.com"])
    assert not airtable_find(needle, ["kai@example.com.au"])


def test_all_of_skips_empty_parts():
    assert all_of(None, "") is None
    assert all_of(field_present("Note")) == 'NOT({Note}="")'
    assert all_of("A", None, "B") == "AND(A, B)"


def test_field_on_or_after():
    assert field_on_or_after("Timestamp", "2024-01-01T00:00:00.000Z") == (
        'NOT(IS_BEFORE({Timestamp}, "2024-01-01T00:00:00.000Z"))'
    )


# ============================================================
# CLIENT
# ============================================================

async def test_find_records_follows_offsets_and_sends_query():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.params.get("offset") == "page2":
            return httpx.Response(200, json={"records": [{"id": "rec3", "fields": {}}]})
        return httpx.Response(200, json={"records": [{"id": "rec1", "fields": {}}, {"id": "rec2", "fields": {}}], "offset": "page2"})

    client = make_client(handler)
    records = await client.find_records(
        "Personalgorithm™",
        formula=linked_contains("User", "kai@example.com"),
        sort=[("Date created", "desc")],
    )
    await client.close()

    assert [record["id"] for record in records] == ["rec1", "rec2", "rec3"]
    assert len(seen) == 2

    first = seen[0]
    assert first.url.path == "/v0/appTEST/Personalgorithm™"
    assert first.headers["Authorization"] == "Bearer tok"
    assert first.url.params["filterByFormula"] == LINKED_KAI
    assert first.url.params["sort[0][field]"] == "Date created"
    assert first.url.params["sort[0][direction]"] == "desc"


async def test_find_records_stops_at_max_records():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"records": [{"id": f"rec{i}", "fields": {}} for i in range(3)], "offset": "more"})

    client = make_client(handler)
    records = await client.find_records("Messages", max_records=2)
    await client.close()

    assert len(records) == 2
    assert len(calls) == 1
    assert calls[0].url.params["maxRecords"] == "2"
    assert calls[0].url.params["pageSize"] == "2"


async def test_create_record_posts_fields_with_typecast():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        assert request.method == "POST"
        assert request.url.path == "/v0/appTEST/Aligned Business® Plans"
        return httpx.Response(200, json={"id": "recNew", "fields": {"Top 3 Goals": "Grow"}})

    client = make_client(handler)
    record = await client.create_record("Aligned Business® Plans", {"Top 3 Goals": "Grow"})
    await client.close()

    assert record["id"] == "recNew"
    assert bodies == [{"fields": {"Top 3 Goals": "Grow"}, "typecast": True}]


async def test_update_record_patches_by_id():
    def handler(request):
        assert request.method == "PATCH"
        assert request.url.path == "/v0/appTEST/Users/recUser"
        return httpx.Response(200, json={"id": "recUser", "fields": json.loads(request.content)["fields"]})

    client = make_client(handler)
    record = await client.update_record("Users", "recUser", {"Tags": "coach"})
    await client.close()

    assert record["fields"] == {"Tags": "coach"}


async def test_http_error_raises_store_error_with_status():
    def handler(request):
        return httpx.Response(404, json={"error": "NOT_FOUND"})

    client = make_client(handler)
    with pytest.raises(StoreError) as exc_info:
        await client.get_record("Visioning", "recMissing")
    await client.close()

    assert exc_info.value.status == 404
    assert exc_info.value.code == "STORE_ERROR"


async def test_network_error_raises_store_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(StoreError) as exc_info:
        await client.find_records("Users")
    await client.close()

    assert exc_info.value.status is None
    assert "Unable to reach Airtable" in exc_info.value.message


async def test_timeout_raises_store_error():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    client = make_client(handler)
    with pytest.raises(StoreError, match="timed out"):
        await client.find_records("Users")
    await client.close()
