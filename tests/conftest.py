import os

os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("AIRTABLE_TOKEN", "test-token")
os.environ.setdefault("AIRTABLE_BASE_ID", "appTEST")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

import copy
import re
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import StoreError
from app.db import airtable
from app.services import llm_service
from app.services.llm_service import Completion
from utils.constants import USERS_TABLE

TEST_EMAIL = "kai@example.com"

QUOTED = r'"((?:[^"\\]|\\.)*)"'
EQUALS_FORMULA = re.compile(r"^\{([^}]+)\}=" + QUOTED + "$")
LINKED_FORMULA = re.compile(
    r'^FIND\(", ((?:[^"\\]|\\.)*), ", ", " & ARRAYJOIN\(\{([^}]+)\}, ", "\) & ", "\)>0$'
)


def unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


def split_arguments(body: str) -> List[str]:
    """Splits a formula argument list on top-level commas."""
    parts, depth, quoted, start, index = [], 0, False, 0, 0
    while index < len(body):
        char = body[index]
        if quoted:
            if char == "\\":
                index += 1
            elif char == '"':
                quoted = False
        elif char == '"':
            quoted = True
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(body[start:index].strip())
            start = index + 1
        index += 1
    parts.append(body[start:].strip())
    return parts


class FakeStore:
    """
    In-memory stand-in for AirtableClient.

    Formulas are evaluated for user scoping only: field equality and
    linked-record membership, combined with AND(). Date and presence clauses
    and sorts are ignored, so tests seed records newest first. A record
    seeded without the filtered field matches every user.

    Link fields hold record ids; like ARRAYJOIN they are rendered as the
    linked user's User ID before matching.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[str, Exception] = {}
        self.created: List[tuple] = []
        self.updated: List[tuple] = []
        self._next_id = 0

    def _new_id(self) -> str:
        self._next_id += 1
        return f"rec{self._next_id:05d}"

    def add(self, table: str, fields: Dict[str, Any], record_id: Optional[str] = None) -> Dict[str, Any]:
        record = {"id": record_id or self._new_id(), "fields": dict(fields), "createdTime": "2024-01-01T00:00:00.000Z"}
        self.tables.setdefault(table, []).append(record)
        return record

    def add_user(self, email: str = TEST_EMAIL, **fields) -> Dict[str, Any]:
        return self.add(USERS_TABLE, {"User ID": email, **fields})

    def fail(self, table: str, error: Optional[Exception] = None):
        self.failures[table] = error or StoreError(f"Airtable request failed ({table}): 500", status=500)

    def _check(self, table: str):
        if table in self.failures:
            raise self.failures[table]

    def created_in(self, table: str) -> List[Dict[str, Any]]:
        return [fields for name, fields in self.created if name == table]

    def _link_names(self, links) -> List[str]:
        users = {record["id"]: record["fields"].get("User ID", "") for record in self.tables.get(USERS_TABLE, [])}
        if isinstance(links, str):
            links = [links]
        return [users.get(link, link) for link in (links or [])]

    def _matches(self, fields: Dict[str, Any], formula: Optional[str]) -> bool:
        if not formula:
            return True
        if formula.startswith("AND(") and formula.endswith(")"):
            return all(self._matches(fields, part) for part in split_arguments(formula[4:-1]))

        equals = EQUALS_FORMULA.match(formula)
        if equals:
            field, value = equals.group(1), unescape(equals.group(2))
            return field not in fields or str(fields[field] or "") == value

        linked = LINKED_FORMULA.match(formula)
        if linked:
            value, field = unescape(linked.group(1)), linked.group(2)
            return field not in fields or value in self._link_names(fields[field])

        return True

    async def find_records(self, table, formula=None, sort=None, max_records=None, fields=None):
        self._check(table)
        records = [
            copy.deepcopy(record)
            for record in self.tables.get(table, [])
            if self._matches(record["fields"], formula)
        ]
        return records[:max_records] if max_records else records

    async def find_first(self, table, formula=None, sort=None):
        records = await self.find_records(table, formula=formula, sort=sort, max_records=1)
        return records[0] if records else None

    async def get_record(self, table, record_id):
        self._check(table)
        for record in self.tables.get(table, []):
            if record["id"] == record_id:
                return copy.deepcopy(record)
        raise StoreError(f"Airtable request failed ({table}): 404", status=404)

    async def create_record(self, table, fields):
        self._check(table)
        self.created.append((table, dict(fields)))
        return copy.deepcopy(self.add(table, fields))

    async def update_record(self, table, record_id, fields):
        self._check(table)
        self.updated.append((table, record_id, dict(fields)))
        for record in self.tables.get(table, []):
            if record["id"] == record_id:
                record["fields"].update(fields)
                return copy.deepcopy(record)
        raise StoreError(f"Airtable request failed ({table}): 404", status=404)

    async def ping(self, table=USERS_TABLE):
        self._check(table)
        return True

    async def close(self):
        pass


class FakeLLM:
    """Replaces LLMService; `complete` is an AsyncMock returning canned completions."""

    def __init__(self):
        self.complete = AsyncMock(return_value=Completion(content="", tokens_used=0, model="gpt-test"))

    def reply(self, content: str, tokens_used: int = 42, model: str = "gpt-test"):
        self.complete.return_value = Completion(content=content, tokens_used=tokens_used, model=model)
        self.complete.side_effect = None

    def replies(self, *contents: str):
        self.complete.side_effect = [Completion(content=content, tokens_used=10, model="gpt-test") for content in contents]

    def fail(self, error: Exception):
        self.complete.side_effect = error

    @property
    def prompts(self) -> List[str]:
        sent = []
        for call in self.complete.call_args_list:
            if call.kwargs.get("prompt") is not None:
                sent.append(call.kwargs["prompt"])
            else:
                sent.append(call.kwargs["messages"][-1]["content"])
        return sent

    async def close(self):
        pass


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    monkeypatch.setattr(airtable, "_store", fake)
    return fake


@pytest.fixture
def llm(monkeypatch):
    fake = FakeLLM()
    monkeypatch.setattr(llm_service, "_llm_service", fake)
    return fake
