"""
app/db/airtable.py

Purpose: Airtable connection setup

- Thin async CRUD facade over the Airtable REST API
- Filter formula helpers with string-literal escaping
- Offset pagination for list queries
- Proper client lifecycle management (startup/shutdown)
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.exceptions import StoreError
from app.core.logging import get_logger
from utils.constants import USERS_TABLE

logger = get_logger(__name__)

Record = Dict[str, Any]
SortSpec = Sequence[Tuple[str, str]]

# Airtable caps a single list page at 100 records
PAGE_SIZE = 100

# Delimiter used when matching one value inside a joined link field
LINK_SEPARATOR = ", "


# ============================================================
# FORMULA HELPERS
# ============================================================

def escape_formula_value(value: Any) -> str:
    """Escapes a value for use inside an Airtable double-quoted string literal."""
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def field_equals(field: str, value: Any) -> str:
    return f'{{{field}}}="{escape_formula_value(value)}"'


def linked_contains(field: str, value: Any) -> str:
    """
    Matches records whose linked-record field holds exactly `value`.

    ARRAYJOIN renders a link field as its linked records' primary values,
    so this matches on email for links to Users. Both sides are wrapped in
    ", " delimiters so "kai@example.com" does not match "mikai@example.com".
    """
    needle = f"{LINK_SEPARATOR}{escape_formula_value(value)}{LINK_SEPARATOR}"
    haystack = f'"{LINK_SEPARATOR}" & ARRAYJOIN({{{field}}}, "{LINK_SEPARATOR}") & "{LINK_SEPARATOR}"'
    return f'FIND("{needle}", {haystack})>0'


def field_on_or_after(field: str, iso: str) -> str:
    return f'NOT(IS_BEFORE({{{field}}}, "{escape_formula_value(iso)}"))'


def field_present(field: str) -> str:
    return f'NOT({{{field}}}="")'


def all_of(*formulas: Optional[str]) -> Optional[str]:
    """Combines formulas with AND(), skipping empty ones."""
    parts = [formula for formula in formulas if formula]
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return f"AND({', '.join(parts)})"


# ============================================================
# CLIENT
# ============================================================

class AirtableClient:
    """
    Async Airtable client for a single base.

    All methods raise StoreError on transport failures and non-2xx responses.
    """

    def __init__(
        self,
        token: Optional[str],
        base_id: Optional[str],
        api_url: str = "https://api.airtable.com/v0",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_id = base_id or ""
        self._client = httpx.AsyncClient(
            base_url=f"{api_url.rstrip('/')}/{self.base_id}",
            headers={
                "Authorization": f"Bearer {token or ''}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _table_path(table: str, record_id: Optional[str] = None) -> str:
        path = "/" + quote(table, safe="")
        if record_id:
            path += "/" + quote(record_id, safe="")
        return path

    async def _request(self, method: str, table: str, record_id: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        path = self._table_path(table, record_id)

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Airtable timeout: {method} {table}", extra={"table": table})
            raise StoreError(f"Airtable request timed out ({table})", details=str(e)) from e
        except httpx.RequestError as e:
            logger.error(f"Airtable network error: {method} {table}: {e}", extra={"table": table})
            raise StoreError(f"Unable to reach Airtable ({table})", details=str(e)) from e

        if response.status_code >= 400:
            logger.warning(
                f"Airtable {method} {table} failed with {response.status_code}",
                extra={"table": table, "record_id": record_id}
            )
            raise StoreError(
                f"Airtable request failed ({table}): {response.status_code}",
                status=response.status_code,
                details=response.text,
            )

        return response.json()

    async def find_records(
        self,
        table: str,
        formula: Optional[str] = None,
        sort: Optional[SortSpec] = None,
        max_records: Optional[int] = None,
        fields: Optional[Sequence[str]] = None
    ) -> List[Record]:
        """
        Lists records matching a filter formula.

        Args:
            table: Table name (URL-encoded here)
            formula: Airtable filterByFormula expression
            sort: (field, "asc"|"desc") pairs, applied in order
            max_records: Upper bound on total records returned
            fields: Restrict returned fields

        Returns:
            Raw Airtable records ({"id", "fields", "createdTime"})
        """
        params: List[Tuple[str, Any]] = []
        if formula:
            params.append(("filterByFormula", formula))
        for index, (field, direction) in enumerate(sort or ()):
            params.append((f"sort[{index}][field]", field))
            params.append((f"sort[{index}][direction]", direction))
        if max_records:
            params.append(("maxRecords", max_records))
            params.append(("pageSize", min(max_records, PAGE_SIZE)))
        for field in fields or ():
            params.append(("fields[]", field))

        records: List[Record] = []
        offset: Optional[str] = None

        while True:
            page_params = list(params)
            if offset:
                page_params.append(("offset", offset))

            data = await self._request("GET", table, params=page_params)
            records.extend(data.get("records", []))

            offset = data.get("offset")
            if not offset or (max_records and len(records) >= max_records):
                break

        if max_records:
            records = records[:max_records]

        logger.debug(f"Fetched {len(records)} records from {table}", extra={"table": table})
        return records

    async def find_first(
        self,
        table: str,
        formula: Optional[str] = None,
        sort: Optional[SortSpec] = None
    ) -> Optional[Record]:
        records = await self.find_records(table, formula=formula, sort=sort, max_records=1)
        return records[0] if records else None

    async def get_record(self, table: str, record_id: str) -> Record:
        return await self._request("GET", table, record_id)

    async def create_record(self, table: str, fields: Dict[str, Any]) -> Record:
        record = await self._request("POST", table, json={"fields": fields, "typecast": True})
        logger.info(f"Created record in {table}", extra={"table": table, "record_id": record.get("id")})
        return record

    async def update_record(self, table: str, record_id: str, fields: Dict[str, Any]) -> Record:
        record = await self._request("PATCH", table, record_id, json={"fields": fields, "typecast": True})
        logger.info(f"Updated record in {table}", extra={"table": table, "record_id": record_id})
        return record

    async def ping(self, table: str = USERS_TABLE) -> bool:
        """Cheapest authenticated round-trip: a single-record list call."""
        await self.find_records(table, max_records=1)
        return True

    async def close(self):
        await self._client.aclose()


# ============================================================
# LIFECYCLE
# ============================================================

# Global Airtable client
_store: Optional[AirtableClient] = None


async def connect_to_store(transport: Optional[httpx.AsyncBaseTransport] = None):
    """
    Creates the shared Airtable client.
    Called during application startup.
    """
    global _store

    if _store is not None:
        logger.warning("Airtable client already initialized")
        return

    if not settings.AIRTABLE_TOKEN or not settings.AIRTABLE_BASE_ID:
        logger.warning("Airtable credentials missing; store calls will fail until configured")

    _store = AirtableClient(
        token=settings.AIRTABLE_TOKEN,
        base_id=settings.AIRTABLE_BASE_ID,
        api_url=settings.AIRTABLE_API_URL,
        timeout=settings.AIRTABLE_TIMEOUT,
        transport=transport,
    )
    logger.info(f"✅ Airtable client ready for base {settings.AIRTABLE_BASE_ID}")


async def close_store_connection():
    """
    Closes the Airtable client.
    Called during application shutdown.
    """
    global _store

    if _store:
        logger.info("Closing Airtable client")
        await _store.close()
        _store = None
        logger.info("Airtable client closed")


def get_store() -> AirtableClient:
    """
    Returns the shared Airtable client.

    Raises:
        RuntimeError: If the client is not initialized
    """
    if _store is None:
        raise RuntimeError(
            "Airtable client not initialized. Call connect_to_store() during startup."
        )
    return _store


async def check_store_health() -> bool:
    """
    Checks that Airtable is reachable with the configured credentials.

    Returns:
        True if a list call succeeds, False otherwise
    """
    if _store is None:
        logger.error("Airtable client not initialized")
        return False

    try:
        return await _store.ping()
    except StoreError as e:
        logger.error(f"Airtable health check failed: {e.message}")
        return False
