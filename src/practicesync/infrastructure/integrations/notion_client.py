"""Notion HTTP client for the practice library, sessions and logs."""

import logging
from datetime import date
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from practicesync.config.schema import (
    LIBRARY_SCHEMA,
    LOG_SCHEMA,
    SESSION_SCHEMA,
)
from practicesync.config.settings import NotionSettings
from practicesync.domain.entities import (
    ItemType,
    LibraryItem,
    PracticeLog,
    PracticeSession,
)
from practicesync.domain.exceptions import (
    ConfigurationError,
    DecodingError,
    HttpError,
    InvalidResponseError,
    NetworkError,
    NoCredentialError,
)
from practicesync.domain.ports import IPracticeRemoteClient
from practicesync.infrastructure.integrations import notion_properties as props
from practicesync.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class QueryEnvelope(BaseModel):
    """Response of POST /databases/{id}/query."""

    results: list[dict[str, Any]]
    has_more: bool = False
    next_cursor: str | None = None


class PageEnvelope(BaseModel):
    """A single page. Pages without id or properties are unusable."""

    id: str
    properties: dict[str, Any]


class CreatedPage(BaseModel):
    """Response of POST /pages; only the id matters."""

    id: str


class NotionClient(IPracticeRemoteClient):
    """HTTP client for the three practice databases.

    Hey future me - Notion splits ids: the query endpoint wants the DATA SOURCE id,
    page creation wants the DATABASE id as parent. Mixing them up gives a 404 that
    looks like a permissions problem. Both live in NotionSettings.
    """

    def __init__(
        self,
        settings: NotionSettings,
        api_key: str | None,
        *,
        rate_limiter: RateLimiter | None = None,
        default_planned_minutes: int = 5,
        default_goal_minutes: int = 30,
    ) -> None:
        """
        Initialize Notion client.

        Args:
            settings: Notion configuration settings
            api_key: Integration token
            rate_limiter: Limiter shared by all requests of this client
            default_planned_minutes: Planned time for logs that have none
            default_goal_minutes: Goal for sessions that have none

        Raises:
            NoCredentialError: If api_key is empty
        """
        if not api_key:
            raise NoCredentialError()
        self.settings = settings
        self._api_key = api_key
        self._client: httpx.AsyncClient | None = None
        self._limiter = rate_limiter or RateLimiter.for_notion()
        self._default_planned = default_planned_minutes
        self._default_goal = default_goal_minutes

        overrides = settings.property_overrides
        self.library_schema = LIBRARY_SCHEMA.with_overrides(overrides.get("library"))
        self.session_schema = SESSION_SCHEMA.with_overrides(overrides.get("session"))
        self.log_schema = LOG_SCHEMA.with_overrides(overrides.get("log"))

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Notion-Version": self.settings.api_version,
                    "Content-Type": "application/json",
                },
                timeout=self.settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "NotionClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # Yo future me, THIS is where httpx errors become domain errors. Everything above
    # this layer only ever sees NetworkError / HttpError / DecodingError /
    # InvalidResponseError. 429s are retried here (max_retries times) with the limiter's
    # adaptive backoff before they surface as HttpError(429).
    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Make a rate-limited request and decode the JSON object body.

        Args:
            method: HTTP method
            path: Path relative to base_url
            json: Request body

        Returns:
            Decoded response object

        Raises:
            NetworkError: On transport failure
            HttpError: On non-2xx status
            DecodingError: If the body is not JSON
            InvalidResponseError: If the body is JSON but not an object
        """
        client = await self._get_client()
        attempt = 0

        while True:
            await self._limiter.acquire()
            try:
                response = await client.request(method, path, json=json)
            except httpx.TransportError as e:
                raise NetworkError(f"{method} {path} failed: {e}") from e

            if response.status_code == 429 and attempt < self.settings.max_retries:
                attempt += 1
                await self._limiter.handle_rate_limit_response(_retry_after(response))
                continue
            break

        if not response.is_success:
            raise HttpError(response.status_code, _error_message(response))

        self._limiter.reset_backoff()

        try:
            data = response.json()
        except ValueError as e:
            raise DecodingError(f"{method} {path} returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise InvalidResponseError(f"{method} {path} returned {type(data).__name__}")
        return data

    async def _query_all(
        self,
        data_source_id: str,
        query_filter: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
    ) -> list[PageEnvelope]:
        """Run a query and follow next_cursor until has_more is false."""
        if not data_source_id:
            raise ConfigurationError("Data source id is not configured")

        pages: list[PageEnvelope] = []
        cursor: str | None = None

        while True:
            body: dict[str, Any] = {"page_size": self.settings.page_size}
            if cursor:
                body["start_cursor"] = cursor
            if query_filter:
                body["filter"] = query_filter
            if sorts:
                body["sorts"] = sorts

            data = await self._request("POST", f"/databases/{data_source_id}/query", json=body)
            try:
                envelope = QueryEnvelope.model_validate(data)
            except ValidationError as e:
                raise InvalidResponseError("Query response has no results array") from e

            for raw in envelope.results:
                try:
                    pages.append(PageEnvelope.model_validate(raw))
                except ValidationError:
                    logger.debug("Skipping page without id/properties: %s", raw.get("id"))

            cursor = envelope.next_cursor if envelope.has_more else None
            if not cursor:
                return pages

    # =========================================================================
    # FETCH
    # =========================================================================

    async def fetch_library(self) -> list[LibraryItem]:
        """Fetch all library items."""
        pages = await self._query_all(self.settings.library_data_source_id)
        return [self._parse_library_item(page) for page in pages]

    async def fetch_sessions(self) -> list[PracticeSession]:
        """Fetch all sessions, newest first."""
        pages = await self._query_all(
            self.settings.sessions_data_source_id,
            sorts=[{"property": self.session_schema.name_of("date"), "direction": "descending"}],
        )
        return [self._parse_session(page) for page in pages]

    async def fetch_logs(self, session_id: str) -> list[PracticeLog]:
        """Fetch the logs of one session in practice order."""
        pages = await self._query_all(
            self.settings.logs_data_source_id,
            query_filter={
                "property": self.log_schema.name_of("session_id"),
                "relation": {"contains": session_id},
            },
            sorts=[{"property": self.log_schema.name_of("order"), "direction": "ascending"}],
        )
        return [self._parse_log(page) for page in pages]

    # =========================================================================
    # WRITE
    # =========================================================================

    # Hey future me, the returned session echoes what we SENT, not what the server stored.
    # If iso_date does not parse we fall back to today; the remote gets the raw string.
    async def create_session(self, name: str, iso_date: str) -> PracticeSession:
        """Create a practice session page."""
        if not self.settings.sessions_database_id:
            raise ConfigurationError("sessions_database_id is not configured")

        schema = self.session_schema
        body: dict[str, Any] = {
            "parent": {"database_id": self.settings.sessions_database_id},
            "properties": {
                schema.name_of("name"): props.build(schema.get("name"), name),
                schema.name_of("date"): props.build(schema.get("date"), iso_date),
            },
        }
        if self.settings.session_template_id:
            body["template"] = {
                "type": "template_id",
                "template_id": self.settings.session_template_id,
            }

        created = self._created_id(await self._request("POST", "/pages", json=body))
        return PracticeSession(
            id=created,
            name=name,
            date=props.parse_iso_date(iso_date) or date.today(),
            goal_minutes=self._default_goal,
        )

    async def create_log(
        self,
        name: str,
        item_id: str,
        session_id: str,
        planned_minutes: int,
        order: int,
        notes: str | None = None,
    ) -> str:
        """Create a practice log page and return its id."""
        if not self.settings.logs_database_id:
            raise ConfigurationError("logs_database_id is not configured")

        schema = self.log_schema
        properties = {
            schema.name_of("name"): props.build(schema.get("name"), name),
            schema.name_of("item_id"): props.build(schema.get("item_id"), item_id),
            schema.name_of("session_id"): props.build(schema.get("session_id"), session_id),
            schema.name_of("planned_minutes"): props.build(
                schema.get("planned_minutes"), planned_minutes
            ),
            schema.name_of("order"): props.build(schema.get("order"), order),
        }
        if notes:
            properties[schema.name_of("notes")] = props.build(schema.get("notes"), notes)

        body = {
            "parent": {"database_id": self.settings.logs_database_id},
            "properties": properties,
        }
        return self._created_id(await self._request("POST", "/pages", json=body))

    async def update_log(
        self,
        log_id: str,
        planned_minutes: int | None = None,
        actual_minutes: float | None = None,
        order: int | None = None,
        notes: str | None = None,
    ) -> None:
        """Patch only the provided log properties."""
        schema = self.log_schema
        fields = {
            "planned_minutes": planned_minutes,
            "actual_minutes": actual_minutes,
            "order": order,
            "notes": notes,
        }
        properties = {
            schema.name_of(field): props.build(schema.get(field), value)
            for field, value in fields.items()
            if value is not None
        }
        await self._request("PATCH", f"/pages/{log_id}", json={"properties": properties})

    async def delete_log(self, log_id: str) -> None:
        """Archive a log page. Notion has no hard delete over the API."""
        await self._request("PATCH", f"/pages/{log_id}", json={"archived": True})

    # =========================================================================
    # PARSING
    # =========================================================================

    @staticmethod
    def _created_id(data: dict[str, Any]) -> str:
        try:
            return CreatedPage.model_validate(data).id
        except ValidationError as e:
            raise InvalidResponseError("Created page has no id") from e

    def _parse_library_item(self, page: PageEnvelope) -> LibraryItem:
        schema, p = self.library_schema, page.properties
        last_practiced = props.extract(p, schema.get("last_practiced"))
        artist = props.extract(p, schema.get("artist"))
        return LibraryItem(
            id=page.id,
            name=props.extract(p, schema.get("name")),
            type=ItemType.from_remote(props.extract(p, schema.get("type"))),
            artist=artist or None,
            tags=props.extract(p, schema.get("tags")),
            last_practiced=props.parse_iso_date(last_practiced)
            if isinstance(last_practiced, str)
            else None,
            times_practiced=max(0, props.extract(p, schema.get("times_practiced")) or 0),
        )

    def _parse_session(self, page: PageEnvelope) -> PracticeSession:
        schema, p = self.session_schema, page.properties
        goal = props.extract(p, schema.get("goal_minutes"))
        return PracticeSession(
            id=page.id,
            name=props.extract(p, schema.get("name")),
            date=props.parse_iso_date(props.extract(p, schema.get("date"))) or date.today(),
            goal_minutes=int(goal) if goal is not None and int(goal) >= 1 else self._default_goal,
        )

    def _parse_log(self, page: PageEnvelope) -> PracticeLog:
        schema, p = self.log_schema, page.properties
        item_ids = props.extract(p, schema.get("item_id"))
        session_ids = props.extract(p, schema.get("session_id"))
        planned = props.extract(p, schema.get("planned_minutes"))
        order = props.extract(p, schema.get("order"))
        notes = props.extract(p, schema.get("notes"))
        return PracticeLog(
            id=page.id,
            name=props.extract(p, schema.get("name")),
            item_id=item_ids[0] if item_ids else "",
            session_id=session_ids[0] if session_ids else "",
            planned_minutes=max(1, int(planned)) if planned is not None else self._default_planned,
            actual_minutes=props.extract(p, schema.get("actual_minutes")),
            order=int(order) if order is not None else 0,
            notes=notes or None,
        )


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or None
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return None
