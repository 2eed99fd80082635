"""Async GraphQL client for the Torii battle feed."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..errors import FeedError, FeedQueryError
from ..models import BattleEvent, RealmInfo
from .models import BattleStartNode, Connection, GraphQLResponse, SettleRealmNode
from .queries import BATTLE_START_FIELD, BATTLE_START_QUERY, SETTLE_REALM_FIELD, SETTLE_REALM_QUERY

LOGGER = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_BACKOFF = 1.0
MAX_BACKOFF = 30.0


def _retry_after_seconds(response: httpx.Response, default: float) -> float:
    try:
        return min(float(response.headers.get("Retry-After", default)), MAX_BACKOFF)
    except ValueError:
        # HTTP-date form; fall back to our own backoff
        return default


class FeedClient:
    """Runs parameterized GraphQL queries against the event feed.

    Transport failures and 5xx/429 responses are retried with exponential
    backoff; anything still failing after ``max_retries`` attempts raises
    ``FeedError``. GraphQL-level errors raise ``FeedQueryError`` immediately.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 15.0,
        max_retries: int = MAX_RETRIES,
        retry_backoff: float = RETRY_BACKOFF,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: GraphQL endpoint
            timeout: HTTP request timeout in seconds
            max_retries: Attempts per query before giving up
            retry_backoff: Initial delay between attempts in seconds
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.url = url
        self._max_retries = max(1, max_retries)
        self._retry_backoff = retry_backoff
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        last_exception: Exception | None = None
        backoff = self._retry_backoff

        for attempt in range(self._max_retries):
            try:
                response = await self._client.post(self.url, json=payload)
                if response.status_code == 429:
                    retry_after = _retry_after_seconds(response, backoff)
                    LOGGER.warning("Feed rate limited, waiting %.1f seconds", retry_after)
                    last_exception = FeedError("rate limited")
                    await asyncio.sleep(retry_after)
                    backoff = min(backoff * 2, MAX_BACKOFF)
                    continue
                if 400 <= response.status_code < 500:
                    raise FeedError(f"Feed rejected query with HTTP {response.status_code}: {response.text[:200]}")
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as exc:
                last_exception = exc
                LOGGER.debug("Feed request failed (attempt %d/%d): %s", attempt + 1, self._max_retries, exc)
            except httpx.RequestError as exc:
                last_exception = exc
                LOGGER.debug("Feed request error (attempt %d/%d): %s", attempt + 1, self._max_retries, exc)
            if attempt < self._max_retries - 1:
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, MAX_BACKOFF)

        raise FeedError(f"Feed query failed after {self._max_retries} attempts: {last_exception}") from last_exception

    async def query(self, document: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a GraphQL document and return its ``data`` mapping.

        Raises:
            FeedError: On transport failures
            FeedQueryError: When the feed reports GraphQL errors or malformed JSON
        """
        payload: dict[str, Any] = {"query": document}
        if variables:
            payload["variables"] = variables
        response = await self._post(payload)

        try:
            envelope = GraphQLResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise FeedQueryError(f"Feed returned an unreadable response: {exc}") from exc

        if envelope.errors:
            raise FeedQueryError(envelope.error_summary())
        if envelope.data is None:
            raise FeedQueryError("Feed response carried no data")
        return envelope.data

    async def fetch_battles(self) -> list[BattleEvent]:
        """Return every currently-open battle-start record, in feed order.

        Records that fail validation are logged and skipped.
        """
        data = await self.query(BATTLE_START_QUERY)
        try:
            connection = Connection[dict[str, Any]].model_validate(data.get(BATTLE_START_FIELD) or {})
        except ValidationError as exc:
            raise FeedQueryError(f"Unexpected battle listing shape: {exc}") from exc

        events: list[BattleEvent] = []
        for node in connection.nodes():
            try:
                events.append(BattleStartNode.model_validate(node).to_event())
            except (ValidationError, ValueError) as exc:
                LOGGER.warning("Skipping malformed battle record %s: %s", node.get("battle_entity_id"), exc)
        LOGGER.debug("Fetched %d open battle(s) (feed total=%s)", len(events), connection.total_count)
        return events

    async def fetch_realm(self, x: int, y: int) -> RealmInfo | None:
        """Return the realm settled at ``(x, y)``, or None when nothing is settled there."""
        data = await self.query(SETTLE_REALM_QUERY, {"x": x, "y": y})
        try:
            connection = Connection[SettleRealmNode].model_validate(data.get(SETTLE_REALM_FIELD) or {})
        except ValidationError as exc:
            raise FeedQueryError(f"Unexpected realm listing shape: {exc}") from exc
        nodes = connection.nodes()
        if not nodes:
            return None
        return nodes[0].to_realm_info()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> FeedClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
