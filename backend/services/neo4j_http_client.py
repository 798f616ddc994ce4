"""
Neo4j HTTP Query API client
===========================

Runs Cypher over the Neo4j Query API v2 (POST {"statement", "parameters"}
to .../db/<database>/query/v2). Works against Aura and self-hosted servers
without a Bolt port.

Basic auth is sent only when both user and password are configured;
otherwise requests go out unauthenticated (local no-auth servers).

Response shape:
    {"data": {"fields": ["a", "b"], "values": [[1, 2], [3, 4]]}}
is flattened into [{"a": 1, "b": 2}, {"a": 3, "b": 4}].
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from services.query_executor import QueryError, QueryExecutor, Record

logger = logging.getLogger(__name__)


class Neo4jHttpClient(QueryExecutor):
    """QueryExecutor over the Neo4j HTTP Query API"""

    def __init__(
        self,
        query_url: str,
        credentials: Optional[Tuple[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.query_url = query_url
        self.credentials = credentials
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    @property
    def auth_mode(self) -> str:
        return "Basic Auth" if self.credentials else "No Auth"

    async def connect(self):
        """Open the pooled HTTP client"""
        if not self.client:
            self.client = httpx.AsyncClient(
                auth=self.credentials,
                headers={"Content-Type": "application/json"},
                transport=self._transport
            )
            logger.info(f"🔗 Neo4j HTTP API: {self.query_url} ({self.auth_mode})")

    async def close(self):
        """Close the pooled HTTP client"""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("🔌 Closed Neo4j HTTP client")

    async def execute(
        self,
        statement: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Record]:
        if not self.client:
            await self.connect()

        try:
            response = await self.client.post(
                self.query_url,
                json={"statement": statement, "parameters": parameters or {}}
            )
        except httpx.HTTPError as e:
            raise QueryError(f"Neo4j query failed: {e}") from e

        if response.is_error:
            raise QueryError(
                f"Neo4j query failed: {response.status_code} - {response.text}"
            )

        try:
            result = response.json()
        except ValueError as e:
            raise QueryError(f"Neo4j returned invalid JSON: {e}") from e

        errors = result.get("errors") or []
        if errors:
            raise QueryError(f"Neo4j error: {errors[0].get('message', errors[0])}")

        return self._to_records(result.get("data") or {})

    @staticmethod
    def _to_records(data: Dict[str, Any]) -> List[Record]:
        fields = data.get("fields") or []
        values = data.get("values") or []
        return [dict(zip(fields, row)) for row in values]
