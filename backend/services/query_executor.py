"""
Query Execution Interface
=========================

The statement store talks to the graph through a single call:

    records = await executor.execute(cypher, {'param': value})

Each record is a dict of field name -> value, in the order the query
RETURNs them. Any backend fault (transport error, non-2xx response, an
`errors` array inside a 2xx response, driver exception) surfaces as one
QueryError carrying a readable message.

Implementations:
- Neo4jHttpClient  (services/neo4j_http_client.py) - Neo4j HTTP Query API v2
- Neo4jService     (services/neo4j_service.py)     - Bolt, official async driver
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

CREATE_IDENTIFIER_INDEX = """
CREATE INDEX identifier_value IF NOT EXISTS
FOR (i:Identifier) ON (i.value)
"""


class QueryError(Exception):
    """A query against the graph backend failed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class QueryExecutor(ABC):
    """Runs Cypher against a graph backend and returns plain records."""

    async def connect(self):
        """Open connections. Default: nothing to open."""

    async def close(self):
        """Release connections. Default: nothing to release."""

    @abstractmethod
    async def execute(
        self,
        statement: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Record]:
        """Run one statement, return its records in order."""

    async def ensure_indexes(self):
        """
        Create the Identifier(value) index if it does not exist yet.

        A failure is logged and swallowed: the service still works without
        the index, only slower.
        """
        try:
            await self.execute(CREATE_IDENTIFIER_INDEX)
            logger.info("✅ Neo4j indexes initialized")
        except QueryError as e:
            logger.warning(f"⚠️ Could not create index: {e.message}")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
