"""
Neo4j Graph Service - Bolt executor for the statement graph

Node Types:
- Identifier: {value} - MERGE by value, one node per distinct string

Relationships:
- (Identifier)-[:STATEMENT {id, predicate, object_value, source_id,
                            timestamp, created_at}]->(Identifier)

Every call opens its own session inside `async with`, so the session is
returned to the pool on success and on failure alike.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from neo4j import AsyncGraphDatabase, AsyncDriver
from neo4j.exceptions import DriverError, Neo4jError

from services.query_executor import QueryError, QueryExecutor, Record

logger = logging.getLogger(__name__)


class Neo4jService(QueryExecutor):
    """QueryExecutor over Bolt (neo4j://, bolt://, neo4j+s://)"""

    def __init__(
        self,
        uri: str,
        credentials: Optional[Tuple[str, str]] = None,
        database: Optional[str] = None
    ):
        """Initialize Neo4j connection settings (connect() opens the driver)"""
        self.uri = uri
        self.credentials = credentials
        self.database = database

        self.driver: Optional[AsyncDriver] = None

    async def connect(self):
        """Establish connection to Neo4j"""
        if not self.driver:
            self.driver = AsyncGraphDatabase.driver(
                self.uri,
                auth=self.credentials
            )
            # Verify connectivity
            try:
                await self.driver.verify_connectivity()
            except (Neo4jError, DriverError) as e:
                await self.driver.close()
                self.driver = None
                raise QueryError(f"Cannot connect to Neo4j at {self.uri}: {e}") from e
            logger.info(f"✅ Connected to Neo4j at {self.uri}")

    async def close(self):
        """Close Neo4j connection"""
        if self.driver:
            await self.driver.close()
            self.driver = None
            logger.info("🔌 Closed Neo4j connection")

    async def execute(
        self,
        statement: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Record]:
        if not self.driver:
            await self.connect()

        try:
            async with self.driver.session(database=self.database) as session:
                result = await session.run(statement, parameters or {})
                return await result.data()
        except (Neo4jError, DriverError) as e:
            raise QueryError(f"Neo4j query failed: {e}") from e
