"""
Statement Repository - the statement graph over a QueryExecutor

Graph shape:
- (:Identifier {value})                      one node per distinct value (MERGE)
- (:Identifier)-[:STATEMENT {...}]->(:Identifier)

Object encoding differs by entry point and both are kept as they are:
- create_statement stores json.dumps(object_value) and echoes the original
  value back to its caller
- ingest stores the raw trimmed string

Consistency: paginated reads issue a count query and a page query as two
separate round trips, and ingest runs one MERGE/CREATE per line. Nothing is
wrapped in a transaction; a concurrent writer can land between the steps.
"""
import json
import logging
from datetime import datetime
from typing import List, Optional

from models.statement import (
    Statement,
    StatementInput,
    StatementPage,
    DeleteResult,
    IngestResult,
    GraphSnapshot,
)
from services.ingest_parser import SUPPORTED_FORMATS, parse_lines
from services.query_executor import QueryError, QueryExecutor
from utils.datetime_utils import parse_iso, to_iso, utc_now_iso
from utils.id_generator import generate_statement_id

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 100

# Every read RETURNs the same columns; Statement.from_record maps them.
_STATEMENT_COLUMNS = """
    s.id as id,
    i.value as subject,
    s.predicate as predicate,
    s.object_value as object_value,
    s.source_id as source_id,
    s.timestamp as timestamp,
    s.created_at as created_at
"""

# created_at ties (a whole ingest batch shares one) are broken by id so that
# SKIP/LIMIT pages partition the result set.
_PAGE_ORDER = """
ORDER BY s.created_at DESC, s.id DESC
SKIP $offset LIMIT $limit
"""

LIST_SUBJECTS = """
MATCH (i:Identifier)-[:STATEMENT]->()
RETURN DISTINCT i.value as subject
ORDER BY subject
"""

UNORDERED_SUBJECTS = """
MATCH (i:Identifier)-[:STATEMENT]->()
RETURN DISTINCT i.value as subject
"""

COUNT_BY_SUBJECT = """
MATCH (i:Identifier {value: $identifier})-[s:STATEMENT]->()
RETURN count(s) as total
"""

PAGE_BY_SUBJECT = f"""
MATCH (i:Identifier {{value: $identifier}})-[s:STATEMENT]->(t)
RETURN {_STATEMENT_COLUMNS}
{_PAGE_ORDER}
"""

COUNT_BY_PREDICATE = """
MATCH ()-[s:STATEMENT {predicate: $predicate}]->()
RETURN count(s) as total
"""

PAGE_BY_PREDICATE = f"""
MATCH (i:Identifier)-[s:STATEMENT {{predicate: $predicate}}]->(t)
RETURN {_STATEMENT_COLUMNS}
{_PAGE_ORDER}
"""

COUNT_ALL = """
MATCH ()-[s:STATEMENT]->()
RETURN count(s) as total
"""

PAGE_ALL = f"""
MATCH (i:Identifier)-[s:STATEMENT]->(t)
RETURN {_STATEMENT_COLUMNS}
{_PAGE_ORDER}
"""

ALL_STATEMENTS = f"""
MATCH (i:Identifier)-[s:STATEMENT]->(t)
RETURN {_STATEMENT_COLUMNS}
"""

SEARCH = f"""
MATCH (i:Identifier)-[s:STATEMENT]->(t)
WHERE toLower(s.object_value) CONTAINS toLower($query)
   OR toLower(i.value) CONTAINS toLower($query)
RETURN {_STATEMENT_COLUMNS}
LIMIT $limit
"""

GET_BY_ID = f"""
MATCH (i:Identifier)-[s:STATEMENT {{id: $id}}]->(t)
RETURN {_STATEMENT_COLUMNS}
"""

CREATE = """
MERGE (subj:Identifier {value: $subject})
MERGE (obj:Identifier {value: $object_value})
CREATE (subj)-[s:STATEMENT {
    id: $id,
    predicate: $predicate,
    object_value: $object_value,
    source_id: $source_id,
    timestamp: $timestamp,
    created_at: $created_at
}]->(obj)
RETURN s.id as id
"""

DELETE = """
MATCH ()-[s:STATEMENT {id: $id}]->()
DELETE s
RETURN count(s) as deleted
"""


class InvalidArgumentError(ValueError):
    """Request rejected before reaching the backend"""


def _check_page(limit: int, offset: int):
    for name, value in (('limit', limit), ('offset', offset)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
        if value < 0:
            raise InvalidArgumentError(f"{name} must be >= 0, got {value}")


def _require_text(name: str, value) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(f"{name} must be a non-empty string")
    return value


def serialize_object_value(value) -> str:
    """JSON text stored for create_statement objects ('"bob"', '42', '{"a":1}')"""
    try:
        return json.dumps(value, separators=(',', ':'), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"object_value is not JSON serializable: {e}") from e


class StatementRepository:
    """
    Repository for Statement domain model

    Neo4j is the only storage; the executor decides how it is reached
    (HTTP Query API or Bolt).
    """

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    # ===== Reads =====

    async def list_subjects(self) -> List[str]:
        """Distinct subject values with at least one statement, ascending"""
        rows = await self.executor.execute(LIST_SUBJECTS)
        return [row['subject'] for row in rows]

    async def statements_by_subject(
        self, identifier: str, limit: int, offset: int
    ) -> StatementPage:
        """Statements whose subject value equals identifier, newest first"""
        _check_page(limit, offset)
        params = {'identifier': identifier}
        return await self._paginate(COUNT_BY_SUBJECT, PAGE_BY_SUBJECT, params, limit, offset)

    async def statements_by_predicate(
        self, predicate: str, limit: int, offset: int
    ) -> StatementPage:
        """Statements with exactly this predicate, newest first"""
        _check_page(limit, offset)
        params = {'predicate': predicate}
        return await self._paginate(COUNT_BY_PREDICATE, PAGE_BY_PREDICATE, params, limit, offset)

    async def paginated_statements(self, limit: int, offset: int) -> StatementPage:
        """All statements, newest first"""
        _check_page(limit, offset)
        return await self._paginate(COUNT_ALL, PAGE_ALL, {}, limit, offset)

    async def search_statements(self, query: str) -> List[Statement]:
        """
        Case-insensitive containment search over object_value and subject.

        An empty query matches everything. At most SEARCH_LIMIT results, in
        whatever order the backend yields them.
        """
        if query is None or not isinstance(query, str):
            raise InvalidArgumentError("search query is required")

        rows = await self.executor.execute(SEARCH, {'query': query, 'limit': SEARCH_LIMIT})
        return [Statement.from_record(row) for row in rows]

    async def get_statement(self, statement_id: str) -> Optional[Statement]:
        """Statement by id, None if there is none"""
        rows = await self.executor.execute(GET_BY_ID, {'id': statement_id})
        return Statement.from_record(rows[0]) if rows else None

    async def graph_snapshot(self) -> GraphSnapshot:
        """Every statement and every subject, unpaginated"""
        rows = await self.executor.execute(ALL_STATEMENTS)
        statements = [Statement.from_record(row) for row in rows]

        subject_rows = await self.executor.execute(UNORDERED_SUBJECTS)
        subjects = [row['subject'] for row in subject_rows]

        logger.info(f"📊 Snapshot: {len(subjects)} subjects, {len(statements)} statements")
        return GraphSnapshot(statements=statements, subjects=subjects)

    async def _paginate(
        self, count_query: str, page_query: str, params: dict, limit: int, offset: int
    ) -> StatementPage:
        count_rows = await self.executor.execute(count_query, params)
        total_count = (count_rows[0].get('total') if count_rows else 0) or 0

        rows = await self.executor.execute(
            page_query, {**params, 'offset': offset, 'limit': limit}
        )
        statements = [Statement.from_record(row) for row in rows]
        return StatementPage.build(statements, total_count, offset)

    # ===== Writes =====

    async def create_statement(self, statement_input: StatementInput) -> Statement:
        """
        Create one statement, merging its subject and object Identifiers.

        The graph stores json.dumps(object_value); the returned Statement
        carries the caller's original object_value. Duplicate triples are
        allowed, each gets its own id.
        """
        subject = _require_text('subject_identifier', statement_input.subject_identifier)
        predicate = _require_text('predicate', statement_input.predicate)
        stored_object = serialize_object_value(statement_input.object_value)
        timestamp_override = self._normalize_timestamp(statement_input.statement_timestamp)

        statement_id = generate_statement_id()
        now = utc_now_iso()
        timestamp = timestamp_override or now
        source_id = statement_input.source_id or None

        await self.executor.execute(CREATE, {
            'id': statement_id,
            'subject': subject,
            'predicate': predicate,
            'object_value': stored_object,
            'source_id': source_id,
            'timestamp': timestamp,
            'created_at': now,
        })

        logger.info(f"✨ Created Statement: {subject} -[{predicate}]-> {stored_object[:50]} ({statement_id})")

        return Statement(
            id=statement_id,
            subject_identifier=subject,
            predicate=predicate,
            object_value=statement_input.object_value,
            source_id=source_id,
            statement_timestamp=timestamp,
            created_at=now,
        )

    async def delete_statement(self, statement_id: str) -> DeleteResult:
        """Delete by id; a missing id is a normal negative result"""
        rows = await self.executor.execute(DELETE, {'id': statement_id})
        deleted = bool(rows) and (rows[0].get('deleted') or 0) > 0

        if deleted:
            logger.info(f"🗑️ Deleted Statement {statement_id}")
        else:
            logger.debug(f"Statement {statement_id} not found for delete")

        return DeleteResult(
            success=deleted,
            message="Statement deleted" if deleted else "Statement not found",
            id=statement_id,
        )

    async def ingest(
        self, data: str, source_name: Optional[str] = None, format: str = 'csv'
    ) -> IngestResult:
        """
        Create one statement per accepted "subject,predicate,object" line.

        Lines are written one by one. If the backend fails on a line, the
        error propagates and statements already written stay written.
        All statements of a batch share one timestamp/created_at.
        """
        if format not in SUPPORTED_FORMATS:
            raise InvalidArgumentError(
                f"Unsupported ingest format: {format}. Must be one of: {list(SUPPORTED_FORMATS)}"
            )
        if not isinstance(data, str):
            raise InvalidArgumentError("ingest data must be a string")

        now = utc_now_iso()
        statements_created = 0
        subjects = set()

        for line in parse_lines(data):
            try:
                await self.executor.execute(CREATE, {
                    'id': generate_statement_id(),
                    'subject': line.subject,
                    'predicate': line.predicate,
                    'object_value': line.object_value,
                    'source_id': source_name,
                    'timestamp': now,
                    'created_at': now,
                })
            except QueryError:
                logger.error(
                    f"❌ Ingest from {source_name!r} interrupted after "
                    f"{statements_created} statements"
                )
                raise
            statements_created += 1
            subjects.add(line.subject)

        logger.info(f"📥 Ingested {statements_created} statements from {source_name!r}")

        return IngestResult(
            success=True,
            message=f"Ingested {statements_created} statements",
            entities_created=len(subjects),
            statements_created=statements_created,
        )

    @staticmethod
    def _normalize_timestamp(value) -> Optional[str]:
        if value is None or value == '':
            return None
        if isinstance(value, datetime):
            return to_iso(value)
        if isinstance(value, str) and parse_iso(value) is not None:
            return value
        raise InvalidArgumentError(f"statement_timestamp is not ISO-8601: {value!r}")
