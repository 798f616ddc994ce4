"""
Statement domain model
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Union


@dataclass
class Statement:
    """
    Statement domain model - storage-agnostic representation

    A directed, labelled edge subject -> object with provenance.

    Storage: Neo4j (Identifier)-[:STATEMENT]->(Identifier)

    object_value is the stored text for anything read back from the graph.
    Only the result of create_statement carries the caller's original value
    (str, number, dict, list...), see StatementRepository.create_statement.
    """
    id: str  # UUID4
    subject_identifier: str
    predicate: str
    object_value: Any
    source_id: Optional[str] = None
    statement_timestamp: Optional[str] = None  # ISO-8601, logical time of the fact
    created_at: Optional[str] = None  # ISO-8601, wall time of insertion

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Statement':
        """
        Map a backend record to a Statement.

        This is the only place record fields are looked up by name. Queries
        RETURN them as: id, subject, predicate, object_value, source_id,
        timestamp, created_at.
        """
        return cls(
            id=record['id'],
            subject_identifier=record['subject'],
            predicate=record['predicate'],
            object_value=record['object_value'],
            source_id=record.get('source_id') or None,
            statement_timestamp=record.get('timestamp'),
            created_at=record.get('created_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StatementInput:
    """Caller input for create_statement"""
    subject_identifier: str
    predicate: str
    object_value: Any
    source_id: Optional[str] = None
    # ISO-8601 string or datetime; defaults to creation time
    statement_timestamp: Optional[Union[str, datetime]] = None


@dataclass
class StatementPage:
    """One page of a filtered, paginated listing"""
    statements: List[Statement]
    total_count: int
    has_more: bool

    @classmethod
    def build(cls, statements: List[Statement], total_count: int, offset: int) -> 'StatementPage':
        return cls(
            statements=statements,
            total_count=total_count,
            has_more=offset + len(statements) < total_count,
        )


@dataclass
class DeleteResult:
    """Outcome of delete_statement; a miss is a normal result"""
    success: bool
    message: str
    id: str


@dataclass
class IngestResult:
    """Outcome of a bulk ingest"""
    success: bool
    message: str
    entities_created: int
    statements_created: int


@dataclass
class GraphSnapshot:
    """Every statement plus the distinct subjects, for graph visualisation"""
    statements: List[Statement] = field(default_factory=list)
    subjects: List[str] = field(default_factory=list)
