"""
Statements API
==============

REST endpoints over the statement graph. Each handler is a thin adapter:
parse the request, call one StatementRepository operation, shape the
response.

Endpoints:
- GET    /api/subjects                          - All subjects
- GET    /api/subjects/{identifier}/statements  - Statements by subject (paginated)
- GET    /api/predicates/{predicate}/statements - Statements by predicate (paginated)
- GET    /api/statements                        - All statements (paginated)
- GET    /api/statements/{id}                   - Single statement
- POST   /api/statements                        - Create statement
- DELETE /api/statements/{id}                   - Delete statement
- GET    /api/search?q=                         - Containment search
- GET    /api/data                              - Everything (for visualization)
- POST   /api/ingest                            - Bulk CSV ingest

Errors:
- InvalidArgumentError -> 400
- QueryError (backend) -> 502
"""
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from models.statement import Statement, StatementInput, StatementPage
from repositories.statement_repository import InvalidArgumentError, StatementRepository
from services.query_executor import QueryError


router = APIRouter(prefix="/api", tags=["Statements"])


# =============================================================================
# MODELS
# =============================================================================

class StatementOut(BaseModel):
    """A statement as returned to clients."""
    id: str
    subject_identifier: str
    predicate: str
    object_value: Any
    source_id: Optional[str]
    statement_timestamp: Optional[str]
    created_at: Optional[str]


class StatementPageOut(BaseModel):
    """Paginated statement list."""
    statements: List[StatementOut]
    totalCount: int
    hasMore: bool


class SubjectsOut(BaseModel):
    subjects: List[str]
    count: int


class SearchOut(BaseModel):
    statements: List[StatementOut]
    count: int


class GraphDataOut(BaseModel):
    statements: List[StatementOut]
    subjects: List[str]


class CreateStatementIn(BaseModel):
    """Input for POST /api/statements. object_value may be any JSON value."""
    subject_identifier: str
    predicate: str
    object_value: Any
    source_id: Optional[str] = None
    statement_timestamp: Optional[str] = None


class DeleteOut(BaseModel):
    success: bool
    message: str
    id: str


class IngestIn(BaseModel):
    """Input for POST /api/ingest: one 'subject,predicate,object' per line."""
    model_config = ConfigDict(populate_by_name=True)

    data: str
    format: str = "csv"
    source_name: Optional[str] = Field(None, alias="sourceName")


class IngestOut(BaseModel):
    success: bool
    message: str
    entities_created: int
    statements_created: int


# =============================================================================
# HELPERS
# =============================================================================

def get_statement_repository(request: Request) -> StatementRepository:
    """Repository created by the app lifespan."""
    return request.app.state.statement_repository


def _out(statement: Statement) -> StatementOut:
    return StatementOut(**statement.to_dict())


def _page_out(page: StatementPage) -> StatementPageOut:
    return StatementPageOut(
        statements=[_out(s) for s in page.statements],
        totalCount=page.total_count,
        hasMore=page.has_more,
    )


async def _invalid_argument_handler(request: Request, exc: InvalidArgumentError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _query_error_handler(request: Request, exc: QueryError):
    return JSONResponse(status_code=502, content={"detail": exc.message})


def register_error_handlers(app: FastAPI):
    """Map repository/backend errors onto HTTP status codes."""
    app.add_exception_handler(InvalidArgumentError, _invalid_argument_handler)
    app.add_exception_handler(QueryError, _query_error_handler)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/subjects", response_model=SubjectsOut)
async def list_subjects(repo: StatementRepository = Depends(get_statement_repository)):
    """List all subject identifiers that have statements."""
    subjects = await repo.list_subjects()
    return SubjectsOut(subjects=subjects, count=len(subjects))


@router.get("/subjects/{identifier}/statements", response_model=StatementPageOut)
async def statements_by_subject(
    identifier: str,
    limit: int = 20,
    offset: int = 0,
    repo: StatementRepository = Depends(get_statement_repository)
):
    """Statements for one subject, newest first."""
    page = await repo.statements_by_subject(identifier, limit, offset)
    return _page_out(page)


@router.get("/predicates/{predicate}/statements", response_model=StatementPageOut)
async def statements_by_predicate(
    predicate: str,
    limit: int = 20,
    offset: int = 0,
    repo: StatementRepository = Depends(get_statement_repository)
):
    """Statements with one predicate, newest first."""
    page = await repo.statements_by_predicate(predicate, limit, offset)
    return _page_out(page)


@router.get("/statements", response_model=StatementPageOut)
async def paginated_statements(
    limit: int = 20,
    offset: int = 0,
    repo: StatementRepository = Depends(get_statement_repository)
):
    """All statements, newest first."""
    page = await repo.paginated_statements(limit, offset)
    return _page_out(page)


@router.get("/statements/{statement_id}", response_model=StatementOut)
async def get_statement(
    statement_id: str,
    repo: StatementRepository = Depends(get_statement_repository)
):
    """Get single statement by ID."""
    statement = await repo.get_statement(statement_id)
    if not statement:
        raise HTTPException(status_code=404, detail="Statement not found")
    return _out(statement)


@router.post("/statements", response_model=StatementOut)
async def create_statement(
    input: CreateStatementIn,
    repo: StatementRepository = Depends(get_statement_repository)
):
    """Create a statement. The response echoes object_value as sent."""
    statement = await repo.create_statement(StatementInput(
        subject_identifier=input.subject_identifier,
        predicate=input.predicate,
        object_value=input.object_value,
        source_id=input.source_id,
        statement_timestamp=input.statement_timestamp,
    ))
    return _out(statement)


@router.delete("/statements/{statement_id}", response_model=DeleteOut)
async def delete_statement(
    statement_id: str,
    repo: StatementRepository = Depends(get_statement_repository)
):
    """Delete a statement. A missing ID is reported in the body, not as 404."""
    result = await repo.delete_statement(statement_id)
    return DeleteOut(success=result.success, message=result.message, id=result.id)


@router.get("/search", response_model=SearchOut)
async def search_statements(
    q: Optional[str] = None,
    repo: StatementRepository = Depends(get_statement_repository)
):
    """Case-insensitive substring search over subjects and object values."""
    if q is None:
        raise InvalidArgumentError("Query parameter 'q' is required")
    statements = await repo.search_statements(q)
    return SearchOut(statements=[_out(s) for s in statements], count=len(statements))


@router.get("/data", response_model=GraphDataOut)
async def graph_data(repo: StatementRepository = Depends(get_statement_repository)):
    """All statements and subjects, for graph visualization."""
    snapshot = await repo.graph_snapshot()
    return GraphDataOut(
        statements=[_out(s) for s in snapshot.statements],
        subjects=snapshot.subjects,
    )


@router.post("/ingest", response_model=IngestOut)
async def ingest(
    input: IngestIn,
    repo: StatementRepository = Depends(get_statement_repository)
):
    """Bulk-create statements from 'subject,predicate,object' lines."""
    result = await repo.ingest(input.data, input.source_name, format=input.format)
    return IngestOut(
        success=result.success,
        message=result.message,
        entities_created=result.entities_created,
        statements_created=result.statements_created,
    )
