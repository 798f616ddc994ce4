"""
Domain Models - Storage-agnostic data structures

These models represent the statement graph independent of storage layer.
The repository maps raw query records into them right after each backend
call; API handlers and tests never see raw rows.
"""

from .statement import (
    Statement,
    StatementInput,
    StatementPage,
    DeleteResult,
    IngestResult,
    GraphSnapshot,
)

__all__ = [
    'Statement',
    'StatementInput',
    'StatementPage',
    'DeleteResult',
    'IngestResult',
    'GraphSnapshot',
]
