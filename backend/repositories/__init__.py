"""
Repository Pattern - Storage abstraction layer

Repositories hide storage details (Neo4j, reached over HTTP or Bolt) from
the API layer. Consumers work with domain models, not raw query records.
"""
from .statement_repository import StatementRepository, InvalidArgumentError

__all__ = [
    'StatementRepository',
    'InvalidArgumentError',
]
