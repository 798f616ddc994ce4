"""
Database Configuration
======================

Connection configuration for the statement graph. A Neo4jConfig value is
built once (from Settings or the environment) and handed to
create_query_executor(); nothing downstream reads the environment.
"""
import os
from typing import Optional, Tuple
from dataclasses import dataclass

from config.settings import Settings, get_settings


def _credentials(user: str, password: str) -> Optional[Tuple[str, str]]:
    """Basic-auth pair, only when both parts are present"""
    if user and password:
        return (user, password)
    return None


@dataclass
class Neo4jConfig:
    """Neo4j connection configuration."""
    endpoint: str
    credentials: Optional[Tuple[str, str]] = None
    database: Optional[str] = None
    backend: str = "http"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> 'Neo4jConfig':
        """Create config from application settings."""
        settings = settings or get_settings()
        endpoint = settings.neo4j_query_url if settings.neo4j_backend == "http" else settings.neo4j_uri

        return cls(
            endpoint=endpoint,
            credentials=_credentials(settings.neo4j_user, settings.neo4j_password),
            database=settings.neo4j_database,
            backend=settings.neo4j_backend,
        )

    @classmethod
    def from_env(cls) -> 'Neo4jConfig':
        """Create config straight from environment variables."""
        backend = os.getenv('NEO4J_BACKEND', 'http').lower()
        endpoint = os.getenv('NEO4J_QUERY_URL') if backend == 'http' else os.getenv('NEO4J_URI')
        if not endpoint:
            name = 'NEO4J_QUERY_URL' if backend == 'http' else 'NEO4J_URI'
            raise ValueError(f"{name} environment variable is required")

        return cls(
            endpoint=endpoint,
            credentials=_credentials(
                os.getenv('NEO4J_USER', ''),
                os.getenv('NEO4J_PASSWORD', ''),
            ),
            database=os.getenv('NEO4J_DATABASE') or None,
            backend=backend,
        )


def get_neo4j_config() -> Neo4jConfig:
    """Get Neo4j configuration from settings."""
    return Neo4jConfig.from_settings()


async def create_query_executor(config: Optional[Neo4jConfig] = None):
    """Create and connect the QueryExecutor the config points at."""
    config = config or get_neo4j_config()

    if config.backend == "bolt":
        from services.neo4j_service import Neo4jService
        executor = Neo4jService(
            config.endpoint,
            credentials=config.credentials,
            database=config.database,
        )
    elif config.backend == "http":
        from services.neo4j_http_client import Neo4jHttpClient
        executor = Neo4jHttpClient(config.endpoint, credentials=config.credentials)
    else:
        raise ValueError(f"Unknown Neo4j backend: {config.backend}")

    await executor.connect()
    return executor
