from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can come from:
    - docker-compose.yml environment section
    - .env file (for credentials)
    - System environment

    Neo4j can be reached two ways (NEO4J_BACKEND):
    - "http": NEO4J_QUERY_URL, the HTTP Query API v2 endpoint (Aura friendly)
    - "bolt": NEO4J_URI, bolt:// or neo4j+s:// via the official driver

    NEO4J_USER / NEO4J_PASSWORD are optional; auth is only sent when both
    are set.
    """

    # Environment
    environment: str = "development"

    # Neo4j
    neo4j_backend: str = "http"
    neo4j_query_url: str = "http://localhost:7474/db/neo4j/query/v2"
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = ""
    neo4j_password: str = ""
    neo4j_database: str = "neo4j"

    # HTTP server
    port: int = 3000
    cors_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra env vars

    @field_validator('neo4j_backend', mode='before')
    @classmethod
    def check_backend(cls, v):
        """Accept 'http' or 'bolt' in any case"""
        backend = (v or "http").strip().lower()
        if backend not in ("http", "bolt"):
            raise ValueError(f"NEO4J_BACKEND must be 'http' or 'bolt', got {v!r}")
        return backend


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
