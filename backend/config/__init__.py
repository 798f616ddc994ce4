"""
Configuration module for settings and graph connections.
"""
from .settings import Settings, get_settings
from .database import (
    Neo4jConfig,
    get_neo4j_config,
    create_query_executor,
)

__all__ = [
    'Settings',
    'get_settings',
    'Neo4jConfig',
    'get_neo4j_config',
    'create_query_executor',
]
