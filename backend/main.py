"""
Statement Graph Service - FastAPI Backend
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.statements import router as statements_router, register_error_handlers
from config import get_settings, create_query_executor
from repositories.statement_repository import StatementRepository
from services.query_executor import QueryExecutor
from utils.datetime_utils import utc_now_iso

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "statement-graph"
SERVICE_VERSION = "1.0.0"


def create_app(executor: Optional[QueryExecutor] = None) -> FastAPI:
    """
    Build the app.

    With no executor, the lifespan builds one from settings (HTTP Query API
    or Bolt) and bootstraps the Identifier index.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        graph = executor or await create_query_executor()
        await graph.ensure_indexes()
        app.state.statement_repository = StatementRepository(graph)
        try:
            yield
        finally:
            await graph.close()
            logger.info("🔌 Graph connection closed")

    app = FastAPI(
        title="Statement Graph Service",
        description="Subject-predicate-object statement store with provenance",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(statements_router)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "timestamp": utc_now_iso(),
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
        }

    @app.get("/api/health")
    async def api_health():
        return {"status": "ok", "service": SERVICE_NAME}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
