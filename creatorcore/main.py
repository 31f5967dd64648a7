import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text

from creatorcore.config import settings
from creatorcore.db.base import engine
from creatorcore.errors import (
    DeadlineExceededError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    RunAlreadyActiveError,
)
from creatorcore.routers import campaigns, genre, recommendations, stats

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="CreatorCore API", default_response_class=ORJSONResponse)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(set(settings.cors_origins)),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_request: Request, exc: NotFoundError) -> ORJSONResponse:
        return ORJSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(RunAlreadyActiveError)
    async def run_active_handler(_request: Request, exc: RunAlreadyActiveError) -> ORJSONResponse:
        return ORJSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(_request: Request, exc: InvalidInputError) -> ORJSONResponse:
        return ORJSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(DeadlineExceededError)
    async def deadline_handler(request: Request, exc: DeadlineExceededError) -> ORJSONResponse:
        logger.warning("Request deadline exceeded", extra={"path": request.url.path, "error": str(exc)})
        return ORJSONResponse(status_code=504, content={"detail": str(exc)})

    @app.exception_handler(InternalError)
    async def internal_error_handler(request: Request, exc: InternalError) -> ORJSONResponse:
        logger.error("Internal error", extra={"path": request.url.path, "error": str(exc)})
        return ORJSONResponse(status_code=500, content={"detail": "Internal server error."})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("Unhandled server exception", exc_info=exc)
        return ORJSONResponse(status_code=500, content={"detail": "Internal server error."})

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/health/db")
    def health_db() -> dict[str, str]:
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return {"db": "ok"}
        except Exception as exc:  # pragma: no cover - simple runtime check
            return {"db": f"error: {exc}"}

    app.include_router(campaigns.router)
    app.include_router(recommendations.router)
    app.include_router(genre.router)
    app.include_router(stats.router)

    return app


app = create_app()
