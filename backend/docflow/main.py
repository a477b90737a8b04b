"""FastAPI application."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from backend.docflow.api.routes.changes import router as changes_router
from backend.docflow.api.routes.chats import router as chats_router
from backend.docflow.api.routes.documents import router as documents_router
from backend.docflow.api.routes.health import router as health_router
from backend.docflow.api.routes.metrics import router as metrics_router
from backend.docflow.api.routes.versions import router as versions_router
from backend.docflow.api.routes.workspace import router as workspace_router
from backend.docflow.config import get_settings
from backend.docflow.errors import (
    ConflictError,
    DocflowError,
    ForbiddenError,
    GenerationError,
    NotFoundError,
    StorageError,
)
from backend.docflow.utils.logging import configure_logging

logger = logging.getLogger(__name__)

configure_logging(get_settings().log_level)

app = FastAPI(title="Docflow API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(documents_router)
app.include_router(versions_router)
app.include_router(changes_router)
app.include_router(chats_router)
app.include_router(workspace_router)

# Forbidden and missing content share one response so existence is not leaked
CONTENT_NOT_FOUND = {"detail": "Content not found", "code": NotFoundError.code}


def _error_body(exc: DocflowError) -> dict[str, str]:
    return {"detail": exc.message, "code": exc.code}


@app.exception_handler(NotFoundError)
@app.exception_handler(ForbiddenError)
async def not_found_handler(request: Request, exc: DocflowError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=CONTENT_NOT_FOUND)


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=_error_body(exc))


@app.exception_handler(GenerationError)
async def generation_handler(request: Request, exc: GenerationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=_error_body(exc))


@app.exception_handler(StorageError)
async def storage_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(f"Storage failure on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=_error_body(exc)
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "code": "invalid_request"},
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Docflow API", "version": "0.1.0"}
