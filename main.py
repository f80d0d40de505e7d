"""FastAPI entry point for the Block Patch Engine service."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from models.errors import ErrorCode
from models.request import ErrorResponse
from services.edit_pipeline import get_edit_pipeline
from services.middleware import RequestIdMiddleware, configure_logging

configure_logging()
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: build the edit pipeline up front."""
    pipeline = get_edit_pipeline()
    logger.info(
        "Block Patch Engine ready (mock_ai=%s, model=%s, store=%s)",
        settings.use_mock_ai,
        settings.generation_model or settings.default_model,
        type(pipeline.store).__name__,
    )
    yield
    logger.info("Block Patch Engine shutting down")


app = FastAPI(
    title="Block Patch Engine",
    description="Instruction-driven, scope-restricted edits of block documents",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies answer 400 in the ``{ok, error, code}`` shape."""
    first = exc.errors()[0] if exc.errors() else {}
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    body = ErrorResponse(
        error=f"{loc}: {message}" if loc else message,
        code=ErrorCode.INVALID_REQUEST.value,
    )
    return JSONResponse(status_code=400, content=body.to_wire())


# ── Register routers ────────────────────────────────────────
from api.health import router as health_router  # noqa: E402
from api.page import router as page_router  # noqa: E402
from api.patch import router as patch_router  # noqa: E402
from api.provider import router as provider_router  # noqa: E402

app.include_router(health_router)
app.include_router(page_router)
app.include_router(patch_router)
app.include_router(provider_router)


if __name__ == "__main__":
    # Undo history and document locks live in-process: always one worker.
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
        timeout_keep_alive=120,
    )
