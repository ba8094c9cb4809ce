from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from resume_studio.api import compile_latex, documents, previews, sessions, sessions_websocket
from resume_studio.compiler.base import reset_compiler
from resume_studio.core.repository import PersistenceError
from resume_studio.core.session_manager import session_manager
from resume_studio.core.ws_manager import get_ws_manager
from resume_studio.memory.db import dispose_engine, init_db
from resume_studio.settings import get_settings
from resume_studio.utils.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings = get_settings()
    await init_db()
    LOGGER.info("Compiler mode: %s, LLM mode: %s", settings.compiler_mode, settings.llm_mode)

    yield
    # Shutdown: sessions first so pending edits reach the database
    await session_manager.shutdown()
    await get_ws_manager().aclose()
    await reset_compiler()
    await dispose_engine()


app = FastAPI(
    title="Resume Studio Backend",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def check_api_key(request: Request, call_next):
    settings = get_settings()
    # Only enforce if key is set and path starts with /api (exclude docs/websocket)
    if settings.admin_api_key and request.url.path.startswith("/api"):
        api_key = request.headers.get("X-API-Key")
        if api_key != settings.admin_api_key:
            # Allow OPTIONS for CORS
            if request.method == "OPTIONS":
                return await call_next(request)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API Key"},
            )
    return await call_next(request)


@app.exception_handler(PersistenceError)
async def persistence_exception_handler(request: Request, exc: PersistenceError):
    LOGGER.error("Persistence failure on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Document store unavailable"},
    )


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    LOGGER.error("Global exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )


@app.get("/health")
async def health() -> dict:
    settings = get_settings()
    return {"status": "ok", "compiler_mode": settings.compiler_mode, "llm_mode": settings.llm_mode}


app.include_router(compile_latex.router)
app.include_router(documents.router)
app.include_router(previews.router)
app.include_router(sessions.router)
app.include_router(sessions_websocket.router)
