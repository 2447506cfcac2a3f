"""FastAPI application entry point."""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from formchat.api import router as api_router
from formchat.core.config import get_settings
from formchat.core.llm import build_gateway, default_llm_settings
from formchat.core.logging import get_logger
from formchat.db.settings import load_llm_settings
from formchat.services.session_store import SessionStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared LLM gateway and session store."""
    settings = get_settings()

    try:
        llm_settings = load_llm_settings(settings)
    except Exception as e:
        logger.warning(f"Could not load LLM settings from database, using defaults: {e}")
        llm_settings = default_llm_settings(settings)

    app.state.gateway = build_gateway(settings, llm_settings)
    app.state.sessions = SessionStore(ttl_seconds=settings.SESSION_TTL_SECONDS)
    logger.info(f"FormChat Engine started (env={settings.FORMCHAT_ENV})")

    yield

    logger.info("FormChat Engine shutting down")


app = FastAPI(
    title="FormChat Engine",
    description="Conversational form filling with LLM answer validation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.monotonic()
    response = await call_next(request)
    duration_ms = int((time.monotonic() - start) * 1000)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)"
    )
    return response


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


app.include_router(api_router, prefix="/api")
