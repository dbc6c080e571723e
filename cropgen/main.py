import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from cropgen.core.config import Settings, settings
from cropgen.core.errors import CropGenError
from cropgen.routers import game, misc
from cropgen.services.content_generators import ContentGenerator
from cropgen.services.content_store import ContentStore
from cropgen.services.game_service import GameService
from cropgen.services.gemini_client import GeminiClient
from cropgen.services.session_tracker import SessionTracker

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("cropgen")


def build_repositories(cfg: Settings):
    """Return (content_repo, sessions_repo, db_client) for the configured backend."""
    if cfg.STORAGE_BACKEND == "memory":
        from cropgen.repositories.memory_repo import MemoryContentRepository, MemorySessionRepository

        return MemoryContentRepository(), MemorySessionRepository(), None

    from cropgen.db.firestore import create_client
    from cropgen.repositories.content_repo import FirestoreContentRepository
    from cropgen.repositories.sessions_repo import FirestoreSessionRepository

    db = create_client(cfg)
    return (
        FirestoreContentRepository(db, cfg.CONTENT_COLLECTION),
        FirestoreSessionRepository(db, cfg.SESSIONS_COLLECTION, cfg.PLAYERS_COLLECTION),
        db,
    )


def build_http_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    # no client-level timeout; GeminiClient bounds each call with its own budget
    return httpx.AsyncClient(timeout=None, transport=transport)


def build_game_service(cfg: Settings, http: httpx.AsyncClient, content_repo, sessions_repo) -> GameService:
    client = GeminiClient(
        http,
        api_key=cfg.GEMINI_API_KEY,
        model=cfg.GEMINI_MODEL,
        base_url=cfg.GEMINI_BASE_URL,
        temperature=cfg.GEMINI_TEMPERATURE,
        max_output_tokens=cfg.GEMINI_MAX_OUTPUT_TOKENS,
        default_timeout=cfg.GEMINI_TIMEOUT,
    )
    generator = ContentGenerator(client, tips_timeout=cfg.TIPS_TIMEOUT, mcqs_timeout=cfg.MCQS_TIMEOUT)
    store = ContentStore(
        content_repo,
        generator,
        max_retries=cfg.CONTENT_MAX_RETRIES,
        retry_delay=cfg.CONTENT_RETRY_DELAY,
    )
    tracker = SessionTracker(sessions_repo, window=timedelta(hours=cfg.SESSION_TTL_HOURS))
    return GameService(store, tracker, timezone=cfg.GAME_TIMEZONE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg: Settings = app.state.settings
    if not cfg.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set; every game will use fallback content")

    content_repo, sessions_repo, db = build_repositories(cfg)
    http = build_http_client()
    app.state.http = http
    app.state.game = build_game_service(cfg, http, content_repo, sessions_repo)
    logger.info("Started (env=%s, storage=%s, model=%s)", cfg.ENV, cfg.STORAGE_BACKEND, cfg.GEMINI_MODEL)
    app.state.db = db  # held for the process lifetime
    try:
        yield
    finally:
        await http.aclose()


def create_app(cfg: Settings = settings) -> FastAPI:
    app = FastAPI(title="CropGen Daily Game API", lifespan=lifespan)
    app.state.settings = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=True,  # session cookie
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(CropGenError)
    async def cropgen_error_handler(request: Request, exc: CropGenError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        detail = "; ".join(
            f"{'.'.join(str(p) for p in e['loc'][1:])}: {e['msg']}" for e in exc.errors()
        )
        return JSONResponse(status_code=400, content={"success": False, "error": detail or "Invalid request"})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    app.include_router(misc.router)
    app.include_router(game.router)
    return app


app = create_app()
