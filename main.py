"""
ASGI application: configuration, middleware, routers and health endpoints.

Run with `uvicorn main:app`.
"""
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from api import config
from api.database import DatabaseGameStore, init_db
from api.game_service import GameService
from api.logging_config import configure_logging
from api.monitoring import track_http_request
from api.routes import router
from api.websocket_manager import connection_manager
from api.websocket_routes import router as websocket_router
from engine import GameError
from game_engine import GameManager

# Probes and scrapes are neither logged nor counted
UNTRACKED_PATHS = {"/", "/health", "/metrics"}

environment = config.get_environment()
logger = configure_logging(environment)

sentry_dsn = config.get_sentry_dsn()
if sentry_dsn:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[FastApiIntegration()],
        environment=environment,
        traces_sample_rate=0.1 if environment == "production" else 1.0,
    )
    logger.info("sentry_initialized", environment=environment)

init_db()
logger.info("database_initialized", path=str(config.get_database_path()))

app = FastAPI(title="Settlers Game API", version="1.0.0")

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[config.get_rate_limit()],
    storage_uri="memory://",
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.game_service = GameService(
    GameManager(DatabaseGameStore()),
    connection_manager,
    bot_delay_seconds=config.get_bot_delay_seconds(),
    max_bot_actions=config.get_max_bot_actions(),
)


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    """Rejected game actions are client errors with a stable kind."""
    return JSONResponse(status_code=400, content={"detail": exc.message, "kind": exc.kind})


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    path = request.url.path
    if path in UNTRACKED_PATHS or path.startswith("/metrics/"):
        return await call_next(request)

    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error("http_request_error", method=request.method, path=path, error=str(e))
        raise

    elapsed = time.perf_counter() - started
    track_http_request(request.method, path, response.status_code, elapsed)
    logger.info(
        "http_request",
        method=request.method,
        path=path,
        status_code=response.status_code,
        duration=elapsed,
    )
    return response


app.include_router(router, prefix="/api")
app.include_router(websocket_router, prefix="/api")
app.mount("/metrics", make_asgi_app())


@app.get("/")
async def root():
    return {"service": "settlers", "version": app.version}


@app.get("/health")
async def health():
    return {"status": "healthy", "environment": environment}


@app.on_event("startup")
async def on_startup():
    app.state.game_service.resume_bot_loops()
    logger.info("application_started", environment=environment)


@app.on_event("shutdown")
async def on_shutdown():
    app.state.game_service.cancel_all_bot_loops()
    logger.info("application_shutdown")
