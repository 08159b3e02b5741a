import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.config import settings
from app.core.errors import DomainError
from app.core.rate_limiter import SCOPE_AUTH, SCOPE_CONNECTION, SCOPE_MESSAGE, rate_limiter
from app.core.security import decode_access_token
from app.database import init_db, engine
from app.logging_config import setup_logging
from app.routers import auth, chats, connections, jobs, notifications

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="JobBoard Messaging API",
    description="Connections, job and direct chats, notifications.",
    version="1.0.0",
)

cors_origins = [o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(jobs.router)
app.include_router(chats.router)
app.include_router(connections.router)
app.include_router(notifications.router)


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    logger.info("Domain error on %s %s: %s (%s)", request.method, request.url.path, exc.detail, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers={"X-Error-Code": exc.code},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    logger.exception("Unhandled server error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def _rate_limit_for(method: str, path: str) -> tuple[str, int] | None:
    """(scope, per-minute limit) for rate-limited endpoints, None otherwise."""
    if path in {"/auth/login", "/auth/register"}:
        return SCOPE_AUTH, settings.rate_limit_auth_per_min
    if method == "POST" and path.startswith("/chats/") and path.endswith("/message"):
        return SCOPE_MESSAGE, settings.rate_limit_message_per_min
    if method == "POST" and path == "/connections/request":
        return SCOPE_CONNECTION, settings.rate_limit_connection_per_min
    return None


def _actor_for(request, scope: str) -> str:
    """User id from the bearer token for authenticated scopes; client address otherwise."""
    client_ip = request.client.host if request.client else "unknown"
    if scope == SCOPE_AUTH:
        return f"ip:{client_ip}"
    auth_header = request.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        user_id = decode_access_token(auth_header[7:].strip())
        if user_id:
            return f"user:{user_id}"
    return f"ip:{client_ip}"


@app.middleware("http")
async def apply_rate_limits(request, call_next):
    if request.method == "OPTIONS":
        return await call_next(request)

    rule = _rate_limit_for(request.method, request.url.path)
    if rule is not None:
        scope, limit = rule
        if limit > 0:
            allowed, retry_after = rate_limiter.hit(scope, _actor_for(request, scope), limit, window_seconds=60)
            if not allowed:
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too many requests. Please retry shortly."},
                    headers={"Retry-After": str(retry_after)},
                )

    return await call_next(request)


@app.get("/health/live")
def health_live():
    return {"status": "ok"}


@app.get("/health/ready")
def health_ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception:
        logger.exception("Readiness check failed")
        return JSONResponse(status_code=503, content={"status": "not_ready"})


@app.on_event("startup")
def on_startup():
    logger.info("Starting JobBoard Messaging API")
    env = (settings.app_env or "development").lower()
    if env in {"production", "prod"}:
        if settings.secret_key == "replace-with-a-long-random-secret-key":
            raise RuntimeError("SECRET_KEY placeholder is not allowed in production")
        if "username:password@" in settings.database_url:
            raise RuntimeError("DATABASE_URL placeholder credentials are not allowed in production")
    else:
        if settings.secret_key == "replace-with-a-long-random-secret-key":
            logger.warning("SECRET_KEY is using placeholder default. Set SECRET_KEY in .env for secure deployments.")
        if "username:password@" in settings.database_url:
            logger.warning("DATABASE_URL appears to use placeholder credentials. Set DATABASE_URL in .env.")
    init_db()


@app.get("/")
def root():
    return {"message": "JobBoard Messaging API. See /docs for connections, chats and notifications."}
