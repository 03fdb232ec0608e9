import logging
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from lesotho_events import config
from lesotho_events.api.exception_handlers import register_exception_handlers
from lesotho_events.api.routes import auth, events, payments, reviews, tickets, users
from lesotho_events.infrastructure.db.models import Base
from lesotho_events.infrastructure.db.session import engine

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Lesotho Events API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.CLIENT_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(events.router)
app.include_router(payments.router)
app.include_router(users.router)
app.include_router(reviews.router)
app.include_router(tickets.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s -> %s (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


@app.get("/api/health")
def health():
    return {
        "status": "OK",
        "message": "Lesotho Events API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _database_ready() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except OperationalError:
        return False
    return True


def _wait_for_db(attempts: int, delay: float) -> None:
    """Blocks startup until the database answers, e.g. under docker compose."""
    for attempt in range(1, attempts + 1):
        if _database_ready():
            logger.info(
                "Connected to %s after %s attempt(s).",
                engine.url.render_as_string(hide_password=True),
                attempt,
            )
            return
        if attempt < attempts:
            logger.warning(
                "Database unavailable, attempt %s of %s; sleeping %.1fs.",
                attempt,
                attempts,
                delay,
            )
            time.sleep(delay)

    logger.error("Giving up on the database after %s attempts.", attempts)
    raise RuntimeError("Database is not reachable; check DATABASE_URL")


@app.on_event("startup")
def on_startup() -> None:
    _wait_for_db(config.DB_CONNECT_MAX_RETRIES, config.DB_CONNECT_RETRY_DELAY)
    Base.metadata.create_all(bind=engine)
