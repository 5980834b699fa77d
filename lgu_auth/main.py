import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from prometheus_client import make_asgi_app
from starlette.middleware.base import BaseHTTPMiddleware

from lgu_auth.api.v1 import auth, users
from lgu_auth.config import settings
from lgu_auth.core.exceptions import register_exception_handlers
from lgu_auth.db.session import Database
from lgu_auth.services.provisioning import ensure_super_admin

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_jwt_config()
    database = Database(settings.database_url, echo=settings.debug)
    await database.connect()
    app.state.db = database
    await ensure_super_admin(database, settings)
    yield
    await database.disconnect()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
        )
        return response


app = FastAPI(
    title="LGU Information Management System API",
    description="Barangay information system: authentication, sessions and user administration",
    version="1.0.0",
    lifespan=lifespan,
)
register_exception_handlers(app)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
    }
