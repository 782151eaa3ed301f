from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI
from redis import Redis
from sqlalchemy import text

from synapse.api.routers.admin import router as admin_router
from synapse.api.routers.items import router as items_router
from synapse.api.routers.search import router as search_router
from synapse.core.config import settings
from synapse.core.db import get_engine
from synapse.core.logging import configure_logging
from synapse.memory.vector_store import QdrantVectorStore
from synapse.models.base import Base

configure_logging(settings.LOG_LEVEL)
log = logging.getLogger("synapse")

app = FastAPI(title=settings.APP_NAME)


def _retry_backoff(fn, *, attempts: int = 30, base_sleep_s: float = 1.0, max_sleep_s: float = 2.0, what: str) -> bool:
    sleep_s = base_sleep_s
    for i in range(1, attempts + 1):
        try:
            fn()
            return True
        except Exception as e:
            if i == attempts:
                log.error("Startup: %s still not ready after %s attempts: %s", what, attempts, str(e))
                return False
            log.warning("Startup: %s not ready (attempt %s/%s): %s", what, i, attempts, str(e))
            time.sleep(sleep_s)
            sleep_s = min(max_sleep_s, sleep_s * 2.0)
    return False


def _check_db() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def _check_redis() -> bool:
    try:
        r = Redis.from_url(settings.REDIS_URL, socket_connect_timeout=1, socket_timeout=1)
        return bool(r.ping())
    except Exception:
        return False


def _check_qdrant() -> bool:
    return QdrantVectorStore(settings).ready()


@app.on_event("startup")
def _startup() -> None:
    # Do not crash API if deps are temporarily unavailable.
    if not settings.ENSURE_EXTERNAL_DEPS_ON_STARTUP:
        log.info("Startup: ENSURE_EXTERNAL_DEPS_ON_STARTUP=false; skipping db/qdrant ensure")
        return

    _retry_backoff(lambda: Base.metadata.create_all(get_engine()), what="database")
    store = QdrantVectorStore(settings)
    _retry_backoff(lambda: store.ensure_collection(settings.QDRANT_COLLECTION, settings.EMBEDDING_DIM), what="qdrant")


@app.get("/health")
def health() -> dict[str, Any]:
    deps = {
        "database": _check_db(),
        "redis": _check_redis(),
        "qdrant": _check_qdrant(),
    }
    return {"ok": all(deps.values()), "deps": deps, "app": settings.APP_NAME, "provider": settings.AI_PROVIDER}


app.include_router(items_router, prefix="/items", tags=["items"])
app.include_router(search_router, prefix="/search", tags=["search"])
app.include_router(admin_router, prefix="/admin", tags=["admin"])
