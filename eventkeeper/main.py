# eventkeeper/main.py

from fastapi import FastAPI

from eventkeeper.config import get_settings
from eventkeeper.logging_config import configure_logging
from eventkeeper.routers import admin_retention_router, retention_router

settings = get_settings()
configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

app = FastAPI(title="Eventkeeper Lifecycle & Retention")

app.include_router(retention_router)
app.include_router(admin_retention_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": "eventkeeper", "environment": settings.ENVIRONMENT}
