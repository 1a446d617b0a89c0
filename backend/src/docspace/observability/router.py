"""Observability endpoints: Prometheus metrics, health and readiness."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_blob_store
from ..domain.storage.ports import BlobStorePort
from .health import (
    HealthStatus,
    check_database_health,
    check_broker_health,
    check_blob_store_health,
    get_overall_health,
)

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health")
def health_check(
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
):
    """Component health. 503 when any component is unhealthy."""
    components = {
        "database": check_database_health(db),
        "broker": check_broker_health(),
        "blob_store": check_blob_store_health(blob_store),
    }
    overall = get_overall_health(components)

    return JSONResponse(
        content={
            "status": overall.value,
            "components": {
                name: {
                    "status": comp.status.value,
                    "message": comp.message,
                    "latency_ms": comp.latency_ms,
                }
                for name, comp in components.items()
            },
        },
        status_code=503 if overall == HealthStatus.UNHEALTHY else 200,
    )


@router.get("/ready")
def readiness_check(db: Annotated[Session, Depends(get_db)]):
    """Ready once the database answers."""
    db_health = check_database_health(db)
    if db_health.status == HealthStatus.HEALTHY:
        return {"status": "ready", "message": "Application is ready to serve traffic"}
    return JSONResponse(content={"status": "not_ready", "message": db_health.message}, status_code=503)
