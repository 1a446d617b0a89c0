"""Health checks for the components DocSpace depends on.

Each check reports rather than raises: a failing dependency becomes an
UNHEALTHY component in the /health response.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

import redis
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.storage.ports import BlobStorePort
from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def _probe(label: str, check: Callable[[], bool], ok_message: str, down_message: str = "") -> ComponentHealth:
    """Run ``check`` and time it. Exceptions and a False result mark the component unhealthy."""
    start = time.perf_counter()
    try:
        reachable = check()
    except Exception as e:
        logger.error(f"{label} health check failed: {e}", exc_info=True)
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"{label} error: {e}")
    if not reachable:
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=down_message)
    latency = round((time.perf_counter() - start) * 1000, 2)
    return ComponentHealth(status=HealthStatus.HEALTHY, message=ok_message, latency_ms=latency)


def check_database_health(db: Session) -> ComponentHealth:
    def select_one() -> bool:
        db.execute(text("SELECT 1"))
        return True

    return _probe("Database", select_one, "Database connection OK")


def check_broker_health(broker_url: Optional[str] = None) -> ComponentHealth:
    """Ping the Redis broker used by Celery."""
    def ping() -> bool:
        client = redis.from_url(broker_url or settings.CELERY_BROKER_URL, socket_connect_timeout=2)
        return bool(client.ping())

    return _probe("Broker", ping, "Broker connection OK", "Broker did not answer PING")


def check_blob_store_health(blob_store: BlobStorePort) -> ComponentHealth:
    return _probe("Blob store", blob_store.check_health, "Blob store OK", "Blob store bucket unreachable")


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """HEALTHY if all are healthy, UNHEALTHY if any is, DEGRADED otherwise."""
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY
    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED
