"""Global FastAPI dependencies for infrastructure adapters.

Each adapter is built once per process. Tests replace them through
``app.dependency_overrides``; Celery workers call the same functions
directly.
"""

from functools import lru_cache
from typing import Generator

import httpx

from .domain.storage.ports import BlobStorePort
from .infrastructure.storage import S3BlobStore, load_storage_config_from_env
from .infrastructure.ai.factory import LLMProviderFactory
from .workers.dispatch import TaskDispatcher


@lru_cache()
def get_blob_store() -> BlobStorePort:
    """S3-compatible blob store configured from STORAGE_* settings."""
    return S3BlobStore.from_config(load_storage_config_from_env())


@lru_cache()
def get_llm_factory() -> LLMProviderFactory:
    return LLMProviderFactory()


HTTP_CLIENT_TIMEOUT_SECONDS = 10.0


def get_dispatcher() -> TaskDispatcher:
    return TaskDispatcher()


def get_http_client() -> Generator[httpx.Client, None, None]:
    """Per-request client for outbound calls made by tools and health probes."""
    with httpx.Client(timeout=HTTP_CLIENT_TIMEOUT_SECONDS) as client:
        yield client
