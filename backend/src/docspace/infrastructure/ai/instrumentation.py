"""Prometheus bookkeeping shared by the LLM provider adapters"""

import time
from contextlib import contextmanager

from ...observability.metrics import ai_calls_total, ai_tokens_total, ai_latency_seconds


@contextmanager
def track_call(provider: str):
    """Time a provider call and count it as success or error."""
    start = time.perf_counter()
    try:
        yield
    except Exception:
        ai_calls_total.labels(provider=provider, status="error").inc()
        raise
    finally:
        ai_latency_seconds.labels(provider=provider).observe(time.perf_counter() - start)
    ai_calls_total.labels(provider=provider, status="success").inc()


def record_tokens(provider: str, tokens_in: int, tokens_out: int) -> None:
    ai_tokens_total.labels(provider=provider, direction="input").inc(tokens_in or 0)
    ai_tokens_total.labels(provider=provider, direction="output").inc(tokens_out or 0)
