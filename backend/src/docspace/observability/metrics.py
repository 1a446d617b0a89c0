"""Prometheus metrics for DocSpace.

Exposed at /metrics by the observability router.
"""

from prometheus_client import Counter, Histogram

# Extraction pipeline
extraction_jobs_total = Counter(
    "docspace_extraction_jobs_total",
    "Extraction jobs finished by the worker",
    ["status"],  # completed|failed|skipped
)

extraction_duration_seconds = Histogram(
    "docspace_extraction_duration_seconds",
    "Wall time of a single extraction job in seconds",
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
)

extraction_chunks_total = Counter(
    "docspace_extraction_chunks_total",
    "Chunks written by the extraction worker",
)

# Q&A generation
qa_pairs_generated_total = Counter(
    "docspace_qa_pairs_generated_total",
    "Question/answer pairs produced from extracted chunks",
)

# LLM calls
ai_calls_total = Counter(
    "docspace_ai_calls_total",
    "Calls made to LLM providers",
    ["provider", "status"],  # status: success|error
)

ai_tokens_total = Counter(
    "docspace_ai_tokens_total",
    "Tokens consumed by LLM calls",
    ["provider", "direction"],  # direction: input|output
)

ai_latency_seconds = Histogram(
    "docspace_ai_latency_seconds",
    "LLM call latency in seconds",
    ["provider"],
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)

# Agents
agent_steps_total = Counter(
    "docspace_agent_steps_total",
    "Autonomous agent loop iterations",
)

agent_tool_calls_total = Counter(
    "docspace_agent_tool_calls_total",
    "Tool invocations requested by agents",
    ["tool", "success"],
)

# HTTP
http_request_duration_seconds = Histogram(
    "docspace_http_request_duration_seconds",
    "API request latency in seconds",
    ["method", "route", "status"],
)
