"""Request id context shared by the middleware and every log record.

Callers may send their own ``X-Request-ID``; ids that are too long or carry
characters outside ``[A-Za-z0-9._:-]`` are replaced so they cannot forge
log lines.
"""

import re
import uuid
from contextvars import ContextVar, Token
from typing import Optional

NO_REQUEST_ID = "no-request-id"

_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")

request_id_var: ContextVar[Optional[str]] = ContextVar("docspace_request_id", default=None)


def generate_request_id() -> str:
    return uuid.uuid4().hex


def accept_request_id(header_value: Optional[str]) -> str:
    """The caller's id when well-formed, otherwise a fresh one."""
    if header_value and _VALID_REQUEST_ID.fullmatch(header_value):
        return header_value
    return generate_request_id()


def get_request_id() -> str:
    return request_id_var.get() or NO_REQUEST_ID


def set_request_id(request_id: Optional[str]) -> Token:
    return request_id_var.set(request_id)


def reset_request_id(token: Token) -> None:
    request_id_var.reset(token)
