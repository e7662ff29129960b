# User value: ties every log line of one admin request (and its upload batch) to a single traceable id.
import re
import uuid
from contextvars import ContextVar

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_PREFIX = "media-req-"
_current_request_id: ContextVar[str | None] = ContextVar("media_request_id", default=None)
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{8,128}$")


def new_request_id() -> str:
    return f"{REQUEST_ID_PREFIX}{uuid.uuid4().hex}"


def normalize_request_id(raw: str | None) -> str:
    """Keep a well-formed client id, otherwise mint a fresh one."""
    candidate = (raw or "").strip()
    if candidate and _ACCEPTED_ID.match(candidate):
        return candidate
    return new_request_id()


def set_request_id(value: str | None) -> None:
    _current_request_id.set(value)


def get_request_id() -> str | None:
    return _current_request_id.get()


def current_batch_id() -> str:
    # Upload batches reuse the request id so stage logs line up with access logs.
    return get_request_id() or new_request_id()
