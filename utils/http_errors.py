# User value: every failed admin request returns the same error envelope, so clients branch on one field.
from fastapi import Request

from utils.request_id import REQUEST_ID_HEADER, get_request_id, normalize_request_id

_CODES_BY_STATUS = {
    400: "INVALID_REQUEST",
    403: "AUTH_FORBIDDEN",
    404: "RESOURCE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "STATE_CONFLICT",
    413: "FILE_TOO_LARGE",
    422: "VALIDATION_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def error_message(detail) -> str:
    if isinstance(detail, dict):
        for key in ("error_message", "message", "detail"):
            if detail.get(key):
                return str(detail[key])
        return str(detail)
    if isinstance(detail, list):
        return "; ".join(str(item) for item in detail)
    return str(detail)


def error_code(status_code: int, detail) -> str:
    if isinstance(detail, dict) and detail.get("error_code"):
        return str(detail["error_code"]).strip().upper()
    if status_code == 401:
        return "AUTH_MISSING_TOKEN" if "missing" in error_message(detail).lower() else "AUTH_UNAUTHORIZED"
    return _CODES_BY_STATUS.get(status_code, f"HTTP_{status_code}")


def request_id_for(request: Request) -> str:
    return get_request_id() or normalize_request_id(request.headers.get(REQUEST_ID_HEADER))


def error_envelope(
    request: Request,
    status_code: int,
    detail,
    *,
    code: str | None = None,
    message: str | None = None,
) -> dict:
    return {
        "error_code": code or error_code(status_code, detail),
        "error_message": message or error_message(detail),
        "detail": detail,
        "path": request.url.path,
        "request_id": request_id_for(request),
    }
