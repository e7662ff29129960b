# User value: only listed, non-blocked admins can change folder media.
import logging
import os
import time
from dataclasses import dataclass

from fastapi import Header, HTTPException
from google.auth import exceptions as auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from redis.exceptions import RedisError

from services.redis_client import redis_client as r

logger = logging.getLogger("api.auth")

TOKEN_CLOCK_SKEW_SEC = int(os.getenv("TOKEN_CLOCK_SKEW_SEC", "60"))
GOOGLE_ISSUERS = frozenset({"https://accounts.google.com", "accounts.google.com"})

ADMIN_SET = "auth:admins"
BLOCKED_SET = "auth:users:blocked"


@dataclass(frozen=True)
class AdminIdentity:
    email: str

    @property
    def admin_id(self) -> str:
        return self.email

    def as_dict(self) -> dict:
        return {"email": self.email, "admin_id": self.admin_id}


def _auth_error(status_code: int, error_code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error_code": error_code, "error_message": message})


def _client_id() -> str:
    client_id = os.getenv("GOOGLE_CLIENT_ID")
    if not client_id:
        raise RuntimeError("GOOGLE_CLIENT_ID not set")
    return client_id


def check_claims(claims: dict, client_id: str, now: int | None = None) -> str:
    """Return the verified lower-cased email, or raise a 401."""
    now = int(time.time()) if now is None else now
    if str(claims.get("iss") or "").strip() not in GOOGLE_ISSUERS:
        raise _auth_error(401, "AUTH_INVALID_ISSUER", "Invalid token issuer")
    if str(claims.get("aud") or "").strip() != client_id:
        raise _auth_error(401, "AUTH_INVALID_AUDIENCE", "Invalid token audience")
    if int(claims.get("exp") or 0) <= now - TOKEN_CLOCK_SKEW_SEC:
        raise _auth_error(401, "AUTH_TOKEN_EXPIRED", "Token expired")

    email = str(claims.get("email") or "").strip().lower()
    if not email:
        raise _auth_error(401, "AUTH_EMAIL_MISSING", "Email not found in token")
    if claims.get("email_verified") is not True:
        raise _auth_error(401, "AUTH_EMAIL_NOT_VERIFIED", "Email is not verified")
    return email


def verify_google_id_token(token: str) -> str:
    client_id = _client_id()
    if not token:
        raise _auth_error(401, "AUTH_MISSING_TOKEN", "Missing token")
    try:
        claims = id_token.verify_oauth2_token(token, google_requests.Request(), client_id)
    except (ValueError, auth_exceptions.GoogleAuthError) as exc:
        logger.warning("google_token_rejected error=%s", exc)
        raise _auth_error(401, "AUTH_INVALID_TOKEN", "Invalid Google token") from exc
    return check_claims(claims, client_id)


def authorize_admin(email: str, *, client=None) -> AdminIdentity:
    conn = client or r
    try:
        blocked = conn.sismember(BLOCKED_SET, email)
        listed = conn.sismember(ADMIN_SET, email)
    except RedisError as exc:
        logger.error("admin_lookup_failed email=%s error=%s", email, exc.__class__.__name__)
        raise _auth_error(503, "INFRA_REDIS", "Authentication backend temporarily unavailable") from exc
    if blocked:
        raise _auth_error(403, "AUTH_USER_BLOCKED", "User access blocked")
    if not listed:
        raise _auth_error(403, "AUTH_NOT_ADMIN", "Admin access required")
    return AdminIdentity(email=email)


def verify_admin_token(authorization: str = Header(None)) -> dict:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise _auth_error(401, "AUTH_MISSING_AUTH_HEADER", "Missing Authorization header")
    email = verify_google_id_token(token.strip())
    return authorize_admin(email).as_dict()
