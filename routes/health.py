from fastapi import APIRouter, HTTPException
from redis.exceptions import RedisError

from services.redis_client import ping_redis

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health():
    try:
        latency_ms = ping_redis()
    except RedisError:
        raise HTTPException(
            status_code=503,
            detail={"error_code": "INFRA_REDIS", "error_message": "Redis unavailable"},
        )
    return {
        "status": "OK",
        "redis": "connected",
        "redis_latency_ms": latency_ms,
    }
