import redis
import logging
import time

from config import REDIS_SOCKET_TIMEOUT_SEC, REDIS_URL

# ---------------------------------------------------------
# LOGGING
# ---------------------------------------------------------
logger = logging.getLogger("api.redis")

# ---------------------------------------------------------
# REDIS INIT (connections are opened lazily on first command)
# ---------------------------------------------------------
redis_client = redis.from_url(
    REDIS_URL,
    decode_responses=True,
    socket_timeout=REDIS_SOCKET_TIMEOUT_SEC,
    socket_connect_timeout=REDIS_SOCKET_TIMEOUT_SEC,
)


# ---------------------------------------------------------
# CONNECTION DIAGNOSTICS
# ---------------------------------------------------------
def ping_redis() -> int:
    t0 = time.time()
    redis_client.ping()
    ms = int((time.time() - t0) * 1000)
    logger.info("[REDIS] ping ok latency=%sms", ms)
    return ms
