import os
from dotenv import load_dotenv

load_dotenv()

REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
REDIS_SOCKET_TIMEOUT_SEC = float(os.environ.get("REDIS_SOCKET_TIMEOUT_SEC", "5"))
