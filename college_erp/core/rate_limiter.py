from slowapi import Limiter
from slowapi.util import get_remote_address
from loguru import logger

from college_erp.core.config import settings

# ----------------------------------------------------------------
# 1. CLIENT IP IDENTIFICATION
# ----------------------------------------------------------------
def get_real_ip(request):
    """
    Client IP behind proxies: X-Forwarded-For first, then X-Real-IP,
    then the socket peer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # leftmost entry is the actual client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)

# ----------------------------------------------------------------
# 2. LIMITER (Redis storage when configured, memory otherwise)
# ----------------------------------------------------------------
if settings.REDIS_URL:
    logger.info("⚡ Initializing Rate Limiter with Redis Storage")
    limiter = Limiter(
        key_func=get_real_ip,
        storage_uri=settings.REDIS_URL,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )
else:
    limiter = Limiter(key_func=get_real_ip, enabled=settings.RATE_LIMIT_ENABLED)
