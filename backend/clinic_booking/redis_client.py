from typing import Optional

import redis
from redis import Redis


def make_redis(url: Optional[str]) -> Optional[Redis]:
    """Redis client for ``url``, or None when Redis is not configured."""
    if not url:
        return None
    return redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=2.0,
        socket_connect_timeout=2.0,
    )
