"""Redis client construction for the mapping store.

How to Use
===========
**Step 1 — Create the process-wide client at startup**::
    client = create_redis_client(get_settings())
    store = RedisMappingStore(client, prefix=settings.KEY_PREFIX)

**Step 2 — Close it at shutdown**::
    await client.aclose()

Key Behaviours
===============
- One client (and its connection pool) per process, shared by all requests.
- Connecting is lazy; ``ping`` at startup is what proves reachability.
- Socket timeouts match ``STORE_TIMEOUT_SECONDS`` so a stalled connection
  cannot hold a request past its deadline.
- UTF-8 with ``decode_responses`` so stored URLs come back as ``str``.
"""

import redis.asyncio as redis

from shortener.config import Settings

__all__ = ["create_redis_client"]


def create_redis_client(settings: Settings) -> redis.Redis:
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.STORE_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.STORE_TIMEOUT_SECONDS,
    )
