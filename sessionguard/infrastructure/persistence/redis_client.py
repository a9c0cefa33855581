"""Redis connection configuration."""

from redis.asyncio import Redis

from sessionguard.infrastructure.config.settings import Settings

# Connection pool health check interval (seconds); drops idle connections
# the server has already closed before they are handed out
HEALTH_CHECK_INTERVAL = 30


def create_redis_client(settings: Settings) -> Redis:
    """Create an asyncio Redis client from settings.

    Every command is bounded by ``redis_socket_timeout`` so a slow or
    unreachable server turns into an error instead of a hung request.

    Args:
        settings: Application settings containing the Redis URL

    Returns:
        Configured Redis client (connections are opened lazily)
    """
    return Redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
        health_check_interval=HEALTH_CHECK_INTERVAL,
    )
