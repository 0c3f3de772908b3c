"""
Valkey (Redis-compatible) client for login rate limiting.

Simple wrapper around redis-py. Connection URL from Vault.
Fail-fast: raises on connection failure, never returns fallback values.
"""

import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Redis-compatible client for Valkey, limited to the counter operations
    the rate limiter needs.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        attempts = client.incr("login_failures:a@b.com")
        client.expire("login_failures:a@b.com", 900)
    """

    def __init__(self, url: str):
        """
        Initialize Valkey connection.

        Raises:
            redis.ConnectionError: If connection fails
        """
        self._client = redis.from_url(url, decode_responses=True)
        # Verify connectivity immediately (fail-fast)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def ping(self) -> bool:
        """Health check. Raises redis.ConnectionError if unreachable."""
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        """Get value by key. None if the key doesn't exist."""
        return self._client.get(key)

    def delete(self, key: str) -> bool:
        """Delete key. True if it existed."""
        return self._client.delete(key) > 0

    def incr(self, key: str) -> int:
        """Increment key by 1, creating it at 1. Returns the new value."""
        return self._client.incr(key)

    def expire(self, key: str, seconds: int) -> bool:
        """Set (or reset) the key's TTL. False if the key doesn't exist."""
        return bool(self._client.expire(key, seconds))

    def ttl(self, key: str) -> int:
        """
        Remaining TTL in seconds.

        Returns -2 if key doesn't exist, -1 if it has no expiration.
        """
        return self._client.ttl(key)

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
        logger.info("ValkeyClient closed")
