"""Key/value operations on Redis through a pool of client connections."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import redis

from chatgate.pool import ConnectionPool, PoolClosedError

log = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_POOL_SIZE = 5


class RedisStore:
    """Thin command layer over a :class:`ConnectionPool` of Redis clients.

    Every command borrows a connection for its duration and gives it back.
    Failures, a closed pool included, are reported through the return value:
    ``False`` for commands that answer yes or no, ``None`` for lookups, and an
    empty string for :meth:`hget`.
    """

    def __init__(self, pool: ConnectionPool[Any]):
        self._pool = pool

    def _execute(self, name: str, command: Callable[[Any], R]) -> R | None:
        try:
            with self._pool.connection() as conn:
                return command(conn)
        except PoolClosedError:
            log.info("[ %s ] skipped: pool is closed", name)
        except redis.RedisError as exc:
            log.info("[ %s ] failed: %s", name, exc)
        return None

    def get(self, key: str) -> Any | None:
        """Return the string stored at *key*, or None if there is none."""
        value = self._execute(f"GET {key}", lambda conn: conn.get(key))
        if value is None:
            log.info("[ GET %s ] failed", key)
            return None
        log.info("Succeed to execute command [ GET %s ]", key)
        return value

    def set(self, key: str, value: str) -> bool:
        """Store *value* at *key*; True when the server answered OK."""
        reply = self._execute(f"SET {key}", lambda conn: conn.set(key, value))
        ok = reply is True or (isinstance(reply, (str, bytes)) and reply in ("OK", "ok", b"OK", b"ok"))
        log.info("Execute command [ SET %s %s ] %s", key, value, "success" if ok else "failure")
        return ok

    def auth(self, password: str) -> bool:
        """Authenticate one pooled connection with *password*."""
        reply = self._execute("AUTH", lambda conn: conn.auth(password))
        ok = bool(reply)
        log.info("authentication %s", "succeeded" if ok else "failed")
        return ok

    @staticmethod
    def _positive_int(reply: Any) -> bool:
        return isinstance(reply, int) and not isinstance(reply, bool) and reply > 0

    def lpush(self, key: str, value: str) -> bool:
        """Push *value* onto the head of the list at *key*."""
        ok = self._positive_int(self._execute(f"LPUSH {key}", lambda conn: conn.lpush(key, value)))
        log.info("Execute command [ LPUSH %s %s ] %s", key, value, "success" if ok else "failure")
        return ok

    def rpush(self, key: str, value: str) -> bool:
        """Push *value* onto the tail of the list at *key*."""
        ok = self._positive_int(self._execute(f"RPUSH {key}", lambda conn: conn.rpush(key, value)))
        log.info("Execute command [ RPUSH %s %s ] %s", key, value, "success" if ok else "failure")
        return ok

    def lpop(self, key: str) -> Any | None:
        """Pop from the head of the list at *key*; None if it is empty."""
        value = self._execute(f"LPOP {key}", lambda conn: conn.lpop(key))
        log.info("Execute command [ LPOP %s ] %s", key, "failure" if value is None else "success")
        return value

    def rpop(self, key: str) -> Any | None:
        """Pop from the tail of the list at *key*; None if it is empty."""
        value = self._execute(f"RPOP {key}", lambda conn: conn.rpop(key))
        log.info("Execute command [ RPOP %s ] %s", key, "failure" if value is None else "success")
        return value

    def hset(self, key: str, hkey: str, value: str | bytes) -> bool:
        """Set field *hkey* of the hash at *key*; *value* may be binary."""
        reply = self._execute(f"HSET {key} {hkey}", lambda conn: conn.hset(key, hkey, value))
        ok = isinstance(reply, int) and not isinstance(reply, bool)
        log.info("Execute command [ HSet %s %s ] %s", key, hkey, "success" if ok else "failure")
        return ok

    def hget(self, key: str, hkey: str) -> Any:
        """Return field *hkey* of the hash at *key*, or an empty string."""
        value = self._execute(f"HGET {key} {hkey}", lambda conn: conn.hget(key, hkey))
        if value is None:
            log.info("Execute command [ HGet %s %s ] failure", key, hkey)
            return ""
        log.info("Execute command [ HGet %s %s ] success", key, hkey)
        return value

    def delete(self, key: str) -> bool:
        """Delete *key*; True whenever the server carried out the command."""
        reply = self._execute(f"DEL {key}", lambda conn: conn.delete(key))
        ok = isinstance(reply, int) and not isinstance(reply, bool)
        log.info("Execute command [ Del %s ] %s", key, "success" if ok else "failure")
        return ok

    def exists(self, key: str) -> bool:
        """Return True if *key* exists."""
        ok = self._positive_int(self._execute(f"EXISTS {key}", lambda conn: conn.exists(key)))
        log.info("%s [ Key %s ]", "Found" if ok else "Not Found", key)
        return ok

    def close(self) -> None:
        """Close the pool; later commands fail without blocking."""
        self._pool.close()


def create_redis_store(
    host: str,
    port: int,
    password: str | None = None,
    pool_size: int = DEFAULT_POOL_SIZE,
) -> RedisStore:
    """Open up to *pool_size* authenticated connections and wrap them.

    Connections that cannot be opened or authenticated are left out.
    """
    clients = []
    for _ in range(pool_size):
        client = redis.Redis(
            host=host,
            port=int(port),
            password=password or None,
            decode_responses=True,
            single_connection_client=True,
        )
        try:
            client.ping()
        except redis.RedisError as exc:
            log.warning("redis connection to %s:%s failed: %s", host, port, exc)
            continue
        log.info("redis authentication succeeded")
        clients.append(client)
    return RedisStore(ConnectionPool(clients))