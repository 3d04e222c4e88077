"""
Async database access (raw SQL) using asyncpg.

`Database` owns the connection pool. The app lifespan (see `api/main.py`)
creates one instance per process, starts `connect_with_retry()` on a
background task and closes the pool on shutdown. Request handlers receive
the instance through a FastAPI dependency; nothing here is module-global.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Driver exceptions never leave this module: they are classified through
`core.errors.from_driver_error`.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from collections.abc import Awaitable, Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from . import config, errors

logger = logging.getLogger(__name__)

PoolFactory = Callable[..., Awaitable[Any]]

_DRIVER_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)

_HEALTH_SQL = "SELECT 1"


def _split_sslmode(url: str) -> tuple[str, str | None]:
    parts = urlsplit(url)
    if not parts.query:
        return url, None

    sslmode: str | None = None
    params: list[tuple[str, str]] = []
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == "sslmode":
            sslmode = value.strip().lower() or None
        else:
            params.append((key, value))
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment)), sslmode


def _insecure_ssl_context() -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def ssl_option(sslmode: str | None, *, insecure: bool) -> ssl.SSLContext | str | bool:
    """
    Value for asyncpg's `ssl=` argument.

    - insecure: encrypted, no certificate or hostname checks
    - sslmode=disable: plain TCP
    - anything else, including no sslmode: full verification
    """
    if insecure:
        return _insecure_ssl_context()
    if sslmode == "disable":
        return False
    return "verify-full"


def _describe_ssl(option: ssl.SSLContext | str | bool | None) -> str:
    if isinstance(option, ssl.SSLContext):
        return "insecure"
    if option is None:
        return "default"
    if option is False:
        return "disabled"
    return str(option)


def _record_to_dict(record: Any) -> dict[str, Any]:
    return dict(record)


class Database:
    def __init__(
        self,
        dsn: str,
        *,
        ssl: ssl.SSLContext | str | bool | None = "verify-full",
        min_size: int = config.DEFAULT_POOL_MIN_SIZE,
        max_size: int = config.DEFAULT_POOL_MAX_SIZE,
        bootstrap: Sequence[str] = (),
        pool_factory: PoolFactory = asyncpg.create_pool,
    ) -> None:
        self._dsn = dsn
        self._ssl = ssl
        self._min_size = min_size
        self._max_size = max_size
        self._bootstrap = tuple(bootstrap)
        self._pool_factory = pool_factory
        self._pool: Any | None = None

    @classmethod
    def from_env(cls, *, bootstrap: Sequence[str] = ()) -> Database:
        dsn, sslmode = _split_sslmode(config.database_url())
        return cls(
            dsn,
            ssl=ssl_option(sslmode, insecure=config.database_ssl_insecure()),
            min_size=config.pool_min_size(),
            max_size=config.pool_max_size(),
            bootstrap=bootstrap,
        )

    @property
    def is_ready(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """
        Create the pool and run the bootstrap statements.

        The bootstrap doubles as the health round-trip: the database is only
        considered connected once it has answered.
        """
        if self._pool is not None:
            return None

        logger.info(
            "db_connecting min_size=%s max_size=%s ssl=%s",
            self._min_size,
            self._max_size,
            _describe_ssl(self._ssl),
        )
        pool = None
        try:
            pool = await self._pool_factory(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                ssl=self._ssl,
            )
            for statement in self._bootstrap or (_HEALTH_SQL,):
                await pool.execute(statement)
        except asyncio.CancelledError:
            if pool is not None:
                pool.terminate()
            logger.info("db_connect_cancelled")
            raise
        except Exception as exc:
            if pool is not None:
                pool.terminate()
            logger.error("db_connect_failed error=%s: %s", type(exc).__name__, exc)
            raise errors.DatabaseConnectionError(f"Could not connect to database: {exc}") from exc

        self._pool = pool
        logger.info("db_connected bootstrap_statements=%s", len(self._bootstrap))

    async def connect_with_retry(
        self,
        *,
        retry_delay_s: float = config.DEFAULT_CONNECT_RETRY_S,
        max_attempts: int | None = None,
    ) -> None:
        """
        Keep calling `connect()` with a constant delay until it succeeds.

        Unbounded unless `max_attempts` is given, in which case the last
        `DatabaseConnectionError` is re-raised.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                await self.connect()
                return None
            except errors.DatabaseConnectionError:
                if max_attempts is not None and attempt >= max_attempts:
                    raise
                logger.warning("db_connect_retry attempt=%s delay_s=%s", attempt, retry_delay_s)
                await asyncio.sleep(retry_delay_s)

    async def close(self) -> None:
        if self._pool is None:
            return None
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("db_pool_closed")

    def pool(self) -> Any:
        if self._pool is None:
            raise errors.ServiceNotReadyError("Database connection is not established yet.")
        return self._pool

    @contextmanager
    def _driver_errors(self) -> Iterator[None]:
        try:
            yield
        except _DRIVER_ERRORS as exc:
            raise errors.from_driver_error(exc) from exc

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        pool = self.pool()
        with self._driver_errors():
            row = await pool.fetchrow(sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        pool = self.pool()
        with self._driver_errors():
            rows = await pool.fetch(sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def execute(self, sql: str, *args: Any) -> str:
        """
        Run a statement and return the command status tag (e.g. "DELETE 1").
        """
        pool = self.pool()
        with self._driver_errors():
            return await pool.execute(sql, *args)
