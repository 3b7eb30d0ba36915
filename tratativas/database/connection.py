from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from tratativas.config.settings import Settings
from tratativas.documents.exceptions import RecordStoreError


class Database:
    """Handle on the tratativas database pool.

    Built from settings, opened by the application lifespan and passed to the
    repositories that need it.
    """

    def __init__(self, settings: Settings, min_size: int = 1, max_size: int = 10) -> None:
        self._conninfo = make_conninfo(
            host=settings.db_host,
            port=settings.db_port,
            dbname=settings.db_database,
            user=settings.db_username,
            password=settings.db_password,
            application_name="tratativas",
        )
        self._min_size = min_size
        self._max_size = max_size
        self._pool: ConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self) -> None:
        if self._pool is None:
            self._pool = ConnectionPool(
                self._conninfo,
                min_size=self._min_size,
                max_size=self._max_size,
                name="tratativas",
                open=True,
            )

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a pooled connection. Caller manages commit/rollback.

        Raises:
            RecordStoreError: if the pool has not been opened.
        """
        if self._pool is None:
            raise RecordStoreError("Database pool is not open")
        with self._pool.connection() as conn:
            yield conn
