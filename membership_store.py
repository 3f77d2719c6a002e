"""
Membership Store module.
Opens sessions against the database holding the user tables and answers
"is this user listed in this table" with parameterized count queries.
"""
import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, NamedTuple, Optional
from urllib.parse import unquote, urlparse

from pg8000 import dbapi as pg_dbapi

from errors import ConfigurationError, QueryError, StoreConnectionError
from table_rule import is_valid_table_name

logger = logging.getLogger(__name__)

SQLITE = 'sqlite'
POSTGRESQL = 'postgresql'

PLACEHOLDERS = {
    SQLITE: '?',
    POSTGRESQL: '%s',
}

# Progress handler granularity (SQLite virtual machine instructions)
SQLITE_PROGRESS_STEPS = 1000


class DataSource(NamedTuple):
    """Parsed data source identity."""
    driver: str
    database: str
    host: Optional[str] = None
    port: Optional[int] = None

    def __str__(self):
        if self.driver == SQLITE:
            return f'{SQLITE}:{self.database}'
        port = f':{self.port}' if self.port else ''
        return f'{POSTGRESQL}://{self.host}{port}/{self.database}'


def parse_data_source(text: str) -> DataSource:
    """
    Parse a data source string.

    Accepted forms:
        sqlite:relative/path.db
        sqlite:///absolute/path.db
        postgresql://host[:port]/database   (postgres:// also accepted)

    Raises:
        ConfigurationError: If the string is empty or the scheme is unknown
    """
    text = (text or '').strip()
    if not text:
        raise ConfigurationError("Data source is empty")

    scheme, sep, rest = text.partition(':')
    scheme = scheme.lower()
    if not sep:
        raise ConfigurationError(f"Data source '{text}' has no scheme")

    if scheme == SQLITE:
        # sqlite:///abs/path -> /abs/path, sqlite:rel/path -> rel/path
        database = rest[2:] if rest.startswith('//') else rest
        if not database:
            raise ConfigurationError(f"Data source '{text}' names no database file")
        return DataSource(SQLITE, database)

    if scheme in (POSTGRESQL, 'postgres'):
        parsed = urlparse(text)
        database = unquote(parsed.path.lstrip('/'))
        if not parsed.hostname or not database:
            raise ConfigurationError(
                f"Data source '{text}': expected format is 'postgresql://host[:port]/database'"
            )
        try:
            port = parsed.port
        except ValueError as e:
            raise ConfigurationError(f"Data source '{text}': invalid port") from e
        return DataSource(POSTGRESQL, database, parsed.hostname, port)

    raise ConfigurationError(f"Unsupported data source scheme '{scheme}'")


class StoreSession:
    """A single logical session; all queries of one resolution run here."""

    def __init__(self, connection: Any, driver: str, deadline: Optional[float] = None):
        self.connection = connection
        self.driver = driver
        self.deadline = deadline
        self.queries = 0

    def count_members(self, table: str, identity: str) -> int:
        """
        Count rows in the table whose name column equals the identity.

        Args:
            table: Table (or view) name, validated as an SQL identifier
            identity: The authenticated user name, bound as a parameter

        Returns:
            Number of matching rows

        Raises:
            QueryError: If the table name is invalid or the query fails
        """
        if not is_valid_table_name(table):
            raise QueryError(table, ValueError('invalid table name'))

        sql = f'SELECT COUNT(name) FROM {table} WHERE name = {PLACEHOLDERS[self.driver]}'
        self.queries += 1
        cursor = None
        try:
            cursor = self.connection.cursor()
            cursor.execute(sql, (identity,))
            row = cursor.fetchone()
        except (sqlite3.Error, pg_dbapi.Error, OSError) as e:
            raise QueryError(table, e) from e
        finally:
            if cursor is not None:
                try:
                    cursor.close()
                except (sqlite3.Error, pg_dbapi.Error, OSError):
                    logger.debug("Error closing cursor for %s", table, exc_info=True)

        count = int(row[0]) if row and row[0] is not None else 0
        logger.debug("Table %s: %d row(s) for %r", table, count, identity)
        return count


class MembershipStore:
    """Creates per-resolution sessions against the configured data source."""

    def __init__(self, data_source: DataSource, username: str = '', password: str = '',
                 timeout: Optional[float] = 5.0):
        """
        Initialize the store.

        Args:
            data_source: Parsed data source
            username: User for the connection (PostgreSQL only)
            password: Password for the connection (PostgreSQL only)
            timeout: Seconds one session may spend connecting and querying
        """
        self.data_source = data_source
        self.username = username
        self.password = password
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> 'MembershipStore':
        return cls(
            config.get_data_source(),
            username=config.get_username(),
            password=config.get_password(),
            timeout=config.get_query_timeout(),
        )

    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        """
        Open a session, yield it, and always close the connection afterwards.

        Raises:
            StoreConnectionError: If the connection cannot be established
        """
        deadline = time.monotonic() + self.timeout if self.timeout else None
        connection = self._connect(deadline)
        try:
            yield StoreSession(connection, self.data_source.driver, deadline)
        finally:
            try:
                connection.close()
            except (sqlite3.Error, pg_dbapi.Error, OSError):
                logger.warning("Error closing connection to %s", self.data_source, exc_info=True)

    def _connect(self, deadline: Optional[float]):
        try:
            if self.data_source.driver == SQLITE:
                return self._connect_sqlite(deadline)
            return self._connect_postgresql()
        except (sqlite3.Error, pg_dbapi.Error, OSError) as e:
            logger.error("Cannot connect to %s: %s", self.data_source, e)
            raise StoreConnectionError(f"Cannot connect to {self.data_source}", e) from e

    def _connect_sqlite(self, deadline: Optional[float]) -> sqlite3.Connection:
        # mode=ro: a missing database file is a connection error, not a new empty file
        uri = Path(self.data_source.database).absolute().as_uri() + '?mode=ro'
        connection = sqlite3.connect(uri, uri=True, timeout=self.timeout or 5.0,
                                     check_same_thread=False)
        if deadline is not None:
            connection.set_progress_handler(
                lambda: 1 if time.monotonic() > deadline else 0,
                SQLITE_PROGRESS_STEPS,
            )
        return connection

    def _connect_postgresql(self):
        connection = pg_dbapi.connect(
            user=self.username,
            password=self.password or None,
            host=self.data_source.host,
            port=self.data_source.port or 5432,
            database=self.data_source.database,
            timeout=self.timeout or None,
        )
        if self.timeout:
            try:
                cursor = connection.cursor()
                cursor.execute(f'SET statement_timeout = {int(self.timeout * 1000)}')
                cursor.close()
            except pg_dbapi.Error:
                connection.close()
                raise
        return connection
