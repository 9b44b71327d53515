"""Database module for micasa.

This module provides the Store API for all persistence operations.
Store encapsulates connection management and provides access to the
per-entity operation groups.

ARCHITECTURE:
- Store owns one SQLite connection shared by readers and the single writer
- The connection runs in autocommit mode; every multi-statement write is
  wrapped in ``Store.transaction()`` so observers never see half of it
- Each entity type gets an encapsulated operations class, reached through a
  lazily created property (``store.projects``, ``store.documents``, ...)

COORDINATION PATTERN:
Operations classes receive the Store rather than a bare connection, so they
can share its transaction scope and reach sibling operations. Lifecycle
transitions all go through ``store.lifecycle``, which applies the
referential-integrity guards and writes the deletion audit record in the
same transaction as the row update:

    store.projects.soft_delete(project_id)   # same as:
    store.soft_delete(ProjectId(project_id))

ID POLICY:
Ids are assigned by SQLite (AUTOINCREMENT, never reused) and handed back as
typed ids (``ProjectId``, ``VendorId``, ...).
"""

import itertools
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from micasa.config import DEFAULT_MAX_DOCUMENT_SIZE, Settings
from micasa.exceptions import SchemaMismatchError, ValidationError
from micasa.host.environment import MEMORY_DB_PATH, document_cache_dir, get_db_path
from micasa.schemas import REQUIRED_INDEXES, REQUIRED_SCHEMA, get_sql_schema

from .types import EntityId

if TYPE_CHECKING:
    from .appliance import ApplianceOperations
    from .chat import ChatHistoryOperations
    from .dashboard import DashboardOperations
    from .deletion import DeletionLogOperations
    from .document import DocumentOperations
    from .entity import LifecycleOperations
    from .house import HouseProfileOperations
    from .incident import IncidentOperations
    from .lookup import LookupOperations
    from .maintenance import MaintenanceOperations
    from .project import ProjectOperations
    from .query import ReadOnlyQueryOperations
    from .quote import QuoteOperations
    from .service_log import ServiceLogOperations
    from .settings import SettingsOperations
    from .vendor import VendorOperations

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_MS = 5000


class Store:
    """
    Database Store with entity operations.

    Maintains its own connection and transaction state.
    Provides access to entity operations through properties.

    Usage:
        >>> with Store.open("house.db") as store:
        ...     store.bootstrap()
        ...     project_id = store.projects.create(new_project)
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        max_document_size: int = DEFAULT_MAX_DOCUMENT_SIZE,
        cache_dir: str | Path | None = None,
    ):
        """Initialize Store with a database connection.

        Args:
            connection: SQLite connection in autocommit mode with row_factory
                set to sqlite3.Row
            max_document_size: Largest accepted document payload in bytes
            cache_dir: Directory extracted documents are written to. Defaults
                to the per-user cache directory.

        Raises:
            ValidationError: If max_document_size is not positive
        """
        self._conn = connection
        self._max_document_size = DEFAULT_MAX_DOCUMENT_SIZE
        self.set_max_document_size(max_document_size)
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None
        self._savepoints = itertools.count(1)
        self._ops: dict[str, object] = {}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def open(cls, path: str | Path, **kwargs) -> "Store":
        """Open (creating if needed) the database file at ``path``.

        Args:
            path: Filesystem path of the database, or ':memory:'
            **kwargs: Passed through to Store.__init__

        Returns:
            Store on a configured connection (bootstrap() not yet run)
        """
        return cls(_create_connection(path), **kwargs)

    @classmethod
    def open_memory(cls, **kwargs) -> "Store":
        """Open a private in-memory database."""
        return cls(_create_connection(MEMORY_DB_PATH), **kwargs)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @property
    def max_document_size(self) -> int:
        return self._max_document_size

    def set_max_document_size(self, max_bytes: int) -> None:
        """Change the document size limit.

        Raises:
            ValidationError: If max_bytes is not a positive integer
        """
        if isinstance(max_bytes, bool) or not isinstance(max_bytes, int) or max_bytes <= 0:
            raise ValidationError(
                f"max document size must be positive, got {max_bytes!r}",
                {"max_document_size": max_bytes},
            )
        self._max_document_size = max_bytes

    @property
    def cache_dir(self) -> Path:
        """Directory extracted documents are materialized in."""
        if self._cache_dir is None:
            return document_cache_dir()
        return self._cache_dir

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _cached(self, name: str, factory):
        ops = self._ops.get(name)
        if ops is None:
            ops = factory(self)
            self._ops[name] = ops
        return ops

    @property
    def lifecycle(self) -> "LifecycleOperations":
        """Soft-delete and restore with guards and audit records."""
        from .entity import LifecycleOperations
        return self._cached("lifecycle", LifecycleOperations)

    @property
    def projects(self) -> "ProjectOperations":
        from .project import ProjectOperations
        return self._cached("projects", ProjectOperations)

    @property
    def quotes(self) -> "QuoteOperations":
        from .quote import QuoteOperations
        return self._cached("quotes", QuoteOperations)

    @property
    def vendors(self) -> "VendorOperations":
        from .vendor import VendorOperations
        return self._cached("vendors", VendorOperations)

    @property
    def appliances(self) -> "ApplianceOperations":
        from .appliance import ApplianceOperations
        return self._cached("appliances", ApplianceOperations)

    @property
    def maintenance(self) -> "MaintenanceOperations":
        from .maintenance import MaintenanceOperations
        return self._cached("maintenance", MaintenanceOperations)

    @property
    def service_log(self) -> "ServiceLogOperations":
        from .service_log import ServiceLogOperations
        return self._cached("service_log", ServiceLogOperations)

    @property
    def incidents(self) -> "IncidentOperations":
        from .incident import IncidentOperations
        return self._cached("incidents", IncidentOperations)

    @property
    def documents(self) -> "DocumentOperations":
        """Document storage and cache extraction.

        Lazy-loaded like the other operation groups; reads the store's
        max_document_size and cache_dir at call time.
        """
        from .document import DocumentOperations
        return self._cached("documents", DocumentOperations)

    @property
    def house(self) -> "HouseProfileOperations":
        from .house import HouseProfileOperations
        return self._cached("house", HouseProfileOperations)

    @property
    def lookups(self) -> "LookupOperations":
        from .lookup import LookupOperations
        return self._cached("lookups", LookupOperations)

    @property
    def dashboard(self) -> "DashboardOperations":
        from .dashboard import DashboardOperations
        return self._cached("dashboard", DashboardOperations)

    @property
    def deletions(self) -> "DeletionLogOperations":
        from .deletion import DeletionLogOperations
        return self._cached("deletions", DeletionLogOperations)

    @property
    def settings(self) -> "SettingsOperations":
        from .settings import SettingsOperations
        return self._cached("settings", SettingsOperations)

    @property
    def chat(self) -> "ChatHistoryOperations":
        from .chat import ChatHistoryOperations
        return self._cached("chat", ChatHistoryOperations)

    @property
    def query(self) -> "ReadOnlyQueryOperations":
        """Read-only SQL surface for the natural-language assistant."""
        from .query import ReadOnlyQueryOperations
        return self._cached("query", ReadOnlyQueryOperations)

    def soft_delete(self, target: EntityId) -> None:
        """Soft-delete the row a typed id refers to. See LifecycleOperations."""
        self.lifecycle.soft_delete(target)

    def restore(self, target: EntityId) -> None:
        """Restore the row a typed id refers to. See LifecycleOperations."""
        self.lifecycle.restore(target)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block of statements as one atomic unit.

        The outermost scope takes the write lock up front (BEGIN IMMEDIATE)
        and commits on success or rolls back on any exception. Nested scopes
        become savepoints, so operations can compose without committing early.

        Yields:
            The store's connection
        """
        conn = self._conn
        if conn.in_transaction:
            name = f"micasa_sp_{next(self._savepoints)}"
            conn.execute(f"SAVEPOINT {name}")
            try:
                yield conn
            except BaseException:
                conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
                conn.execute(f"RELEASE SAVEPOINT {name}")
                raise
            conn.execute(f"RELEASE SAVEPOINT {name}")
            return

        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def bootstrap(self) -> None:
        """Create or validate the schema, then ensure indexes and lookups.

        Idempotent. A database without user tables gets the bundled schema;
        one with tables is validated against REQUIRED_SCHEMA instead, so the
        store can attach to any schema-compatible database.

        Raises:
            SchemaMismatchError: If an existing database is missing required
                tables or columns
        """
        if has_user_tables(self._conn):
            validate_schema(self._conn)
            logger.debug("validated existing schema")
        else:
            create_schema(self._conn)
            logger.info("created schema")

        from .seed import seed_defaults

        with self.transaction() as conn:
            ensure_required_indexes(conn)
            seed_defaults(conn)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        """Cleanup connection if not already closed.

        Called during garbage collection. Errors are ignored since the
        connection may already be closed or in an invalid state.
        """
        conn = getattr(self, "_conn", None)
        if conn is not None:
            try:
                conn.close()
            except sqlite3.Error:
                pass


def _create_connection(path: str | Path) -> sqlite3.Connection:
    """Create a configured database connection.

    Returns:
        SQLite connection in autocommit mode with row_factory set to
        sqlite3.Row, foreign keys enabled, WAL journaling for file databases
        and a bounded lock wait.
    """
    path = str(path)
    if path != MEMORY_DB_PATH:
        Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path, timeout=BUSY_TIMEOUT_MS / 1000, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    if path != MEMORY_DB_PATH:
        conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
    return conn


def open_store(settings: Settings | None = None, path: str | Path | None = None) -> Store:
    """
    Open and bootstrap the store described by ``settings``.

    Args:
        settings: Loaded settings; defaults to Settings() (config file and
                  environment)
        path: Explicit database path, overriding every other source

    Returns:
        Bootstrapped Store

    Examples:
        >>> store = open_store()
        >>> store.projects.list()
        []
    """
    if settings is None:
        settings = Settings()

    db_path = get_db_path(path or settings.db_path)
    store = Store.open(db_path, max_document_size=settings.max_document_size)
    try:
        store.bootstrap()
    except BaseException:
        store.close()
        raise
    logger.info("opened store at %s", db_path)
    return store


# ============================================================================
# DATABASE INITIALIZATION
# ============================================================================

def has_user_tables(conn: sqlite3.Connection) -> bool:
    """Return True if the database has any table not owned by SQLite."""
    row = conn.execute(
        "SELECT COUNT(*) FROM sqlite_master "
        "WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
    ).fetchone()
    return row[0] > 0


def table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    """Column names of ``table``; empty if the table does not exist."""
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the bundled schema in one transaction."""
    schema_sql = get_sql_schema()
    try:
        conn.executescript(f"BEGIN IMMEDIATE;\n{schema_sql}\nCOMMIT;")
    except sqlite3.Error:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise


def validate_schema(conn: sqlite3.Connection) -> None:
    """Check an existing database against REQUIRED_SCHEMA.

    Every gap is collected before failing so the error names all of them.

    Raises:
        SchemaMismatchError: If any required table or column is missing
    """
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}

    for table, required in REQUIRED_SCHEMA.items():
        present = table_columns(conn, table)
        if not present:
            missing_tables.append(table)
            continue
        absent = [column for column in required if column not in present]
        if absent:
            missing_columns[table] = absent

    if not missing_tables and not missing_columns:
        return

    problems = []
    for table in missing_tables:
        problems.append(f"missing required table `{table}`")
    for table, columns in missing_columns.items():
        problems.append(f"table `{table}` is missing required columns: {', '.join(columns)}")

    raise SchemaMismatchError(
        "database schema is incompatible: " + "; ".join(problems)
        + "; run migration before launching",
        missing_tables=missing_tables,
        missing_columns=missing_columns,
    )


def ensure_required_indexes(conn: sqlite3.Connection) -> None:
    for index in REQUIRED_INDEXES:
        conn.execute(index.create_sql)
