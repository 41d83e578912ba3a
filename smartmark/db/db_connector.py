"""Bookmark record store on SQLAlchemy Core.

Connection selection:
    DATABASE_URL      any SQLAlchemy URL (hosted Postgres, SQLite, ...)
    AZURE_SQL_*       used when DATABASE_URL is unset: Azure SQL through
                      an Azure AD service principal (pyodbc + azure-identity).
                      AZURE_SQL_SERVER, AZURE_SQL_DATABASE, AZURE_SQL_CLIENT_ID,
                      AZURE_SQL_CLIENT_SECRET; optional AZURE_SQL_TENANT_ID,
                      AZURE_SQL_TIMEOUT, AZURE_SQL_DRIVER
"""
from __future__ import annotations

import os
import urllib.parse
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    case,
    create_engine,
    delete,
    func,
    insert,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from smartmark.config.constants import UNCATEGORIZED, UNCLASSIFIED_LIMIT
from smartmark.config.exceptions import ConfigurationError, RecordStoreError
from smartmark.models import Bookmark, ClassificationResult
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)

metadata = MetaData()

bookmarks_table = Table(
    "bookmarks",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("url", Text, nullable=False),
    Column("title", Text, nullable=False),
    Column("description", Text),
    Column("favicon_url", Text),
    Column("category", String(255)),
    Column("subcategory", String(255)),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

profiles_table = Table(
    "profiles",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("api_key", String(128), unique=True),
    Column("notion_token", Text),
    Column("notion_database_id", String(128)),
)

_BOOKMARK_COLUMNS = [c.name for c in bookmarks_table.columns]


class DBConnector:
    """Bookmark storage via a lazily-created SQLAlchemy engine."""

    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url or os.getenv("DATABASE_URL")
        self.server = os.getenv("AZURE_SQL_SERVER")
        self.database = os.getenv("AZURE_SQL_DATABASE")
        self.client_id = os.getenv("AZURE_SQL_CLIENT_ID")
        self.client_secret = os.getenv("AZURE_SQL_CLIENT_SECRET")
        self.timeout = int(os.getenv("AZURE_SQL_TIMEOUT", "30"))
        self.selected_driver: Optional[str] = None
        self._engine: Engine | None = None

    # ------------------------ Internal helpers ------------------------
    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        if self.url:
            kwargs: Dict[str, Any] = {"pool_pre_ping": True}
            if self.url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every checkout sees an empty DB
                kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
            logger.debug("Creating engine for %s", self.url.split("://", 1)[0])
            return create_engine(self.url, **kwargs)
        return self._create_azure_engine()

    def _validate_env_vars(self) -> None:
        required = [
            "AZURE_SQL_SERVER",
            "AZURE_SQL_DATABASE",
            "AZURE_SQL_CLIENT_ID",
            "AZURE_SQL_CLIENT_SECRET",
        ]
        missing = [v for v in required if not os.getenv(v)]
        if missing:
            raise ConfigurationError(
                "Set DATABASE_URL, or the Azure SQL env vars: " + ", ".join(missing)
            )

    def _choose_driver(self) -> str:
        import pyodbc

        requested = os.getenv("AZURE_SQL_DRIVER")
        installed = pyodbc.drivers()
        logger.debug("Installed ODBC drivers: %s", installed)
        if requested:
            if requested in installed:
                return requested
            logger.warning("Requested driver '%s' not found, using auto-detect", requested)
        for preferred in ["ODBC Driver 18 for SQL Server", "ODBC Driver 17 for SQL Server"]:
            if preferred in installed:
                return preferred
        raise ConfigurationError(
            "No suitable SQL Server ODBC driver (need ODBC Driver 17 or 18 for SQL Server)"
        )

    def _build_odbc_string(self) -> str:
        self._validate_env_vars()
        driver = self._choose_driver()
        self.selected_driver = driver
        tenant_id = os.getenv("AZURE_SQL_TENANT_ID")
        parts = [
            f"Driver={{{driver}}}",
            f"Server=tcp:{self.server},1433",
            f"Database={self.database}",
            "Authentication=ActiveDirectoryServicePrincipal",
            f"UID={self.client_id}",
            f"PWD={self.client_secret}",
            "Encrypt=yes",
            "TrustServerCertificate=no",
            f"Connection Timeout={self.timeout}",
        ]
        if tenant_id:
            parts.append(f"Authority Id={tenant_id}")
        return ";".join(parts)

    def _create_azure_engine(self) -> Engine:
        odbc_str = self._build_odbc_string()

        tenant_id = os.getenv("AZURE_SQL_TENANT_ID")
        if tenant_id and self.client_id and self.client_secret:
            from azure.identity import ClientSecretCredential

            try:
                cred = ClientSecretCredential(
                    tenant_id=tenant_id,
                    client_id=self.client_id,
                    client_secret=self.client_secret,
                )
                token = cred.get_token("https://database.windows.net/.default")
                if not token.token:
                    raise RuntimeError("Received empty token")
                logger.debug("Azure AD credentials validated")
            except Exception as exc:
                raise RecordStoreError(
                    "Azure AD credential validation failed: "
                    f"{exc}. Check: client secret, expiration, permissions, tenant ID."
                ) from exc

        params = urllib.parse.quote_plus(odbc_str)
        return create_engine(
            f"mssql+pyodbc:///?odbc_connect={params}",
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    @contextmanager
    def get_connection(self) -> Iterator[Connection]:
        """Context-managed connection (commit on success, rollback on exception)."""
        conn = self.engine.connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------ Setup ------------------------
    def create_schema(self) -> None:
        """Create the bookmarks and profiles tables if they don't exist."""
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Failed creating schema: {exc}") from exc
        logger.info("Schema ready: %s", ", ".join(metadata.tables))

    def connect_and_verify(self) -> None:
        """Verify connection with a cheap count. Raises RecordStoreError on failure."""
        try:
            with self.get_connection() as conn:
                total = conn.execute(select(func.count()).select_from(bookmarks_table)).scalar_one()
        except (SQLAlchemyError, ConfigurationError) as exc:
            raise RecordStoreError(f"Connection verification failed: {exc}") from exc
        logger.info(
            "Connected to bookmarks table (%d rows) via %s",
            total,
            self.selected_driver or self.engine.dialect.name,
        )

    # ------------------------ Bookmarks ------------------------
    def fetch_bookmarks(self, user_id: str) -> List[Bookmark]:
        """All bookmarks for a user, newest first."""
        stmt = (
            select(bookmarks_table)
            .where(bookmarks_table.c.user_id == user_id)
            .order_by(bookmarks_table.c.created_at.desc(), bookmarks_table.c.id)
        )
        return self._fetch(stmt)

    def fetch_unclassified(self, user_id: str, limit: Optional[int] = UNCLASSIFIED_LIMIT) -> List[Bookmark]:
        """Bookmarks whose category is NULL or the Uncategorized sentinel, oldest first."""
        stmt = (
            select(bookmarks_table)
            .where(bookmarks_table.c.user_id == user_id)
            .where(self._unclassified_clause())
            .order_by(bookmarks_table.c.created_at, bookmarks_table.c.id)
        )
        if limit:
            stmt = stmt.limit(limit)
        rows = self._fetch(stmt)
        logger.debug("Fetched %d unclassified bookmarks for user %s", len(rows), user_id)
        return rows

    def count_unclassified(self, user_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(bookmarks_table)
            .where(bookmarks_table.c.user_id == user_id)
            .where(self._unclassified_clause())
        )
        try:
            with self.get_connection() as conn:
                return int(conn.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Count failed: {exc}") from exc

    def get_bookmark(self, user_id: str, bookmark_id: str) -> Optional[Bookmark]:
        stmt = select(bookmarks_table).where(
            bookmarks_table.c.id == bookmark_id,
            bookmarks_table.c.user_id == user_id,
        )
        rows = self._fetch(stmt)
        return rows[0] if rows else None

    def insert_bookmark(self, bookmark: Bookmark) -> Bookmark:
        if not bookmark.user_id:
            raise RecordStoreError("Cannot insert a bookmark without user_id")
        values = {k: v for k, v in bookmark.to_dict().items() if k in _BOOKMARK_COLUMNS}
        try:
            with self.get_connection() as conn:
                conn.execute(insert(bookmarks_table).values(**values))
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Failed to create bookmark: {exc}") from exc
        logger.info("Inserted bookmark %s (%s)", bookmark.id, bookmark.url)
        return bookmark

    def update_classification(
        self,
        user_id: str,
        bookmark_id: str,
        result: ClassificationResult,
        only_unclassified: bool = True,
    ) -> bool:
        """Write one classification, scoped to its owner.

        Category and subcategory are overwritten; description only when the
        row has none. With only_unclassified (default) rows classified in
        the meantime are left alone, which makes re-runs idempotent.

        Returns True when a row was updated.
        """
        col = bookmarks_table.c
        stmt = (
            update(bookmarks_table)
            .where(col.id == bookmark_id, col.user_id == user_id)
            .values(
                category=result.category,
                subcategory=result.subcategory,
                description=case(
                    (or_(col.description.is_(None), col.description == ""), result.description),
                    else_=col.description,
                ),
            )
        )
        if only_unclassified:
            stmt = stmt.where(self._unclassified_clause())

        try:
            with self.get_connection() as conn:
                rowcount = conn.execute(stmt).rowcount
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Update failed for bookmark {bookmark_id}: {exc}") from exc

        logger.debug("Updated bookmark %s: rowcount=%d", bookmark_id, rowcount)
        return rowcount > 0

    def delete_bookmark(self, user_id: str, bookmark_id: str) -> bool:
        stmt = delete(bookmarks_table).where(
            bookmarks_table.c.id == bookmark_id,
            bookmarks_table.c.user_id == user_id,
        )
        try:
            with self.get_connection() as conn:
                return conn.execute(stmt).rowcount > 0
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Delete failed for bookmark {bookmark_id}: {exc}") from exc

    # ------------------------ Profiles ------------------------
    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        stmt = select(profiles_table).where(profiles_table.c.id == user_id)
        try:
            with self.get_connection() as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Profile lookup failed: {exc}") from exc
        return dict(row) if row else None

    def find_user_by_api_key(self, api_key: str) -> Optional[str]:
        stmt = select(profiles_table.c.id).where(profiles_table.c.api_key == api_key)
        try:
            with self.get_connection() as conn:
                return conn.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"API key lookup failed: {exc}") from exc

    def save_profile(
        self,
        user_id: str,
        api_key: Optional[str] = None,
        notion_token: Optional[str] = None,
        notion_database_id: Optional[str] = None,
    ) -> None:
        """Insert or update a profile; None leaves a field unchanged."""
        values = {
            k: v
            for k, v in {
                "api_key": api_key,
                "notion_token": notion_token,
                "notion_database_id": notion_database_id,
            }.items()
            if v is not None
        }
        try:
            with self.get_connection() as conn:
                exists = conn.execute(
                    select(profiles_table.c.id).where(profiles_table.c.id == user_id)
                ).first()
                if exists:
                    if values:
                        conn.execute(
                            update(profiles_table)
                            .where(profiles_table.c.id == user_id)
                            .values(**values)
                        )
                else:
                    conn.execute(insert(profiles_table).values(id=user_id, **values))
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Saving profile failed: {exc}") from exc

    # ------------------------ Internals ------------------------
    @staticmethod
    def _unclassified_clause():
        return or_(
            bookmarks_table.c.category.is_(None),
            bookmarks_table.c.category == UNCATEGORIZED,
        )

    def _fetch(self, stmt) -> List[Bookmark]:
        try:
            with self.get_connection() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Query failed: {exc}") from exc
        return [Bookmark.from_row(row) for row in rows]


__all__ = ["DBConnector", "bookmarks_table", "profiles_table", "metadata"]
