"""
store/sqlite.py - SQLite store implementations

Both stores use SQLAlchemy Core over a SQLite database file. SQLiteStore is the
unversioned baseline and keeps its rows in ``products``; VersionedSQLiteStore
keeps a ``version`` column in ``versioned_products`` and relies on the
database's atomic conditional update for its version check:

    UPDATE versioned_products
       SET name = ?, description = ?, stock = ?, version = version + 1
     WHERE id = ? AND version = ?

No in-process locking is involved, so several store instances (or processes)
pointed at one database file still admit exactly one winner per version.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Union
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import InventoryLockError, NotFoundError, StoreError, VersionConflictError
from ..models.product import Product
from .adapter import ProductStore, VersionedProductStore

logger = logging.getLogger(__name__)

# Seconds a connection waits on a locked database before giving up
DEFAULT_BUSY_TIMEOUT = 30.0


class _SQLiteStoreBase:
    """Engine and table handling shared by both SQLite stores."""

    TABLE_NAME = "products"

    def __init__(self, db_path: Union[str, Path], echo: bool = False,
                 busy_timeout: float = DEFAULT_BUSY_TIMEOUT):
        """
        Open (and if needed create) the database.

        Args:
            db_path: Path to the SQLite database file
            echo: If True, log all SQL statements
            busy_timeout: Seconds to wait for a competing writer's lock
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.metadata = MetaData()
        self.products = self._define_table()
        self.engine: Engine = sa.create_engine(
            f"sqlite:///{self.db_path}",
            echo=echo,
            connect_args={"timeout": busy_timeout, "check_same_thread": False},
        )
        sa.event.listen(self.engine, "connect", self._on_connect)

        with self._connection() as conn:
            self.metadata.create_all(conn)

        logger.debug(f"Connected to SQLite database at {self.db_path} (table {self.TABLE_NAME})")

    @staticmethod
    def _on_connect(dbapi_connection, connection_record) -> None:
        # WAL lets readers proceed while a writer holds the database lock
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    def _define_table(self) -> Table:
        return Table(
            self.TABLE_NAME, self.metadata,
            Column('id', String(36), primary_key=True),
            Column('name', String(100), nullable=False),
            Column('description', Text, nullable=False, default=""),
            Column('stock', Integer, nullable=False, default=0),
            Column('version', Integer),
        )

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        """
        Open a connection inside a transaction, committed on success.

        Store errors pass through untouched; driver failures become StoreError.
        """
        try:
            with self.engine.begin() as conn:
                yield conn
        except InventoryLockError:
            raise
        except IntegrityError as e:
            logger.error(f"Integrity error in {self.TABLE_NAME}: {e}")
            raise StoreError(f"Integrity error: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.exception(f"Database error in {self.TABLE_NAME}: {e}")
            raise StoreError(f"Database error: {e}") from e

    @staticmethod
    def _product_from_row(row: Dict[str, Any]) -> Product:
        return Product(
            id=UUID(row['id']),
            name=row['name'],
            description=row['description'] or "",
            stock=int(row['stock']),
            version=row['version'],
        )

    def _initial_version(self):
        return None

    def create(self, product: Product) -> Product:
        stored = product.with_version(self._initial_version())
        with self._connection() as conn:
            conn.execute(sa.insert(self.products).values(
                id=str(stored.id), version=stored.version, **stored.payload()
            ))

        logger.debug(f"Created product {stored.id}: {stored.name}")
        return stored

    def get(self, product_id: UUID) -> Product:
        with self._connection() as conn:
            row = conn.execute(
                sa.select(self.products).where(self.products.c.id == str(product_id))
            ).fetchone()

        if row is None:
            raise NotFoundError(product_id)
        return self._product_from_row(row._mapping)

    def list_all(self) -> List[Product]:
        with self._connection() as conn:
            rows = conn.execute(sa.select(self.products).order_by(self.products.c.name)).fetchall()
        return [self._product_from_row(row._mapping) for row in rows]

    def close(self) -> None:
        self.engine.dispose()
        logger.debug(f"Closed SQLite database at {self.db_path}")


class SQLiteStore(_SQLiteStoreBase, ProductStore):
    """Unversioned SQLite store: saves overwrite unconditionally."""

    def save(self, product: Product) -> Product:
        with self._connection() as conn:
            result = conn.execute(
                sa.update(self.products)
                .where(self.products.c.id == str(product.id))
                .values(**product.payload())
            )
            if result.rowcount == 0:
                raise NotFoundError(product.id)

        logger.debug(f"Saved product {product.id} with stock {product.stock}")
        return product.with_version(None)


class VersionedSQLiteStore(_SQLiteStoreBase, VersionedProductStore):
    """SQLite store with optimistic concurrency control on a version column."""

    TABLE_NAME = "versioned_products"

    def _initial_version(self):
        return 0

    def compare_and_save(self, product_id: UUID, payload: Product, expected_version: int) -> Product:
        table = self.products
        with self._connection() as conn:
            result = conn.execute(
                sa.update(table)
                .where(table.c.id == str(product_id))
                .where(table.c.version == expected_version)
                .values(version=table.c.version + 1, **payload.payload())
            )
            if result.rowcount == 0:
                # Same transaction: the write lock taken by the UPDATE is still held
                actual = conn.execute(
                    sa.select(table.c.version).where(table.c.id == str(product_id))
                ).scalar()
                if actual is None:
                    raise NotFoundError(product_id)
                logger.warning(
                    f"Version conflict on product {product_id}: "
                    f"expected {expected_version}, stored {actual}"
                )
                raise VersionConflictError(product_id, expected_version, actual)

        logger.debug(f"Saved product {product_id} at version {expected_version + 1}")
        return Product(id=product_id, version=expected_version + 1, **payload.payload())
