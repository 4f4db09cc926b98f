"""SQLAlchemy-backed catalog store.

Names are stored twice: the display form and a canonical (trimmed,
case-folded) form carrying a UNIQUE index, so concurrent creators of the same
name collide in the database rather than in application checks.
"""

from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager, contextmanager, nullcontext
from decimal import Decimal
from typing import Iterator, Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool

from catalogsvc.exceptions import (
    CategoryNotFoundError,
    DuplicateNameError,
    ProductNotFoundError,
    StorageFault,
)
from catalogsvc.repositories.base import (
    CatalogRepository,
    CategoryRecord,
    ProductInput,
    ProductRecord,
    canonical_name,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class CategoryRow(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_canonical: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000))


class ProductRow(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_canonical: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000))
    price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_products_price_positive"),
        CheckConstraint("quantity >= 0", name="ck_products_quantity_nonneg"),
    )


class ProductCategoryRow(Base):
    __tablename__ = "product_categories"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), primary_key=True
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"), primary_key=True
    )


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy own BEGIN so pysqlite honours SAVEPOINT."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine for the catalog store."""
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)
        _enable_sqlite_savepoints(engine)
        return engine
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def _category_record(row: CategoryRow) -> CategoryRecord:
    return CategoryRecord(category_id=row.id, name=row.name, description=row.description)


class SqlCatalogRepository(CatalogRepository):
    """Catalog store on a relational database."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )
        self._local = threading.local()
        # A StaticPool hands every thread the same DBAPI connection, so outer
        # transactions on it must not interleave.
        self._connection_guard: AbstractContextManager = (
            threading.RLock() if isinstance(engine.pool, StaticPool) else nullcontext()
        )

    @classmethod
    def from_url(
        cls, database_url: str, *, echo: bool = False, create_schema: bool = True
    ) -> "SqlCatalogRepository":
        repository = cls(build_engine(database_url, echo=echo))
        if create_schema:
            repository.create_schema()
        return repository

    def create_schema(self) -> None:
        """Create catalog tables if they do not exist."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            raise StorageFault(f"Could not create catalog schema: {exc}") from exc

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit the block on success, roll it back on error.

        Nested calls run inside a SAVEPOINT of the enclosing transaction.
        """
        current: Optional[Session] = getattr(self._local, "session", None)
        if current is not None:
            with current.begin_nested():
                yield
            return

        with self._connection_guard:
            session = self._session_factory()
            self._local.session = session
            try:
                with session.begin():
                    yield
            except SQLAlchemyError as exc:
                logger.exception("Catalog transaction failed")
                raise StorageFault(f"Catalog store failure: {exc}") from exc
            finally:
                self._local.session = None
                session.close()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        current: Optional[Session] = getattr(self._local, "session", None)
        if current is not None:
            yield current
            return
        with self.transaction():
            yield self._local.session

    def _load_categories(self, session: Session, product_id: int) -> tuple[CategoryRecord, ...]:
        rows = session.scalars(
            select(CategoryRow)
            .join(ProductCategoryRow, ProductCategoryRow.category_id == CategoryRow.id)
            .where(ProductCategoryRow.product_id == product_id)
            .order_by(CategoryRow.id)
        ).all()
        return tuple(_category_record(row) for row in rows)

    def _product_record(self, session: Session, row: ProductRow) -> ProductRecord:
        return ProductRecord(
            product_id=row.id,
            name=row.name,
            description=row.description,
            price=Decimal(row.price),
            quantity=row.quantity,
            categories=self._load_categories(session, row.id),
        )

    def get_product_with_categories(self, product_id: int) -> Optional[ProductRecord]:
        with self._session() as session:
            row = session.get(ProductRow, product_id)
            if row is None:
                return None
            return self._product_record(session, row)

    def get_product_by_name(self, name: str) -> Optional[ProductRecord]:
        with self._session() as session:
            row = session.scalars(
                select(ProductRow).where(ProductRow.name_canonical == canonical_name(name))
            ).one_or_none()
            if row is None:
                return None
            return self._product_record(session, row)

    def list_products(self) -> list[ProductRecord]:
        with self._session() as session:
            rows = session.scalars(select(ProductRow).order_by(ProductRow.id)).all()
            return [self._product_record(session, row) for row in rows]

    def create_product(self, data: ProductInput) -> ProductRecord:
        with self._session() as session:
            row = ProductRow(
                name=data.name.strip(),
                name_canonical=canonical_name(data.name),
                description=data.description,
                price=data.price,
                quantity=data.quantity,
            )
            try:
                with session.begin_nested():
                    session.add(row)
                    session.flush()
            except IntegrityError as exc:
                raise DuplicateNameError("product", data.name) from exc
            return self._product_record(session, row)

    def update_product(self, product_id: int, data: ProductInput) -> ProductRecord:
        with self._session() as session:
            row = session.get(ProductRow, product_id)
            if row is None:
                raise ProductNotFoundError(product_id)
            try:
                with session.begin_nested():
                    row.name = data.name.strip()
                    row.name_canonical = canonical_name(data.name)
                    row.description = data.description
                    row.price = data.price
                    row.quantity = data.quantity
                    session.flush()
            except IntegrityError as exc:
                session.refresh(row)
                raise DuplicateNameError("product", data.name) from exc
            return self._product_record(session, row)

    def get_category_by_name(self, name: str) -> Optional[CategoryRecord]:
        with self._session() as session:
            row = session.scalars(
                select(CategoryRow).where(CategoryRow.name_canonical == canonical_name(name))
            ).one_or_none()
            return _category_record(row) if row is not None else None

    def create_category(self, name: str, description: Optional[str] = None) -> CategoryRecord:
        if not canonical_name(name):
            raise ValueError("category name must not be blank")
        with self._session() as session:
            row = CategoryRow(
                name=name.strip(),
                name_canonical=canonical_name(name),
                description=description,
            )
            try:
                with session.begin_nested():
                    session.add(row)
                    session.flush()
            except IntegrityError as exc:
                raise DuplicateNameError("category", name) from exc
            return _category_record(row)

    def link_product_category(self, product_id: int, category_id: int) -> None:
        with self._session() as session:
            if session.get(ProductRow, product_id) is None:
                raise ProductNotFoundError(product_id)
            if session.get(CategoryRow, category_id) is None:
                raise CategoryNotFoundError(category_id)
            if session.get(ProductCategoryRow, (product_id, category_id)) is not None:
                return
            session.add(ProductCategoryRow(product_id=product_id, category_id=category_id))
            session.flush()

    def unlink_product_category(self, product_id: int, category_id: int) -> None:
        with self._session() as session:
            link = session.get(ProductCategoryRow, (product_id, category_id))
            if link is not None:
                session.delete(link)
                session.flush()
