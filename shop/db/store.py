from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from decimal import Decimal

import structlog
from opentelemetry import trace
from opentelemetry.trace import TracerProvider
from sqlalchemy import create_engine, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from shop.db.models import Base, OrderRow, ProductRow
from shop.errors import NotFoundError, QueryError, StoreConnectionError
from shop.models.schemas import NewProduct, Order, Product
from shop.observability.tracing import traced


DEFAULT_PRODUCTS: tuple[NewProduct, ...] = (
    NewProduct(name="Gaming Laptop", price=Decimal("15000000")),
    NewProduct(name="Wireless Mouse", price=Decimal("300000")),
    NewProduct(name="Mechanical Keyboard", price=Decimal("800000")),
    NewProduct(name="4K Monitor", price=Decimal("3500000")),
)

logger = structlog.get_logger("store")


def _to_product(row: ProductRow) -> Product:
    return Product(id=row.id, name=row.name, price=row.price)


def _to_order(row: OrderRow) -> Order:
    return Order(
        id=row.id,
        product_id=row.product_id,
        quantity=row.quantity,
        total=row.total,
        created_at=row.created_at,
    )


class Store:
    """Products and orders over one pooled SQLAlchemy engine.

    Construct it once per process and hand it to whoever needs it; nothing
    touches the database until :meth:`initialize` runs.
    """

    def __init__(
        self,
        dsn: str,
        *,
        seed_products: Iterable[NewProduct] = DEFAULT_PRODUCTS,
        tracer_provider: TracerProvider | None = None,
        instrument_queries: bool = False,
    ) -> None:
        self.dsn = dsn
        self.seed_products = list(seed_products)
        self.instrument_queries = instrument_queries
        self.tracer = trace.get_tracer(__name__, tracer_provider=tracer_provider)
        self._tracer_provider = tracer_provider
        self._engine: Engine | None = None
        self._sessions: sessionmaker[Session] | None = None

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise QueryError("store is not initialized")
        return self._engine

    def initialize(self) -> None:
        """Open the pool, check the database answers, then ensure schema and seed data."""

        if self._engine is not None:
            return

        try:
            engine = create_engine(self.dsn, pool_pre_ping=True)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreConnectionError("database liveness check failed") from exc

        if self.instrument_queries:
            self._instrument(engine)

        self._engine = engine
        self._sessions = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        try:
            self._setup_tables()
        except Exception:
            self.shutdown()
            raise

    def shutdown(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessions = None

    def _instrument(self, engine: Engine) -> None:
        # Imported lazily: only needed when query-level spans are wanted.
        from opentelemetry.instrumentation.sqlalchemy.engine import EngineTracer

        # Engine-scoped listeners rather than the process-wide SQLAlchemyInstrumentor,
        # which instruments once and ignores every later engine.
        tracer = trace.get_tracer("opentelemetry.instrumentation.sqlalchemy", tracer_provider=self._tracer_provider)
        EngineTracer(tracer, engine)

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        if self._sessions is None:
            raise QueryError("store is not initialized")

        session = self._sessions()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            raise QueryError(f"failed to {action}") from exc
        finally:
            session.close()

    @traced("setup_tables")
    def _setup_tables(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise QueryError("failed to create tables") from exc

        with self._session("seed products") as session:
            count = session.scalar(select(func.count()).select_from(ProductRow))
            if count:
                return
            session.add_all([ProductRow(name=p.name, price=p.price) for p in self.seed_products])
            session.commit()
            logger.info("store.seeded", products=len(self.seed_products))

    @traced("get_products")
    def list_products(self) -> list[Product]:
        with self._session("list products") as session:
            rows = session.scalars(select(ProductRow).order_by(ProductRow.id)).all()
            return [_to_product(row) for row in rows]

    @traced("get_product")
    def get_product(self, product_id: int) -> Product:
        with self._session("get product") as session:
            row = session.get(ProductRow, product_id)
            if row is None:
                raise NotFoundError("Product not found")
            return _to_product(row)

    @traced("create_order")
    def create_order(self, product_id: int, quantity: int, total: Decimal) -> int:
        with self._session("create order") as session:
            row = OrderRow(product_id=product_id, quantity=quantity, total=total)
            session.add(row)
            session.commit()
            return row.id

    @traced("get_order")
    def get_order(self, order_id: int) -> Order:
        with self._session("get order") as session:
            row = session.get(OrderRow, order_id)
            if row is None:
                raise NotFoundError("Order not found")
            return _to_order(row)
