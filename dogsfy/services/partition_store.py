"""
Dogsfy Backend — Partition Store
==================================

What:  CRUD primitive over exactly one partition database.
How:   Wraps an AsyncEngine and a session factory. Every operation opens its
       own session, runs in a single transaction, commits on success and
       rolls back on error.
Who:   UserDirectory (one store per hemisphere) and FriendshipGraph (the
       friends store). Built by database.open_partitions().

Operations:
    get     → first row matching the criteria, or None
    scan    → every row of a model or statement, optional limit/offset
    count   → number of rows a statement yields (limit/offset ignored)
    insert  → add one ORM record
    update  → sparse UPDATE, returns rows affected
    delete  → DELETE, returns rows affected

Error Handling:
    IntegrityError       → ConstraintViolationError
    OperationalError     → retried with exponential backoff + jitter (tenacity),
                           then StorageError
    any other exception  → StorageError
    The store enforces no business rules; uniqueness across partitions,
    existence of referenced users and edge symmetry live above it.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select, text
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from dogsfy.exceptions import ConstraintViolationError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PartitionStore:
    """
    One independently durable record store.

    Attributes:
        name:    Partition tag ("n", "s" or "f"); used in logs and errors.
        engine:  The AsyncEngine this store owns; shared by all requests.
    """

    def __init__(
        self,
        name: str,
        engine: AsyncEngine,
        retry_attempts: int = 3,
        retry_min_wait: float = 0.05,
        retry_max_wait: float = 1.0,
    ):
        self.name = name
        self.engine = engine
        self.retry_attempts = retry_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def __repr__(self) -> str:
        return f"<PartitionStore(name='{self.name}', url='{self.engine.url.render_as_string()}')>"

    # ── Session Handling ──────────────────────────────────────────────────

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provide a session scoped to one unit of work on this partition.

        Commits when the block exits normally, rolls back on any exception.
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run `work` in a fresh session, retrying transient failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_min_wait, max=self.retry_max_wait)
            + wait_random(0, self.retry_min_wait),
            retry=retry_if_exception_type(OperationalError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    async with self.session() as session:
                        return await work(session)
        except IntegrityError as e:
            logger.error("Constraint violation on partition '%s' during %s: %s", self.name, operation, e.orig)
            raise ConstraintViolationError(
                message="The record conflicts with an existing one.",
                partition=self.name,
                context={"operation": operation},
            ) from e
        except Exception as e:
            logger.error(
                "Storage failure on partition '%s' during %s: %s",
                self.name,
                operation,
                str(e),
                exc_info=True,
            )
            raise StorageError(
                partition=self.name,
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e
        raise StorageError(partition=self.name, context={"operation": operation})

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get(self, model: Any, *criteria: Any) -> Optional[Any]:
        """Point lookup. Callers pass criteria that identify at most one row."""
        statement = select(model).where(*criteria).limit(1)

        async def work(session: AsyncSession) -> Optional[Any]:
            result = await session.execute(statement)
            return result.scalars().first()

        return await self._run("get", work)

    async def scan(
        self,
        source: Any,
        *criteria: Any,
        order_by: Iterable[Any] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Any]:
        """
        Fetch every row of a mapped model or a prepared statement.

        Args:
            source:   ORM model class (rows come back as instances) or a
                      Select / CompoundSelect (single-column statements come
                      back as scalars, wider ones as mappings).
            criteria: WHERE clauses; only valid with a model or plain Select.
            order_by: ORDER BY clauses.
            limit / offset: Applied only when given.

        Each call re-issues the query, so two scans of the same source agree
        as long as nobody writes in between.
        """
        is_model = isinstance(source, type)
        statement = select(source) if is_model else source
        if criteria:
            statement = statement.where(*criteria)
        order_by = tuple(order_by)
        if order_by:
            statement = statement.order_by(*order_by)
        if limit is not None:
            statement = statement.limit(limit)
        if offset is not None:
            statement = statement.offset(offset)

        single_column = not is_model and len(statement.selected_columns) == 1

        async def work(session: AsyncSession) -> List[Any]:
            result = await session.execute(statement)
            if is_model or single_column:
                return list(result.scalars().all())
            return [dict(row) for row in result.mappings().all()]

        return await self._run("scan", work)

    async def count(self, statement: Any) -> int:
        """Number of rows `statement` returns, ignoring any pagination."""
        count_statement = select(func.count()).select_from(statement.subquery())

        async def work(session: AsyncSession) -> int:
            result = await session.execute(count_statement)
            return result.scalar() or 0

        return await self._run("count", work)

    # ── Writes ────────────────────────────────────────────────────────────

    async def insert(self, record: Any) -> Any:
        """Insert one ORM record and return it with defaults populated."""

        async def work(session: AsyncSession) -> Any:
            session.add(record)
            await session.flush()
            return record

        return await self._run("insert", work)

    async def update(self, model: Any, criteria: Iterable[Any], values: Dict[str, Any]) -> int:
        """UPDATE only the given columns of matching rows."""
        statement = (
            sa_update(model)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        async def work(session: AsyncSession) -> int:
            result = await session.execute(statement)
            return result.rowcount

        logger.debug("Updating %s on partition '%s' (fields: %s)", model.__name__, self.name, sorted(values))
        return await self._run("update", work)

    async def delete(self, model: Any, *criteria: Any) -> int:
        """DELETE matching rows; zero matches is not an error."""
        statement = sa_delete(model).where(*criteria).execution_options(synchronize_session=False)

        async def work(session: AsyncSession) -> int:
            result = await session.execute(statement)
            return result.rowcount

        return await self._run("delete", work)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def ping(self) -> bool:
        """Lightweight connectivity check for health reporting."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Partition '%s' unreachable: %s", self.name, str(e))
            return False

    async def create_schema(self, metadata: Any, tables: List[Any]) -> None:
        """Create the given tables in this partition if they are missing."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all, tables=tables)
        logger.info("Schema ready on partition '%s': %s", self.name, [t.name for t in tables])

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
