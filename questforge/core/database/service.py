"""
Database Service - Core Infrastructure Layer

Purpose
-------
Centralized async database engine and session management for the quest
engine. Provides atomic transactions, a circuit breaker for fail-fast
behavior, and health checks.

Responsibilities
----------------
- Initialize and manage a single AsyncEngine instance with connection pooling
- Provide async context managers for read-only sessions and atomic transactions
- Enforce transaction discipline: automatic commit on success, rollback on exception
- Configure statement timeouts for PostgreSQL connections
- Provide idempotent initialization with async lock protection

Non-Responsibilities
--------------------
- Database migrations or schema management beyond ``create_schema`` for
  development and tests
- Domain logic, business rules, or event emission

Architecture Notes
------------------
**Transaction Model**:
- `get_transaction()` is the primary interface for all state mutations
- Automatic commit on success, rollback on any exception
- Never manually call `session.commit()` inside service code
- Only persistence errors (SQLAlchemyError) count as circuit breaker
  failures; domain exceptions roll back without tripping the breaker

**Connection Pooling**:
- QueuePool for PostgreSQL in production
- NullPool for testing environments and SQLite (one connection per session)

**Configuration**:
All values sourced from Config with safe defaults:
- DATABASE_URL (required)
- DATABASE_POOL_SIZE (default: 20)
- DATABASE_MAX_OVERFLOW (default: 10)
- DATABASE_POOL_RECYCLE (default: 3600)
- DATABASE_POOL_TIMEOUT (default: 30)
- DATABASE_STATEMENT_TIMEOUT_MS (default: 30000)
- DATABASE_ECHO (default: False)

Usage Example
-------------
>>> async with DatabaseService.get_transaction() as session:
...     session.add(row)
...     # Automatic commit on exit

>>> async with DatabaseService.get_session() as session:
...     result = await session.execute(select(Quest).where(Quest.id == quest_id))
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional, Type

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, Pool, QueuePool

from questforge.core.config.config import Config
from questforge.core.database.base import Base
from questforge.core.database.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
)
from questforge.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Exceptions
# ============================================================================


class DatabaseInitializationError(RuntimeError):
    """Raised when database engine initialization fails."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when database operations are attempted before initialization."""


# ============================================================================
# Configuration Snapshot
# ============================================================================


@dataclass(frozen=True)
class _DatabaseConfigSnapshot:
    """Immutable snapshot of database configuration."""

    url: str
    echo: bool
    pool_class: Type[Pool]
    pool_size: int
    max_overflow: int
    pool_recycle: int
    pool_timeout: int
    statement_timeout_ms: int

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith(("postgresql://", "postgresql+asyncpg://"))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


# ============================================================================
# DatabaseService
# ============================================================================


class DatabaseService:
    """
    Centralized async database engine and session management.

    Public API
    ----------
    - initialize() / shutdown()
    - get_session() -> read-only session
    - get_transaction() -> atomic write transaction
    - health_check()
    - create_schema() -> create all tables (development and tests)
    """

    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    _config_snapshot: Optional[_DatabaseConfigSnapshot] = None
    _init_lock: asyncio.Lock = asyncio.Lock()
    _circuit_breaker: Optional[CircuitBreaker] = None

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @classmethod
    def _build_config_snapshot(
        cls, database_url: Optional[str] = None
    ) -> _DatabaseConfigSnapshot:
        """
        Build an immutable configuration snapshot from Config.

        Raises
        ------
        DatabaseInitializationError
            If DATABASE_URL is missing or invalid.
        """
        url = database_url or getattr(Config, "DATABASE_URL", None)
        if not url or not isinstance(url, str):
            logger.error("DATABASE_URL is not configured or invalid")
            raise DatabaseInitializationError(
                "DATABASE_URL must be configured as a non-empty string"
            )

        is_testing = Config.is_testing() or url.startswith("sqlite")
        pool_class: Type[Pool] = NullPool if is_testing else QueuePool

        snapshot = _DatabaseConfigSnapshot(
            url=url,
            echo=bool(getattr(Config, "DATABASE_ECHO", False)),
            pool_class=pool_class,
            pool_size=int(getattr(Config, "DATABASE_POOL_SIZE", 5)),
            max_overflow=int(getattr(Config, "DATABASE_MAX_OVERFLOW", 10)),
            pool_recycle=int(getattr(Config, "DATABASE_POOL_RECYCLE", 1800)),
            pool_timeout=int(getattr(Config, "DATABASE_POOL_TIMEOUT", 30)),
            statement_timeout_ms=int(
                getattr(Config, "DATABASE_STATEMENT_TIMEOUT_MS", 30_000)
            ),
        )

        logger.debug(
            "Database configuration snapshot created",
            extra={
                "url_scheme": snapshot.url_scheme,
                "pool_class": pool_class.__name__,
                "pool_size": snapshot.pool_size,
                "statement_timeout_ms": snapshot.statement_timeout_ms,
                "is_testing": is_testing,
            },
        )

        return snapshot

    @classmethod
    async def initialize(cls, database_url: Optional[str] = None) -> None:
        """
        Initialize the database engine and session factory.

        Idempotent: returns immediately when already initialized.

        Args:
            database_url: Optional override of Config.DATABASE_URL

        Raises
        ------
        DatabaseInitializationError
            If configuration is invalid or engine creation fails.
        """
        async with cls._init_lock:
            if cls._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            logger.info("Initializing DatabaseService")

            try:
                config = cls._build_config_snapshot(database_url)
                cls._config_snapshot = config

                engine_kwargs: dict[str, Any] = {
                    "echo": config.echo,
                    "poolclass": config.pool_class,
                }

                if config.pool_class == QueuePool:
                    engine_kwargs.update(
                        {
                            "pool_size": config.pool_size,
                            "max_overflow": config.max_overflow,
                            "pool_recycle": config.pool_recycle,
                            "pool_timeout": config.pool_timeout,
                        }
                    )

                if config.is_sqlite:
                    # Writers wait on the database lock instead of failing fast
                    engine_kwargs["connect_args"] = {
                        "timeout": config.statement_timeout_ms / 1000.0
                    }

                cls._engine = create_async_engine(config.url, **engine_kwargs)
                cls._session_factory = async_sessionmaker(
                    bind=cls._engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )
                cls._circuit_breaker = CircuitBreaker(name="database")

                logger.info(
                    "DatabaseService initialized successfully",
                    extra={
                        "url_scheme": config.url_scheme,
                        "pool_class": config.pool_class.__name__,
                    },
                )

            except Exception as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                cls._engine = None
                cls._session_factory = None
                cls._config_snapshot = None
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine and reset internal state. Safe to call twice."""
        async with cls._init_lock:
            if cls._engine is None:
                logger.debug("DatabaseService not initialized; nothing to shutdown")
                return

            logger.info("Shutting down DatabaseService")

            try:
                await cls._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                cls._engine = None
                cls._session_factory = None
                cls._config_snapshot = None
                cls._circuit_breaker = None

    @classmethod
    async def create_schema(cls) -> None:
        """Create all tables registered on ``Base.metadata``."""
        cls._ensure_initialized()
        assert cls._engine is not None

        # Register every model on the metadata before create_all
        import questforge.database.models  # noqa: F401

        async with cls._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created")

    # ========================================================================
    # Health Check
    # ========================================================================

    @classmethod
    async def health_check(cls) -> bool:
        """
        Lightweight ``SELECT 1`` reachability check.

        Never raises; returns False on any failure.
        """
        if cls._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False

        start = time.perf_counter()
        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        finally:
            logger.debug(
                "Database health check completed",
                extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
            )

    # ========================================================================
    # Session & Transaction Context Managers
    # ========================================================================

    @classmethod
    def _ensure_initialized(cls) -> None:
        if cls._session_factory is None or cls._engine is None:
            logger.error("DatabaseService operation attempted before initialization")
            raise DatabaseNotInitializedError(
                "DatabaseService must be initialized before use. "
                "Call DatabaseService.initialize() during startup."
            )

    @classmethod
    def _get_config_snapshot(cls) -> _DatabaseConfigSnapshot:
        if cls._config_snapshot is None:
            raise DatabaseNotInitializedError("DatabaseService is not initialized")
        return cls._config_snapshot

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session without automatic commit.

        Use for read-only work such as status evaluation. The session is
        closed on exit; nothing is committed.
        """
        cls._ensure_initialized()
        assert cls._session_factory is not None

        start = time.perf_counter()
        async with cls._session_factory() as session:
            try:
                logger.debug("Database session opened (read-only)")
                yield session
            finally:
                await session.close()
                logger.debug(
                    "Database session closed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session wrapped in an atomic transaction.

        **On Success**: commits.
        **On Exception**: rolls back and re-raises the original exception.

        Raises
        ------
        DatabaseNotInitializedError
            If DatabaseService has not been initialized.
        CircuitBreakerOpenError
            If recent persistence failures opened the circuit.
        """
        cls._ensure_initialized()
        assert cls._session_factory is not None
        assert cls._circuit_breaker is not None

        breaker = cls._circuit_breaker
        if not await breaker.allow_request():
            logger.warning("Transaction rejected by circuit breaker (fail-fast)")
            raise CircuitBreakerOpenError(
                "Database circuit breaker is open. "
                "The database may be unavailable or experiencing issues."
            )

        start = time.perf_counter()
        async with cls._session_factory() as session:
            config = cls._get_config_snapshot()

            try:
                if config.is_postgres:
                    await session.execute(
                        text(
                            f"SET LOCAL statement_timeout = "
                            f"{config.statement_timeout_ms}"
                        )
                    )

                logger.debug("Database transaction started")
                yield session

                await session.commit()
                await breaker.record_success()
                logger.debug(
                    "Database transaction committed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

            except SQLAlchemyError as exc:
                await session.rollback()
                await breaker.record_failure()
                logger.error(
                    "Persistence error in transaction; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                    exc_info=True,
                )
                raise

            except BaseException as exc:
                await session.rollback()
                logger.debug(
                    "Transaction rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise

            finally:
                await session.close()

    @classmethod
    def get_circuit_breaker_metrics(cls) -> dict[str, Any]:
        """Current circuit breaker state, for health endpoints."""
        if cls._circuit_breaker is None:
            return {"state": "not_initialized"}

        metrics = cls._circuit_breaker.get_metrics()
        return {
            "state": metrics.state.value,
            "failure_count": metrics.failure_count,
            "success_count": metrics.success_count,
            "consecutive_failures": metrics.consecutive_failures,
            "rejected_requests": metrics.rejected_requests,
        }
