"""
Base Repository Pattern

Purpose
-------
Type-safe, generic repository abstraction following SQLAlchemy 2.0 async
patterns. Repositories encapsulate data access and give every table the
same interface for lookups, counting, listing and inserts.

Design Notes
------------
This base repository provides:
- Type-safe lookups (get, find_one_where, find_many_where)
- Pessimistic locking support (get_for_update)
- Paging and "-field" sort parsing for list endpoints
- Dialect-aware insert-if-absent for unique-keyed ledger rows
- Existence/counting utilities
- Structured debug logging

What this class does NOT do:
- Manage transactions (services/DatabaseService handle that)
- Contain business logic

Usage
-----
    class CommunityQuestRepository(BaseRepository[CommunityQuest]):
        async def find_by_pair(self, session, community_id, quest_id):
            return await self.find_one_where(
                session,
                CommunityQuest.community_id == community_id,
                CommunityQuest.quest_id == quest_id,
            )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite

from questforge.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


def insert_if_absent(
    session: AsyncSession,
    model: Any,
    values: Dict[str, Any],
    conflict_columns: List[str],
) -> Any:
    """``INSERT ... ON CONFLICT (cols) DO NOTHING`` for the session's dialect."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise NotImplementedError(f"insert-if-absent not supported on {dialect}")
    return stmt.values(**values).on_conflict_do_nothing(index_elements=conflict_columns)


class BaseRepository(Generic[T]):
    """
    Generic base repository for type-safe database operations.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    async def get(self, session: AsyncSession, id_value: Any) -> Optional[T]:
        """Get a single record by primary key (no lock)."""
        instance = await session.get(self.model_class, id_value)

        self.log.debug(
            f"Repository.get: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "id": id_value,
                "found": instance is not None,
            },
        )

        return instance

    async def get_for_update(
        self, session: AsyncSession, id_value: Any
    ) -> Optional[T]:
        """
        Get a single record by primary key with SELECT FOR UPDATE.

        The lock clause is dropped by dialects without row locks (SQLite).
        """
        stmt = (
            select(self.model_class)
            .where(self.model_class.id == id_value)  # type: ignore[attr-defined]
            .with_for_update()
        )
        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.get_for_update: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "id": id_value,
                "found": instance is not None,
                "locked": True,
            },
        )

        return instance

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[T]:
        """Find a single record matching conditions."""
        stmt = select(self.model_class).where(*conditions)

        if for_update:
            stmt = stmt.with_for_update()

        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.find_one_where: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "found": instance is not None,
                "locked": for_update,
            },
        )

        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> List[T]:
        """
        Find multiple records matching conditions.

        Args:
            session: Database session
            *conditions: SQLAlchemy filter conditions
            limit: Optional maximum number of results
            offset: Optional number of rows to skip
            sort: Optional column name; a leading "-" sorts descending

        Returns:
            List of model instances
        """
        stmt = select(self.model_class).where(*conditions)

        if sort:
            stmt = stmt.order_by(self._order_clause(sort))
        else:
            stmt = stmt.order_by(self.model_class.id)  # type: ignore[attr-defined]

        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.find_many_where: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "found_count": len(instances),
                "limit": limit,
                "offset": offset,
                "sort": sort,
            },
        )

        return instances

    def _order_clause(self, sort: str) -> Any:
        descending = sort.startswith("-")
        field = sort[1:] if descending else sort
        column = self.model_class.__table__.columns.get(field)  # type: ignore[attr-defined]
        if column is None:
            raise ValidationError("sort", f"unknown sort field '{field}'")
        return column.desc() if descending else column.asc()

    async def exists(
        self, session: AsyncSession, *conditions: ColumnElement[bool]
    ) -> bool:
        """True if at least one record matches."""
        return await self.count(session, *conditions) > 0

    async def count(
        self, session: AsyncSession, *conditions: ColumnElement[bool]
    ) -> int:
        """Count records matching conditions."""
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        result = await session.execute(stmt)
        count = result.scalar_one()

        self.log.debug(
            f"Repository.count: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "count": count,
            },
        )

        return count

    def add(self, session: AsyncSession, instance: T) -> T:
        """Add a new instance to the session."""
        session.add(instance)

        self.log.debug(
            f"Repository.add: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__},
        )

        return instance

    async def flush(self, session: AsyncSession) -> None:
        """Flush pending changes to the database."""
        await session.flush()

    async def refresh(
        self,
        session: AsyncSession,
        instance: T,
        attribute_names: Optional[List[str]] = None,
    ) -> T:
        """Refresh an instance from the database."""
        await session.refresh(instance, attribute_names=attribute_names)
        return instance
