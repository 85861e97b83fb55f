"""Shared CRUD helpers for the table DAOs.

DAOs never commit; the caller owns the session and its transaction.
"""

import uuid
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repoflow.core.database import Base

ModelT = TypeVar("ModelT", bound=Base)

_SERVER_MANAGED = frozenset({"id", "created_at", "updated_at"})


class BaseDAO(Generic[ModelT]):
    """Subclasses set ``model``."""

    model: type[ModelT]

    def _check_columns(self, values: Mapping[str, Any]) -> None:
        columns = set(self.model.__mapper__.column_attrs.keys())
        for key in values:
            if key in _SERVER_MANAGED:
                raise AttributeError(f"'{key}' is managed by the database")
            if key not in columns:
                raise AttributeError(f"{self.model.__name__} has no column '{key}'")

    async def get_by_id(self, session: AsyncSession, pk: uuid.UUID) -> ModelT | None:
        if pk is None:
            raise ValueError("pk must not be None")
        return await session.get(self.model, pk)

    async def find_one(self, session: AsyncSession, **filters: Any) -> ModelT | None:
        """First row whose columns equal *filters*, or None."""
        if not filters:
            raise ValueError("find_one() requires at least one filter")
        stmt = select(self.model).filter_by(**filters).limit(1)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def update(self, session: AsyncSession, pk: uuid.UUID, **values: Any) -> ModelT | None:
        """Set *values* on row *pk*; None when the row does not exist."""
        self._check_columns(values)
        obj = await self.get_by_id(session, pk)
        if obj is None:
            return None
        for key, val in values.items():
            setattr(obj, key, val)
        await session.flush()
        await session.refresh(obj)
        return obj
