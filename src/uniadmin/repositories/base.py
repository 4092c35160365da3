"""Shared async data access for ORM tables."""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from uniadmin.db.base import Base

RowT = TypeVar("RowT", bound=Base)


class BaseRepository(Generic[RowT]):
    """Row-level helpers bound to one table.

    Subclasses set ``model_class``. Writes flush but never commit; the
    caller owns the transaction.
    """

    model_class: type[RowT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_row(self, pk: Any) -> RowT | None:
        return await self.session.get(self.model_class, pk)

    async def insert(self, **columns: Any) -> RowT:
        row = self.model_class(**columns)
        self.session.add(row)
        await self.session.flush()
        return row

    async def assign(self, row: RowT, **columns: Any) -> RowT:
        for key, value in columns.items():
            setattr(row, key, value)
        await self.session.flush()
        return row

    async def count(self, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(self.model_class).where(*criteria)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def exists(self, *criteria: Any) -> bool:
        stmt = select(self.model_class).where(*criteria).limit(1)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def scalars(self, stmt: Select) -> list[Any]:
        """Run ``stmt`` and return its first column as a list."""
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
