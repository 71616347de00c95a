"""
Transaction query collaborator.

Two read operations, both driven by the same RowFilters predicate:
    count_rows(filters)                 → int
    fetch_rows(filters, limit, offset)  → list of row dicts, newest first

Region and date filters are optional; an empty region list means "all regions".
"""

from typing import Optional

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.transaction import Transaction
from reports.filters import RowFilters


class TransactionQuery:

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _conditions(filters: Optional[RowFilters]) -> list:
        conditions = []
        if filters is None:
            return conditions
        if filters.regions:
            conditions.append(Transaction.region.in_(filters.regions))
        if filters.date_range:
            lower, upper = filters.date_range.bounds()
            if lower:
                conditions.append(Transaction.timestamp >= lower)
            if upper:
                conditions.append(Transaction.timestamp <= upper)
        return conditions

    def _filtered(self, stmt: Select, filters: Optional[RowFilters]) -> Select:
        conditions = self._conditions(filters)
        return stmt.where(*conditions) if conditions else stmt

    async def count_rows(self, filters: Optional[RowFilters]) -> int:
        stmt = self._filtered(select(func.count(Transaction.id)), filters)
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar() or 0

    async def fetch_rows(self, filters: Optional[RowFilters], limit: int, offset: int = 0) -> list[dict]:
        stmt = (
            self._filtered(select(Transaction), filters)
            .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [txn.to_row() for txn in result.scalars().all()]
