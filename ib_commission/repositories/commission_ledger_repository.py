"""
CommissionLedgerEntry repository.

Idempotent inserts keyed by (beneficiary, source, period, level), guarded
status transitions and the aggregations behind admin reporting.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from sqlalchemy import distinct, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.commission_ledger_entry import CommissionLedgerEntry
from ib_commission.models.enums import CommissionKind, CommissionStatus
from ib_commission.repositories.base import BaseRepository

# Columns reports may group by
GROUP_COLUMNS = {
    "level": CommissionLedgerEntry.level,
    "beneficiary": CommissionLedgerEntry.beneficiary_id,
    "period": CommissionLedgerEntry.period_key,
    "status": CommissionLedgerEntry.status,
    "kind": CommissionLedgerEntry.kind,
}


class InsertOutcome(StrEnum):
    """Result of an insert-if-absent."""

    INSERTED = "INSERTED"
    ALREADY_EXISTS = "ALREADY_EXISTS"


@dataclass(frozen=True)
class InsertResult:
    """Tagged outcome of an insert-if-absent plus the entry id."""

    outcome: InsertOutcome
    entry_id: int | None

    @property
    def inserted(self) -> bool:
        return self.outcome == InsertOutcome.INSERTED


class CommissionLedgerRepository(BaseRepository[CommissionLedgerEntry]):
    """CommissionLedgerEntry repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission ledger repository."""
        super().__init__(CommissionLedgerEntry, session)

    def _insert(self):
        if self.dialect_name == "postgresql":
            return pg_insert(CommissionLedgerEntry)
        if self.dialect_name == "sqlite":
            return sqlite_insert(CommissionLedgerEntry)
        raise NotImplementedError(
            f"Insert-if-absent not supported for dialect {self.dialect_name}"
        )

    async def insert_if_absent(
        self,
        beneficiary_id: int,
        source_id: int,
        period_key: str,
        level: int,
        **values: Any,
    ) -> InsertResult:
        """
        Insert an entry unless its idempotency key already exists.

        Uses INSERT ... ON CONFLICT DO NOTHING on the unique
        (beneficiary_id, source_id, period_key, level) constraint, so a
        concurrent duplicate never raises.

        Args:
            beneficiary_id: Commission recipient
            source_id: Trader or newly activated user
            period_key: "YYYY-MM" or the direct joining key
            level: Upline level
            **values: Remaining entry columns

        Returns:
            InsertResult tagged INSERTED or ALREADY_EXISTS
        """
        stmt = (
            self._insert()
            .values(
                beneficiary_id=beneficiary_id,
                source_id=source_id,
                period_key=period_key,
                level=level,
                **values,
            )
            .on_conflict_do_nothing(
                index_elements=[
                    "beneficiary_id",
                    "source_id",
                    "period_key",
                    "level",
                ]
            )
            .returning(CommissionLedgerEntry.id)
        )
        result = await self.session.execute(stmt)
        entry_id = result.scalar_one_or_none()
        if entry_id is not None:
            return InsertResult(InsertOutcome.INSERTED, entry_id)

        existing = await self.session.execute(
            select(CommissionLedgerEntry.id).where(
                CommissionLedgerEntry.beneficiary_id == beneficiary_id,
                CommissionLedgerEntry.source_id == source_id,
                CommissionLedgerEntry.period_key == period_key,
                CommissionLedgerEntry.level == level,
            )
        )
        return InsertResult(
            InsertOutcome.ALREADY_EXISTS, existing.scalar_one_or_none()
        )

    async def get_fresh(self, entry_id: int) -> CommissionLedgerEntry | None:
        """Get entry by id, reloading attributes from the database."""
        return await self.get_by_id(entry_id, fresh=True)

    async def exists_for_source(
        self, source_id: int, kind: str, period_key: str | None = None
    ) -> bool:
        """Check whether any entry of ``kind`` exists for a source user."""
        stmt = select(CommissionLedgerEntry.id).where(
            CommissionLedgerEntry.source_id == source_id,
            CommissionLedgerEntry.kind == kind,
        )
        if period_key is not None:
            stmt = stmt.where(CommissionLedgerEntry.period_key == period_key)
        result = await self.session.execute(stmt.limit(1))
        return result.first() is not None

    async def transition(
        self,
        entry_id: int,
        from_statuses: tuple[str, ...],
        **values: Any,
    ) -> bool:
        """
        Conditionally update an entry that is in one of ``from_statuses``.

        The status check is part of the UPDATE, so two workers can never
        both claim the same entry.

        Returns:
            True if the entry was updated
        """
        stmt = (
            update(CommissionLedgerEntry)
            .where(
                CommissionLedgerEntry.id == entry_id,
                CommissionLedgerEntry.status.in_(from_statuses),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def mark_credited(self, entry_id: int, credited_at: datetime) -> bool:
        """PENDING -> CREDITED."""
        return await self.transition(
            entry_id,
            (CommissionStatus.PENDING,),
            status=CommissionStatus.CREDITED,
            credited_at=credited_at,
            error_message=None,
        )

    async def mark_failed(self, entry_id: int, message: str) -> bool:
        """PENDING -> FAILED with the crediting error."""
        return await self.transition(
            entry_id,
            (CommissionStatus.PENDING,),
            status=CommissionStatus.FAILED,
            error_message=message[:1000],
        )

    async def pending_monthly_ids(
        self, period_key: str, batch_id: str | None = None
    ) -> list[int]:
        """
        Get ids of PENDING monthly entries of a period.

        Args:
            period_key: Target period
            batch_id: Restrict to one batch

        Returns:
            Entry ids in creation order
        """
        stmt = select(CommissionLedgerEntry.id).where(
            CommissionLedgerEntry.kind == CommissionKind.MONTHLY_VOLUME,
            CommissionLedgerEntry.period_key == period_key,
            CommissionLedgerEntry.status == CommissionStatus.PENDING,
        )
        if batch_id is not None:
            stmt = stmt.where(CommissionLedgerEntry.batch_id == batch_id)
        result = await self.session.execute(
            stmt.order_by(CommissionLedgerEntry.id)
        )
        return list(result.scalars().all())

    async def find_entries(
        self,
        *,
        kind: str | None = None,
        beneficiary_id: int | None = None,
        source_id: int | None = None,
        period_key: str | None = None,
        batch_id: str | None = None,
        status: str | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[CommissionLedgerEntry]:
        """Find entries by any combination of filters."""
        stmt = select(CommissionLedgerEntry)
        filters = {
            CommissionLedgerEntry.kind: kind,
            CommissionLedgerEntry.beneficiary_id: beneficiary_id,
            CommissionLedgerEntry.source_id: source_id,
            CommissionLedgerEntry.period_key: period_key,
            CommissionLedgerEntry.batch_id: batch_id,
            CommissionLedgerEntry.status: status,
        }
        for column, value in filters.items():
            if value is not None:
                stmt = stmt.where(column == value)

        if newest_first:
            stmt = stmt.order_by(
                CommissionLedgerEntry.created_at.desc(),
                CommissionLedgerEntry.id.desc(),
            )
        else:
            stmt = stmt.order_by(CommissionLedgerEntry.id)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def summarize(
        self,
        group_by: str,
        *,
        kind: str | None = None,
        status: str | None = None,
        exclude_status: str | None = None,
        period_key: str | None = None,
        beneficiary_id: int | None = None,
        batch_id: str | None = None,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> list[dict]:
        """
        Aggregate entries grouped by one column.

        Args:
            group_by: One of "level", "beneficiary", "period", "status", "kind"
            kind / status / period_key / beneficiary_id / batch_id: Filters
            exclude_status: Status to leave out (typically REVERSED)
            created_from / created_to: Creation time range [from, to)

        Returns:
            One dict per group with key, count, sources, total_amount and
            total_lots
        """
        if group_by not in GROUP_COLUMNS:
            raise ValueError(
                f"Unknown group_by '{group_by}', expected one of "
                f"{sorted(GROUP_COLUMNS)}"
            )
        group_column = GROUP_COLUMNS[group_by]

        stmt = select(
            group_column.label("key"),
            func.count(CommissionLedgerEntry.id).label("count"),
            func.count(distinct(CommissionLedgerEntry.source_id)).label("sources"),
            func.coalesce(func.sum(CommissionLedgerEntry.amount), 0).label(
                "total_amount"
            ),
            func.coalesce(func.sum(CommissionLedgerEntry.total_lots), 0).label(
                "total_lots"
            ),
        )

        filters = {
            CommissionLedgerEntry.kind: kind,
            CommissionLedgerEntry.status: status,
            CommissionLedgerEntry.period_key: period_key,
            CommissionLedgerEntry.beneficiary_id: beneficiary_id,
            CommissionLedgerEntry.batch_id: batch_id,
        }
        for column, value in filters.items():
            if value is not None:
                stmt = stmt.where(column == value)
        if exclude_status is not None:
            stmt = stmt.where(CommissionLedgerEntry.status != exclude_status)
        if created_from is not None:
            stmt = stmt.where(CommissionLedgerEntry.created_at >= created_from)
        if created_to is not None:
            stmt = stmt.where(CommissionLedgerEntry.created_at < created_to)

        stmt = stmt.group_by(group_column).order_by(group_column)
        result = await self.session.execute(stmt)

        return [
            {
                "key": row["key"],
                "count": row["count"],
                "sources": row["sources"],
                "total_amount": Decimal(str(row["total_amount"])),
                "total_lots": Decimal(str(row["total_lots"])),
            }
            for row in result.mappings().all()
        ]
