from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, or_, select, update

from briefflow.db.enums import BriefStatusEnum, OutcomeEnum
from briefflow.db.models import Brief
from briefflow.db.repositories.base import Repository

BRIEF_CODE_PREFIX = "BRIEF"


def format_brief_code(year: int, sequence: int) -> str:
    return f"{BRIEF_CODE_PREFIX}-{year}-{sequence:04d}"


class BriefsRepository(Repository):
    def get(self, brief_id: UUID) -> Optional[Brief]:
        return self.session.get(Brief, brief_id)

    def get_status(self, brief_id: UUID) -> Optional[BriefStatusEnum]:
        stmt = select(Brief.status).where(Brief.id == brief_id)
        return self.session.scalar(stmt)

    def next_code(self, year: int) -> str:
        prefix = f"{BRIEF_CODE_PREFIX}-{year}-"
        stmt = select(func.max(Brief.code)).where(Brief.code.like(f"{prefix}%"))
        latest = self.session.scalar(stmt)
        sequence = 1
        if latest:
            try:
                sequence = int(latest[len(prefix):]) + 1
            except ValueError:
                sequence = 1
        return format_brief_code(year, sequence)

    def transition_status(
        self,
        brief_id: UUID,
        *,
        expected: Iterable[BriefStatusEnum],
        target: BriefStatusEnum,
        values: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Compare-and-swap the brief status.

        The update only applies when the stored status is one of ``expected``;
        returns False when no row matched. Does not commit.
        """
        stmt = (
            update(Brief)
            .where(Brief.id == brief_id, Brief.status.in_(list(expected)))
            .values(status=target, **(values or {}))
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def list(
        self,
        *,
        page: int,
        page_size: int,
        status: Optional[BriefStatusEnum] = None,
        created_by_id: Optional[UUID] = None,
        club_ids: Optional[Iterable[UUID]] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Brief], int]:
        filters = []
        if status is not None:
            filters.append(Brief.status == status)
        if created_by_id is not None:
            filters.append(Brief.created_by_id == created_by_id)
        if club_ids is not None:
            filters.append(Brief.club_id.in_(list(club_ids)))
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(Brief.title.ilike(pattern), Brief.code.ilike(pattern)))

        total = self.session.scalar(select(func.count(Brief.id)).where(*filters)) or 0
        stmt = (
            select(Brief)
            .where(*filters)
            .order_by(Brief.created_at.desc(), Brief.code.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(self.session.scalars(stmt).unique().all()), int(total)

    def record_outcome(
        self,
        brief_id: UUID,
        *,
        cycle: int,
        outcome: OutcomeEnum,
        note: Optional[str],
        tagged_at: datetime,
    ) -> bool:
        """Store the outcome unless this delivery cycle was already tagged. Does not commit."""
        stmt = (
            update(Brief)
            .where(
                Brief.id == brief_id,
                or_(Brief.outcome_cycle.is_(None), Brief.outcome_cycle < cycle),
            )
            .values(outcome=outcome, outcome_note=note, outcome_cycle=cycle, outcome_tagged_at=tagged_at)
            .execution_options(synchronize_session="fetch")
        )
        return self.session.execute(stmt).rowcount == 1
