from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select, update

from briefflow.db.enums import TaskStatusEnum
from briefflow.db.models import ProductionTask
from briefflow.db.repositories.base import Repository


class ProductionTasksRepository(Repository):
    def get(self, task_id: UUID) -> Optional[ProductionTask]:
        return self.session.get(ProductionTask, task_id)

    def get_by_brief(self, brief_id: UUID) -> Optional[ProductionTask]:
        stmt = select(ProductionTask).where(ProductionTask.brief_id == brief_id)
        return self.session.scalars(stmt).first()

    def count_for_brief(self, brief_id: UUID) -> int:
        stmt = select(func.count(ProductionTask.id)).where(ProductionTask.brief_id == brief_id)
        return int(self.session.scalar(stmt) or 0)

    def create(self, **fields: Any) -> ProductionTask:
        return self.stage(ProductionTask(**fields))

    def transition_status(
        self,
        task_id: UUID,
        *,
        expected: TaskStatusEnum,
        values: dict[str, Any],
    ) -> bool:
        """Apply ``values`` only if the task is still in ``expected``. Does not commit."""
        stmt = (
            update(ProductionTask)
            .where(ProductionTask.id == task_id, ProductionTask.status == expected)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def list(
        self,
        *,
        status: Optional[TaskStatusEnum] = None,
        assignee_id: Optional[UUID] = None,
    ) -> list[ProductionTask]:
        stmt = select(ProductionTask).order_by(ProductionTask.due_date.asc(), ProductionTask.created_at.asc())
        if status is not None:
            stmt = stmt.where(ProductionTask.status == status)
        if assignee_id is not None:
            stmt = stmt.where(ProductionTask.assignee_id == assignee_id)
        return list(self.session.scalars(stmt).unique().all())
