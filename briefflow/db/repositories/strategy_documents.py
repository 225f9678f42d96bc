from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update

from briefflow.db.models import StrategyDocument
from briefflow.db.repositories.base import Repository


class StrategyDocumentsRepository(Repository):
    def get_active(self, brand_id: UUID) -> Optional[StrategyDocument]:
        stmt = (
            select(StrategyDocument)
            .where(StrategyDocument.brand_id == brand_id, StrategyDocument.is_active.is_(True))
            .order_by(StrategyDocument.updated_at.desc())
        )
        return self.session.scalars(stmt).first()

    def has_active(self, brand_id: UUID) -> bool:
        stmt = select(func.count(StrategyDocument.id)).where(
            StrategyDocument.brand_id == brand_id,
            StrategyDocument.is_active.is_(True),
        )
        return bool(self.session.scalar(stmt))

    def upsert_active(
        self,
        *,
        brand_id: UUID,
        title: str,
        content: str,
        updated_by_id: UUID,
    ) -> StrategyDocument:
        record = self.get_active(brand_id)
        if record is None:
            record = StrategyDocument(
                brand_id=brand_id,
                title=title,
                content=content,
                is_active=True,
                updated_by_id=updated_by_id,
            )
        else:
            record.title = title
            record.content = content
            record.updated_by_id = updated_by_id
        self.session.add(record)
        self.session.flush()
        # Exactly one active document per brand.
        self.session.execute(
            update(StrategyDocument)
            .where(
                StrategyDocument.brand_id == brand_id,
                StrategyDocument.id != record.id,
                StrategyDocument.is_active.is_(True),
            )
            .values(is_active=False)
        )
        self.session.commit()
        self.session.refresh(record)
        return record
