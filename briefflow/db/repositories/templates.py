from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from briefflow.db.models import RequestTemplate
from briefflow.db.repositories.base import Repository


class TemplatesRepository(Repository):
    def get(self, template_id: UUID) -> Optional[RequestTemplate]:
        return self.session.get(RequestTemplate, template_id)

    def list_active(self) -> list[RequestTemplate]:
        stmt = select(RequestTemplate).where(RequestTemplate.is_active.is_(True)).order_by(RequestTemplate.name)
        return list(self.session.scalars(stmt).all())
