from __future__ import annotations

from typing import Optional
from uuid import UUID

from briefflow.db.models import Brand, Club
from briefflow.db.repositories.base import Repository


class BrandsRepository(Repository):
    def get(self, brand_id: UUID) -> Optional[Brand]:
        return self.session.get(Brand, brand_id)


class ClubsRepository(Repository):
    def get(self, club_id: UUID) -> Optional[Club]:
        return self.session.get(Club, club_id)
