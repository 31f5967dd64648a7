from typing import Optional

from sqlalchemy import select

from creatorcore.db.models import Org
from creatorcore.db.repositories.base import Repository


class OrgsRepository(Repository):
    def get_by_external_id(self, external_id: str) -> Optional[Org]:
        stmt = select(Org).where(Org.external_id == external_id)
        return self.session.scalars(stmt).first()

    def create(self, name: str, external_id: Optional[str] = None) -> Org:
        return self.save(Org(name=name, external_id=external_id))
