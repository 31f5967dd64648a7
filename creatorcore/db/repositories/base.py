from typing import Union
from uuid import UUID

from sqlalchemy.orm import Session


def as_uuid(value: Union[str, UUID]) -> UUID:
    """Auth context carries org ids as strings; Uuid columns bind UUID objects."""
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


class Repository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def upsert_statement(self, model):
        """Dialect insert that supports ``on_conflict_do_update``."""
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(f"Upsert is not supported for dialect {dialect!r}")
        return insert(model)
