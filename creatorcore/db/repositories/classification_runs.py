from __future__ import annotations

from typing import List, Optional

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from creatorcore.db.enums import ClassificationRunStatusEnum
from creatorcore.db.models import GenreClassificationRun, utcnow
from creatorcore.db.repositories.base import Repository
from creatorcore.errors import RunAlreadyActiveError

COUNTER_FIELDS = (
    "total_candidates",
    "classified",
    "heuristic_hits",
    "search_hits",
    "cache_hits",
    "marked_unclassified",
    "marked_other",
    "failures",
    "search_calls",
)


class ClassificationRunsRepository(Repository):
    def get(self, run_id: int) -> Optional[GenreClassificationRun]:
        return self.session.get(GenreClassificationRun, run_id, populate_existing=True)

    def get_active(self) -> Optional[GenreClassificationRun]:
        stmt = select(GenreClassificationRun).where(
            GenreClassificationRun.status == ClassificationRunStatusEnum.running
        )
        return self.session.scalars(stmt).first()

    def start_run(self) -> GenreClassificationRun:
        """
        Create a run and move it from pending to running in one transaction.

        The transition only happens when no other run is running; otherwise
        the transaction is rolled back so no row is left behind.
        """
        run = GenreClassificationRun(status=ClassificationRunStatusEnum.pending, started_at=utcnow())
        self.session.add(run)
        try:
            self.session.flush()
            other = aliased(GenreClassificationRun)
            stmt = (
                update(GenreClassificationRun)
                .where(
                    GenreClassificationRun.id == run.id,
                    GenreClassificationRun.status == ClassificationRunStatusEnum.pending,
                    ~exists().where(other.status == ClassificationRunStatusEnum.running),
                )
                .values(status=ClassificationRunStatusEnum.running)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            if result.rowcount != 1:
                self.session.rollback()
                raise RunAlreadyActiveError("A genre classification run is already in progress")
            self.session.commit()
        except IntegrityError as exc:
            # Partial unique index on status='running' caught a concurrent start.
            self.session.rollback()
            raise RunAlreadyActiveError("A genre classification run is already in progress") from exc
        self.session.refresh(run)
        return run

    def increment(self, run_id: int, **deltas: int) -> bool:
        """Add to counters of a running run. Completed runs are frozen and left untouched."""
        values = {}
        for field, delta in deltas.items():
            if field not in COUNTER_FIELDS:
                raise ValueError(f"Unknown run counter: {field}")
            if delta < 0:
                raise ValueError("Run counters never decrease")
            if delta:
                values[field] = getattr(GenreClassificationRun, field) + delta
        if not values:
            return False
        stmt = (
            update(GenreClassificationRun)
            .where(
                GenreClassificationRun.id == run_id,
                GenreClassificationRun.status == ClassificationRunStatusEnum.running,
                GenreClassificationRun.completed_at.is_(None),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount == 1

    def complete(
        self,
        run_id: int,
        *,
        status: ClassificationRunStatusEnum,
        remaining: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        """Set the terminal status and completed_at exactly once."""
        if status not in (ClassificationRunStatusEnum.success, ClassificationRunStatusEnum.failed):
            raise ValueError(f"{status.value} is not a terminal run status")
        values: dict = {"status": status, "completed_at": utcnow()}
        if remaining is not None:
            values["remaining"] = remaining
        if error_message is not None:
            values["error_message"] = error_message[:5000]
        stmt = (
            update(GenreClassificationRun)
            .where(
                GenreClassificationRun.id == run_id,
                GenreClassificationRun.status == ClassificationRunStatusEnum.running,
                GenreClassificationRun.completed_at.is_(None),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount == 1

    def list_recent(self, limit: int = 10) -> List[GenreClassificationRun]:
        stmt = (
            select(GenreClassificationRun)
            .order_by(GenreClassificationRun.started_at.desc(), GenreClassificationRun.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt).all())

    def list_recent_failures(self, limit: int = 5) -> List[GenreClassificationRun]:
        stmt = (
            select(GenreClassificationRun)
            .where(GenreClassificationRun.status == ClassificationRunStatusEnum.failed)
            .order_by(GenreClassificationRun.started_at.desc(), GenreClassificationRun.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt).all())

    def latest_success(self) -> Optional[GenreClassificationRun]:
        stmt = (
            select(GenreClassificationRun)
            .where(GenreClassificationRun.status == ClassificationRunStatusEnum.success)
            .order_by(GenreClassificationRun.completed_at.desc(), GenreClassificationRun.id.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()
