"""Row-level access to sources, jobs, runs, and exclusions."""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from job_watch.errors import NotFoundError, PersistenceError
from job_watch.jobs.models import JobCandidate
from job_watch.models import STATUS_ERROR, STATUS_OK, STATUS_PENDING, Job, JobExclusion, JobRun, Source

logger = logging.getLogger("job_watch.storage")

UNTITLED = "Untitled"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _translate_errors(action: str):
    try:
        yield
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to {action}: {e}") from e


class JobStore:
    """Store operations used by the refresh engine, bound to one session.

    Writes are not committed until commit() is called, so a refresh can
    group its prune, inserts, and run record into one transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    # Sources

    def add_source(self, url: str) -> Source:
        with _translate_errors("add source"):
            source = Source(url=url, last_status=STATUS_PENDING)
            self.session.add(source)
            self.session.flush()
            return source

    def get_source(self, source_id: int) -> Source:
        with _translate_errors("load source"):
            source = self.session.get(Source, source_id)
        if source is None:
            raise NotFoundError(f"Source {source_id} not found")
        return source

    def get_source_by_url(self, url: str) -> Optional[Source]:
        with _translate_errors("load source"):
            return self.session.scalars(select(Source).where(Source.url == url)).first()

    def list_sources(self) -> list[Source]:
        with _translate_errors("list sources"):
            return list(self.session.scalars(select(Source).order_by(Source.created_at.desc(), Source.id.desc())))

    def delete_source(self, source_id: int) -> None:
        source = self.get_source(source_id)
        with _translate_errors("delete source"):
            self.session.delete(source)
            self.session.flush()

    def set_source_status(self, source_id: int, status: str, error: Optional[str] = None,
                          checked_at: Optional[datetime] = None) -> None:
        with _translate_errors("update source status"):
            self.session.execute(
                update(Source)
                .where(Source.id == source_id)
                .values(last_checked_at=checked_at or utcnow(), last_status=status, last_error=error)
            )

    # Jobs

    def list_jobs(self, source_id: Optional[int] = None, only_new: bool = False) -> list[Job]:
        query = select(Job)
        if source_id is not None:
            query = query.where(Job.source_id == source_id)
        if only_new:
            query = query.where(Job.is_new.is_(True))
        query = query.order_by(Job.first_seen_at.desc(), Job.id.desc())
        with _translate_errors("list jobs"):
            return list(self.session.scalars(query))

    def get_job(self, job_id: int) -> Job:
        with _translate_errors("load job"):
            job = self.session.get(Job, job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        return job

    def _insert_ignore(self, values: dict):
        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite.insert(Job).values(**values).on_conflict_do_nothing(
                index_elements=[Job.source_id, Job.job_key]
            )
        if dialect == "postgresql":
            return postgresql.insert(Job).values(**values).on_conflict_do_nothing(
                index_elements=[Job.source_id, Job.job_key]
            )
        return None

    def insert_job_if_absent(self, source_id: int, job: JobCandidate, seen_at: datetime) -> bool:
        """Insert the job unless (source_id, job_key) already exists.

        Returns True only when a new row was created.
        """
        values = {
            "source_id": source_id,
            "job_key": job.job_key,
            "title": job.title or UNTITLED,
            "company": job.company or None,
            "location": job.location or None,
            "url": job.url,
            "posted_at": job.posted_at or None,
            "first_seen_at": seen_at,
            "last_seen_at": seen_at,
            "is_new": True,
        }
        with _translate_errors("insert job"):
            stmt = self._insert_ignore(values)
            if stmt is not None:
                return self.session.execute(stmt).rowcount == 1

            exists = self.session.scalar(
                select(Job.id).where(Job.source_id == source_id, Job.job_key == job.job_key)
            )
            if exists is not None:
                return False
            self.session.execute(insert(Job).values(**values))
            return True

    def touch_job(self, source_id: int, job_key: str, seen_at: datetime) -> None:
        with _translate_errors("update job"):
            self.session.execute(
                update(Job)
                .where(Job.source_id == source_id, Job.job_key == job_key)
                .values(last_seen_at=seen_at)
            )

    def delete_job(self, job_id: int) -> Job:
        job = self.get_job(job_id)
        with _translate_errors("delete job"):
            self.session.delete(job)
            self.session.flush()
        return job

    def mark_source_seen(self, source_id: int) -> int:
        with _translate_errors("mark jobs seen"):
            result = self.session.execute(
                update(Job)
                .where(Job.source_id == source_id, Job.is_new.is_(True))
                .values(is_new=False)
            )
        return result.rowcount

    def prune_jobs(self, source_id: int, keep: Callable[[str], bool]) -> int:
        """Delete this source's jobs whose URL fails `keep`; returns the count."""
        with _translate_errors("prune jobs"):
            rows = self.session.execute(select(Job.id, Job.url).where(Job.source_id == source_id)).all()
            stale = [row.id for row in rows if not row.url or not keep(row.url)]
            if stale:
                self.session.execute(delete(Job).where(Job.id.in_(stale)))
        return len(stale)

    # Exclusions

    def is_excluded(self, source_id: int, job_key: str) -> bool:
        with _translate_errors("check exclusion"):
            found = self.session.scalar(
                select(JobExclusion.id).where(
                    JobExclusion.source_id == source_id, JobExclusion.job_key == job_key
                )
            )
        return found is not None

    def add_exclusion(self, source_id: int, job_key: str, job_url: str) -> None:
        if self.is_excluded(source_id, job_key):
            return
        with _translate_errors("add exclusion"):
            self.session.add(JobExclusion(source_id=source_id, job_key=job_key, job_url=job_url or ""))
            self.session.flush()

    # Runs and stats

    def record_run(self, source_id: int, ran_at: datetime, new_count: int = 0, total_count: int = 0,
                   status: str = STATUS_OK, error: Optional[str] = None) -> JobRun:
        """Append one run record for a source."""
        with _translate_errors("record run"):
            run = JobRun(
                source_id=source_id,
                ran_at=ran_at,
                new_count=new_count,
                total_count=total_count,
                status=status,
                error=error,
            )
            self.session.add(run)
            self.session.flush()
            return run

    def list_runs(self, source_id: Optional[int] = None, limit: int = 20) -> list[JobRun]:
        query = select(JobRun)
        if source_id is not None:
            query = query.where(JobRun.source_id == source_id)
        query = query.order_by(JobRun.id.desc()).limit(limit)
        with _translate_errors("list runs"):
            return list(self.session.scalars(query))

    def get_stats(self) -> dict:
        """Get database statistics."""
        stats = {}
        with _translate_errors("read stats"):
            stats["total_sources"] = self.session.scalar(select(func.count(Source.id))) or 0
            stats["total_jobs"] = self.session.scalar(select(func.count(Job.id))) or 0
            stats["new_jobs"] = self.session.scalar(
                select(func.count(Job.id)).where(Job.is_new.is_(True))
            ) or 0
            stats["excluded_jobs"] = self.session.scalar(select(func.count(JobExclusion.id))) or 0
            stats["total_runs"] = self.session.scalar(select(func.count(JobRun.id))) or 0
            stats["failed_sources"] = self.session.scalar(
                select(func.count(Source.id)).where(Source.last_status == STATUS_ERROR)
            ) or 0

            last = self.session.scalars(select(JobRun).order_by(JobRun.id.desc()).limit(1)).first()
            if last:
                stats["last_run"] = {
                    "source_id": last.source_id,
                    "ran_at": last.ran_at.isoformat() if last.ran_at else None,
                    "new_count": last.new_count,
                    "total_count": last.total_count,
                    "status": last.status,
                    "error": last.error,
                }
        return stats

    # Transactions

    def commit(self) -> None:
        with _translate_errors("commit"):
            self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
