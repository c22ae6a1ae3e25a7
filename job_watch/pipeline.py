"""Refresh engine: reconcile fresh extractions with stored jobs per source."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from job_watch.config import AppConfig
from job_watch.errors import JobWatchError, RefreshInProgressError
from job_watch.fetch.guard import ensure_public
from job_watch.jobs.parser import ParsedSource, parse_source_url, validate_source_url
from job_watch.models import STATUS_ERROR, STATUS_OK, Job, Source
from job_watch.storage.database import JobStore, utcnow

logger = logging.getLogger("job_watch.pipeline")

ParseFn = Callable[[str, AppConfig], ParsedSource]


@dataclass
class RefreshOutcome:
    source_id: int
    new_count: int = 0
    total_count: int = 0
    status: str = STATUS_OK
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sourceId": self.source_id,
            "newCount": self.new_count,
            "totalCount": self.total_count,
            "status": self.status,
            "error": self.error,
            "warnings": self.warnings,
        }


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


class RefreshEngine:
    """The only writer of sources, jobs, and runs.

    Each store operation opens its own session. A full refresh holds a
    process-wide lock; a second full refresh while one runs is rejected.
    """

    def __init__(
        self,
        config: AppConfig,
        session_factory: sessionmaker,
        parse: ParseFn = parse_source_url,
        guard: Callable[[str], None] = ensure_public,
    ):
        self.config = config
        self.session_factory = session_factory
        self.parse = parse
        self.guard = guard
        self._refresh_lock = threading.Lock()

    @property
    def refresh_in_progress(self) -> bool:
        return self._refresh_lock.locked()

    def refresh_source(self, source_id: int) -> RefreshOutcome:
        """Fetch, extract, and reconcile one source.

        Existing rows are left untouched when anything fails; the failure is
        recorded as an error run and re-raised.
        """
        db = self.session_factory()
        store = JobStore(db)
        try:
            source = store.get_source(source_id)
            source_url = source.url
            ran_at = utcnow()

            try:
                parsed = self.parse(source_url, self.config)
                new_count = self._apply(store, source_id, parsed, ran_at)
                total_count = len(parsed.jobs)

                store.set_source_status(source_id, STATUS_OK, None, checked_at=ran_at)
                store.record_run(source_id, ran_at, new_count, total_count, STATUS_OK)
                store.commit()
            except Exception as e:
                store.rollback()
                message = _error_message(e)
                logger.error("Refresh failed for source %d (%s): %s", source_id, source_url, message)
                self._record_failure(store, source_id, ran_at, message)
                raise

            logger.info(
                "Refreshed source %d (%s): %d new of %d",
                source_id, source_url, new_count, total_count,
            )
            return RefreshOutcome(
                source_id=source_id,
                new_count=new_count,
                total_count=total_count,
                status=STATUS_OK,
                warnings=list(parsed.warnings),
            )
        finally:
            db.close()

    def _apply(self, store: JobStore, source_id: int, parsed: ParsedSource, ran_at) -> int:
        adapter = parsed.adapter
        if adapter is not None and adapter.listing_pattern is not None:
            pruned = store.prune_jobs(source_id, adapter.is_listing_url)
            if pruned:
                logger.info("Pruned %d off-pattern jobs for source %d", pruned, source_id)

        new_count = 0
        for job in parsed.jobs:
            job_key = job.job_key
            if store.is_excluded(source_id, job_key):
                continue
            if store.insert_job_if_absent(source_id, job, ran_at):
                new_count += 1
            else:
                store.touch_job(source_id, job_key, ran_at)
        return new_count

    def _record_failure(self, store: JobStore, source_id: int, ran_at, message: str) -> None:
        try:
            store.set_source_status(source_id, STATUS_ERROR, message, checked_at=ran_at)
            store.record_run(source_id, ran_at, 0, 0, STATUS_ERROR, message)
            store.commit()
        except JobWatchError as e:
            store.rollback()
            logger.error("Could not record failed run for source %d: %s", source_id, e)

    def refresh_all(self) -> list[RefreshOutcome]:
        """Refresh every source in turn; one failure never stops the batch."""
        if not self._refresh_lock.acquire(blocking=False):
            raise RefreshInProgressError("A refresh is already running")

        start = time.time()
        try:
            source_ids = [source.id for source in self.list_sources()]
            logger.info("Refreshing %d sources", len(source_ids))

            outcomes = []
            for source_id in source_ids:
                try:
                    outcomes.append(self.refresh_source(source_id))
                except Exception as e:
                    outcomes.append(RefreshOutcome(
                        source_id=source_id,
                        status=STATUS_ERROR,
                        error=_error_message(e),
                    ))

            failed = sum(1 for o in outcomes if o.status == STATUS_ERROR)
            logger.info(
                "Refresh complete: %d sources, %d new jobs, %d failed (%.1fs)",
                len(outcomes), sum(o.new_count for o in outcomes), failed, time.time() - start,
            )
            return outcomes
        finally:
            self._refresh_lock.release()

    def add_source(self, url: str) -> tuple[Source, RefreshOutcome]:
        """Track a URL (or reuse the existing source for it) and run its first refresh.

        A failed first refresh is reported in the outcome; the source stays tracked.
        """
        source_url, host = validate_source_url(url)
        self.guard(host)

        with self.session_factory() as db:
            store = JobStore(db)
            source = store.get_source_by_url(source_url)
            if source is None:
                source = store.add_source(source_url)
                store.commit()
                logger.info("Added source %d: %s", source.id, source_url)
            source_id = source.id

        try:
            outcome = self.refresh_source(source_id)
        except Exception as e:
            outcome = RefreshOutcome(source_id=source_id, status=STATUS_ERROR, error=_error_message(e))

        with self.session_factory() as db:
            source = JobStore(db).get_source(source_id)
        return source, outcome

    def delete_source(self, source_id: int) -> None:
        """Remove a source with all of its jobs, runs, and exclusions."""
        with self.session_factory() as db:
            store = JobStore(db)
            store.delete_source(source_id)
            store.commit()
        logger.info("Deleted source %d", source_id)

    def mark_seen(self, source_id: int) -> int:
        with self.session_factory() as db:
            store = JobStore(db)
            store.get_source(source_id)
            count = store.mark_source_seen(source_id)
            store.commit()
        return count

    def exclude_job(self, job_id: int) -> Job:
        """Delete a job and tombstone its key so later refreshes skip it."""
        with self.session_factory() as db:
            store = JobStore(db)
            job = store.delete_job(job_id)
            store.add_exclusion(job.source_id, job.job_key, job.url)
            store.commit()
        logger.info("Excluded job %d (%s)", job_id, job.url)
        return job

    def list_sources(self) -> list[Source]:
        with self.session_factory() as db:
            return JobStore(db).list_sources()

    def list_jobs(self, source_id: Optional[int] = None, only_new: bool = False) -> list[Job]:
        with self.session_factory() as db:
            return JobStore(db).list_jobs(source_id=source_id, only_new=only_new)

    def get_stats(self) -> dict:
        with self.session_factory() as db:
            return JobStore(db).get_stats()
