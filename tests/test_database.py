"""Tests for the job store."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from job_watch.errors import NotFoundError
from job_watch.jobs.models import JobCandidate
from job_watch.models import JobExclusion, JobRun
from job_watch.storage.database import JobStore


@pytest.fixture
def store(session_factory):
    with session_factory() as session:
        yield JobStore(session)


@pytest.fixture
def source(store):
    source = store.add_source("https://example.com/careers")
    store.commit()
    return source


@pytest.fixture
def sample_job():
    return JobCandidate(
        title="Product Designer",
        company="Acme Inc",
        url="https://example.com/jobs/1?utm_source=feed",
        location="Remote",
    )


T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class TestSources:
    def test_add_and_get(self, store, source):
        assert source.id is not None
        assert source.last_status == "pending"
        assert store.get_source(source.id).url == "https://example.com/careers"
        assert store.get_source_by_url("https://example.com/careers").id == source.id

    def test_missing_source_raises(self, store):
        with pytest.raises(NotFoundError):
            store.get_source(999)

    def test_set_status(self, store, source):
        store.set_source_status(source.id, "error", "boom", checked_at=T0)
        store.commit()
        store.session.expire_all()
        refreshed = store.get_source(source.id)
        assert refreshed.last_status == "error"
        assert refreshed.last_error == "boom"
        assert refreshed.last_checked_at is not None


class TestJobs:
    def test_insert_then_ignore(self, store, source, sample_job):
        assert store.insert_job_if_absent(source.id, sample_job, T0) is True
        assert store.insert_job_if_absent(source.id, sample_job, T0 + timedelta(days=1)) is False
        store.commit()

        jobs = store.list_jobs(source.id)
        assert len(jobs) == 1
        assert jobs[0].is_new is True
        assert jobs[0].job_key == "https://example.com/jobs/1::product designer::acme inc::remote"

    def test_tracking_params_collapse(self, store, source, sample_job):
        other = JobCandidate(
            title="PRODUCT DESIGNER",
            company="acme inc",
            url="https://example.com/jobs/1#apply",
            location="remote",
        )
        store.insert_job_if_absent(source.id, sample_job, T0)
        assert store.insert_job_if_absent(source.id, other, T0) is False

    def test_touch_updates_last_seen_only(self, store, source, sample_job):
        store.insert_job_if_absent(source.id, sample_job, T0)
        later = T0 + timedelta(hours=5)
        store.touch_job(source.id, sample_job.job_key, later)
        store.commit()
        store.session.expire_all()

        [job] = store.list_jobs(source.id)
        assert job.last_seen_at.replace(tzinfo=None) == later.replace(tzinfo=None)
        assert job.first_seen_at.replace(tzinfo=None) == T0.replace(tzinfo=None)
        assert job.is_new is True

    def test_untitled_default(self, store, source):
        store.insert_job_if_absent(source.id, JobCandidate(title="", url="https://example.com/jobs/2"), T0)
        assert store.list_jobs(source.id)[0].title == "Untitled"

    def test_mark_seen_scoped_to_source(self, store, source, sample_job):
        other = store.add_source("https://other.com/jobs")
        store.insert_job_if_absent(source.id, sample_job, T0)
        store.insert_job_if_absent(other.id, sample_job, T0)
        store.commit()

        assert store.mark_source_seen(source.id) == 1
        store.commit()
        store.session.expire_all()

        assert store.list_jobs(source.id, only_new=True) == []
        assert len(store.list_jobs(other.id, only_new=True)) == 1

    def test_prune_keeps_matching_urls(self, store, source):
        store.insert_job_if_absent(source.id, JobCandidate(title="Hub", url="https://example.com/teams"), T0)
        store.insert_job_if_absent(source.id, JobCandidate(title="Job", url="https://example.com/jobs/3"), T0)
        pattern = re.compile(r"/jobs/")
        assert store.prune_jobs(source.id, lambda url: bool(pattern.search(url))) == 1
        assert [j.title for j in store.list_jobs(source.id)] == ["Job"]

    def test_long_text_fields_stored_intact(self, store, source):
        long_location = "Remote within " + ", ".join(["Europe"] * 80)
        job = JobCandidate(title="Designer", url="https://example.com/jobs/9", location=long_location)
        store.insert_job_if_absent(source.id, job, T0)
        store.commit()
        assert store.list_jobs(source.id)[0].location == long_location

    def test_delete_missing_job_raises(self, store):
        with pytest.raises(NotFoundError):
            store.delete_job(12345)


class TestExclusions:
    def test_add_and_check(self, store, source, sample_job):
        assert not store.is_excluded(source.id, sample_job.job_key)
        store.add_exclusion(source.id, sample_job.job_key, sample_job.url)
        store.add_exclusion(source.id, sample_job.job_key, sample_job.url)
        store.commit()
        assert store.is_excluded(source.id, sample_job.job_key)
        assert store.session.query(JobExclusion).count() == 1


class TestRunsAndStats:
    def test_record_run(self, store, source):
        store.record_run(source.id, T0, new_count=3, total_count=10)
        store.commit()

        stats = store.get_stats()
        assert stats["total_runs"] == 1
        assert stats["last_run"]["new_count"] == 3
        assert stats["last_run"]["status"] == "ok"

    def test_record_failed_run(self, store, source):
        store.record_run(source.id, T0, status="error", error="Connection timeout")
        store.commit()
        assert store.get_stats()["last_run"]["error"] == "Connection timeout"
        assert [r.status for r in store.list_runs(source.id)] == ["error"]

    def test_stats_empty_db(self, store):
        stats = store.get_stats()
        assert stats["total_jobs"] == 0
        assert stats["total_runs"] == 0
        assert "last_run" not in stats


class TestCascade:
    def test_delete_source_removes_children(self, store, source, sample_job):
        store.insert_job_if_absent(source.id, sample_job, T0)
        store.add_exclusion(source.id, "gone", "https://example.com/gone")
        store.record_run(source.id, T0, 1, 1)
        store.commit()

        store.delete_source(source.id)
        store.commit()

        assert store.list_jobs() == []
        assert store.session.query(JobRun).count() == 0
        assert store.session.query(JobExclusion).count() == 0
