"""Shared fixtures: fake HTTP sessions and temporary databases."""

import json
import os
import tempfile

import pytest
from requests.structures import CaseInsensitiveDict

from job_watch.config import AppConfig
from job_watch.models import create_db_engine, create_session_factory, init_db

PUBLIC_IP = "93.184.216.34"


class FakeResponse:
    """Stand-in for a streamed requests.Response."""

    def __init__(self, status_code=200, body=b"", headers=None, cookies=None):
        self.status_code = status_code
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.body = body
        self.headers = CaseInsensitiveDict(headers or {})
        self.cookies = cookies or {}
        self.closed = False

    @classmethod
    def json_body(cls, payload, status_code=200):
        return cls(status_code, json.dumps(payload), {"Content-Type": "application/json"})

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]

    def close(self):
        self.closed = True


class BrokenStreamResponse(FakeResponse):
    """Sends the start of its body, then fails the way a dropped socket does."""

    def __init__(self, error, body=b"<html>"):
        super().__init__(200, body)
        self.error = error

    def iter_content(self, chunk_size=1):
        yield self.body
        raise self.error


class FakeSession:
    """Routes requests by exact URL to queued responses and records every call."""

    def __init__(self, routes=None):
        self.routes = {url: list(r) if isinstance(r, list) else [r] for url, r in (routes or {}).items()}
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        queue = self.routes.get(url)
        if not queue:
            raise AssertionError(f"Unexpected {method} {url}")
        if isinstance(queue[0], Exception):
            raise queue.pop(0)
        # The last response repeats once the queue is drained
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)

    def urls(self, method=None):
        return [url for m, url, _ in self.calls if method is None or m == method]


@pytest.fixture
def app_config():
    """Config with no providers and a throwaway data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield AppConfig(
            data_dir=tmpdir,
            log_dir=os.path.join(tmpdir, "logs"),
            database_url=f"sqlite:///{os.path.join(tmpdir, 'test.db')}",
        )


@pytest.fixture
def session_factory(app_config):
    engine = create_db_engine(app_config.database_url)
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def no_sleep(monkeypatch):
    waits = []
    monkeypatch.setattr("job_watch.fetch.direct.time.sleep", waits.append)
    return waits
