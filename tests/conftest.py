"""
Pytest configuration and fixtures
"""
import pytest

from engagement.series import Bucket
from utils.config_loader import EngagementSettings


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self._rows = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.conn.executed.append((sql, params))
        if sql.startswith("SET"):
            return
        if self.conn.errors:
            raise self.conn.errors.pop(0)
        rows = self.conn.rows
        self._rows = rows(params) if callable(rows) else list(rows)

    def fetchall(self):
        return self._rows


class FakeConnection:
    """Stands in for a psycopg2 connection; records every statement."""

    def __init__(self, rows=(), errors=None):
        self.rows = rows
        self.errors = list(errors or [])
        self.executed = []
        self.rollbacks = 0
        self.closed = False

    def cursor(self):
        return FakeCursor(self)

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True

    @property
    def queries(self):
        return [(sql, params) for sql, params in self.executed if not sql.startswith("SET")]


@pytest.fixture
def fake_connection():
    return FakeConnection


@pytest.fixture
def settings():
    return EngagementSettings(display_period=604800, user_history=7257600, table_prefix="mdl_", max_workers=2)


@pytest.fixture
def weekly_buckets():
    """Three consecutive weeks, newest first."""
    week = 604800
    base = 1700000000
    return [
        Bucket(start=base + 2 * week, end=base + 3 * week, count=4, sum=3.0, avg=0.5, stddev=0.2),
        Bucket(start=base + week, end=base + 2 * week, count=4, sum=1.0, avg=0.4, stddev=0.1),
        Bucket(start=base, end=base + week, count=4, sum=0.0, avg=None, stddev=None),
    ]
