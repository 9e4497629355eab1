"""Shared fixtures: a fake psycopg2 connection and a settings file."""

import itertools

import pytest
import psycopg2

from pg2csv.core import db_query
from pg2csv.core.config import ENV_KEYS


class FakeCursor:
    """Plain cursors expose description after execute(); named ones after the first fetch."""

    def __init__(self, db, name=None):
        self._db = db
        self.name = name
        self.itersize = 2000
        self.description = None
        self.executed = []
        self.fetch_sizes = []
        self.closed = False
        self._rows = iter(())

    def _result_description(self):
        if self._db.columns is None:
            return None
        return [(name, None, None, None, None, None, None) for name in self._db.columns]

    def _generate(self):
        for row in self._db.rows:
            yield row
        if self._db.iter_error is not None:
            raise self._db.iter_error

    def execute(self, sql):
        self.executed.append(sql)
        if self.name is not None and self._db.declare_error is not None:
            raise self._db.declare_error
        if self._db.execute_error is not None:
            raise self._db.execute_error
        if not sql:
            raise psycopg2.ProgrammingError("can't execute an empty query")
        self._rows = self._generate()
        if self.name is None:
            self.description = self._result_description()

    def fetchmany(self, size):
        self.fetch_sizes.append(size)
        rows = list(itertools.islice(self._rows, size))
        self.description = self._result_description()
        return rows

    def __iter__(self):
        return self._rows

    def close(self):
        if self._db.cursor_close_error is not None:
            raise self._db.cursor_close_error
        self.closed = True


class FakeConnection:
    def __init__(self, db):
        self._db = db
        self.autocommit = False
        self.cursors = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self, name=None):
        cursor = FakeCursor(self._db, name=name)
        self.cursors.append(cursor)
        return cursor

    def commit(self):
        if self._db.commit_error is not None:
            raise self._db.commit_error
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


class FakeDatabase:
    """Records what was passed to psycopg2.connect and serves one result set."""

    def __init__(self):
        self.columns = []
        self.rows = []
        self.connect_error = None
        self.declare_error = None
        self.execute_error = None
        self.iter_error = None
        self.commit_error = None
        self.cursor_close_error = None
        self.dsns = []
        self.connections = []

    def connect(self, dsn):
        self.dsns.append(dsn)
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn

    @property
    def cursor(self):
        return self.connections[-1].cursors[-1]


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDatabase()
    monkeypatch.setattr(db_query.psycopg2, "connect", db.connect)
    return db


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "PG_HOSTNAME=db.example.com\n"
        "PG_PORT=5432\n"
        "PG_DBNAME=app\n"
        "PG_USERNAME=reporter\n"
        "PG_PASSWORD=s3cret\n"
        "SSL_MODE=require\n",
        encoding="utf-8",
    )
    return path
