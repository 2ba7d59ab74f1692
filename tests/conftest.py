"""Shared fixtures: a SQLite provider with the sample schema in tmp_path."""

import pytest

from rowbinder import RecordRepository, SQLiteConnectionProvider
from sample_records import SCHEMA_SQL


def run_sql(provider, sql, params=()):
    """Run raw SQL on the shop database and return all rows."""
    conn = provider.get_connection("shop")
    try:
        cur = conn.execute(sql, params)
        rows = cur.fetchall()
        conn.commit()
        return rows
    finally:
        provider.release_connection(conn)


@pytest.fixture
def provider(tmp_path):
    provider = SQLiteConnectionProvider(str(tmp_path))
    conn = provider.get_connection("shop")
    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        provider.release_connection(conn)
    return provider


@pytest.fixture
def repo(provider):
    return RecordRepository(provider)


@pytest.fixture
def raw_sql(provider):
    def run(sql, params=()):
        return run_sql(provider, sql, params)
    return run
