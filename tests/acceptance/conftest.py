"""
Acceptance test fixtures — PostgreSQL testcontainer and a config file.

Reuses the same DDL and pattern as integration tests but scoped for acceptance.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from admin_revoker import cli as cli_module
from tests.integration.conftest import DDL, TRUNCATE_ALL, psycopg_url

RA_URL = "https://ra.example.invalid"
SA_URL = "https://sa.example.invalid"


@pytest.fixture(scope="session")
def acceptance_pg() -> Iterator[PostgresContainer]:
    """Start a PostgreSQL container for the acceptance test session."""
    with PostgresContainer("postgres:16-alpine") as pg:
        with psycopg.connect(psycopg_url(pg)) as conn:
            conn.execute(DDL)
            conn.commit()
        yield pg


@pytest.fixture()
def acceptance_dsn(acceptance_pg: PostgresContainer) -> str:
    """Return a psycopg-compatible DSN and truncate all tables before each test."""
    connection_url = psycopg_url(acceptance_pg)
    with psycopg.connect(connection_url) as conn:
        conn.execute(TRUNCATE_ALL)
        conn.commit()
    return connection_url


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "configure_structlog", lambda *args: None)


def write_config(tmp_path: Path, dsn: str, transport: str = "rest") -> Path:
    path = tmp_path / "revoker.json"
    path.write_text(
        json.dumps(
            {
                "database": {"dsn": dsn},
                "ra_service": {"url": RA_URL if transport == "rest" else f"{RA_URL}/rpc"},
                "sa_service": {"url": SA_URL if transport == "rest" else f"{SA_URL}/rpc"},
                "transport": transport,
                "admin_identity": "acceptance",
            }
        )
    )
    return path
