"""
Integration test fixtures — PostgreSQL testcontainer and schema setup.

Provides a real PostgreSQL instance for each test session via testcontainers.
Creates the certificates table the revoker reads. Each test gets a clean
table via truncation and a helper to seed rows.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from admin_revoker.domain.models import CertificateRecord

DDL = """
CREATE TABLE certificates (
    id               BIGSERIAL PRIMARY KEY,
    registration_id  BIGINT NOT NULL,
    serial           VARCHAR(255) NOT NULL UNIQUE,
    digest           VARCHAR(255),
    der              BYTEA NOT NULL,
    issued           TIMESTAMP WITHOUT TIME ZONE DEFAULT now(),
    expires          TIMESTAMP WITHOUT TIME ZONE
);

CREATE INDEX certificates_registration_id ON certificates (registration_id);
"""

TRUNCATE_ALL = """
TRUNCATE certificates;
"""

INSERT_CERTIFICATE = """
INSERT INTO certificates (serial, registration_id, der) VALUES (%s, %s, %s)
"""

SeedFn = Callable[[Iterable[CertificateRecord]], None]


def psycopg_url(container: PostgresContainer) -> str:
    return container.get_connection_url().replace("postgresql+psycopg2", "postgresql")


def seed_certificates(dsn: str, records: Iterable[CertificateRecord]) -> None:
    with psycopg.connect(dsn) as conn:
        for record in records:
            conn.execute(INSERT_CERTIFICATE, (record.serial, record.registration_id, record.der))
        conn.commit()


@pytest.fixture(scope="session")
def postgres_container() -> Iterator[PostgresContainer]:
    """Start a PostgreSQL container for the entire test session."""
    with PostgresContainer("postgres:16-alpine") as pg:
        with psycopg.connect(psycopg_url(pg)) as conn:
            conn.execute(DDL)
            conn.commit()
        yield pg


@pytest.fixture()
def dsn(postgres_container: PostgresContainer) -> str:
    """Return a psycopg-compatible DSN and truncate all tables before each test."""
    connection_url = psycopg_url(postgres_container)
    with psycopg.connect(connection_url) as conn:
        conn.execute(TRUNCATE_ALL)
        conn.commit()
    return connection_url


@pytest.fixture()
def seed(dsn: str) -> SeedFn:
    return lambda records: seed_certificates(dsn, records)
