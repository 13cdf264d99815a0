from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from jobsync.adapters.sqlalchemy import (
    SqlAlchemyJobStore,
    SqlAlchemyProfileRepository,
    create_all_tables,
)
from jobsync.adapters.sqlalchemy.unit_of_work import shutdown, startup

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JOBSYNC_HTTP_CACHE", "off")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def sqlite_job_store(session_factory: sessionmaker[Session]) -> SqlAlchemyJobStore:
    return SqlAlchemyJobStore(session_factory=session_factory)


@pytest.fixture
def sqlite_profile_repository(
    session_factory: sessionmaker[Session],
) -> SqlAlchemyProfileRepository:
    return SqlAlchemyProfileRepository(session_factory=session_factory)


@pytest.fixture
def started_adapter(sqlite_engine: Engine) -> Iterator[Engine]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield sqlite_engine
    finally:
        shutdown()
