# -*- coding: utf-8 -*-
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

SQLITE_BUSY_TIMEOUT_SECONDS = 30


def make_engine(dsn: str) -> Engine:
    url = make_url(dsn)
    if url.get_backend_name() == "sqlite":
        connect_args = {"timeout": SQLITE_BUSY_TIMEOUT_SECONDS, "check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            # one shared connection, otherwise every thread sees its own empty database
            return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        # concurrent writers queue on the database lock instead of failing fast
        return create_engine(url, connect_args=connect_args)

    engine = create_engine(
        url,
        pool_size=20,
        max_overflow=40,
        pool_timeout=5,
        pool_recycle=1800,
        pool_pre_ping=True,
    )

    if url.get_backend_name() == "postgresql":

        @event.listens_for(engine, "connect")
        def set_statement_timeout(dbapi_connection, connection_record):  # pragma: no cover - driver specific
            cursor = dbapi_connection.cursor()
            cursor.execute("SET statement_timeout TO 2000")
            cursor.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
