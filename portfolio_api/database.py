"""Database engine and helpers.

This module builds the SQLModel/SQLAlchemy engine from the configured
`DATABASE_URL` and provides the per-request session dependency. Each
entity lives in its own table; the engine is owned by the application
state created at startup so tests can point at a throwaway database.
"""

import json

from fastapi import Request
from sqlmodel import SQLModel, create_engine, Session


def build_engine(database_url: str):
    """Create an engine for `database_url`.

    SQLite connections are shared across the server threadpool, so the
    same-thread check is disabled for them. JSON columns keep non-ASCII
    text unescaped.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url,
        echo=False,
        connect_args=connect_args,
        json_serializer=lambda obj: json.dumps(obj, ensure_ascii=False),
    )


def create_db_and_tables(engine):
    """Create database tables using SQLModel metadata.

    This is intended for local development and lightweight deployments;
    larger installations should rely on a proper migration tool
    (alembic) instead.
    """
    from . import models  # noqa: F401  registers the tables on the metadata

    SQLModel.metadata.create_all(engine)


def get_session(request: Request):
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session bound to the application's engine and
    ensures it is closed when the request scope finishes.
    """
    with Session(request.app.state.engine) as session:
        yield session
