"""Database engine and session factory for the SQL history backend"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from finpulse_gateway.infrastructure.database.models import Base


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite gets thread-sharing, other drivers a bounded pool"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # single shared connection, otherwise each session sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    """Create tables if missing and return a session factory bound to engine"""
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
