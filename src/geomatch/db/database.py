"""Database engine initialization and connection management."""

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .schema import Base

IN_MEMORY = ":memory:"


def init_database(db_path: str) -> sessionmaker[Any]:
    """Initialize database and return session factory.

    ``":memory:"`` gives one in-memory connection shared by every session.
    Sessions on it must not overlap, so it suits single-threaded use only;
    concurrent callers need a file path.
    """
    if db_path == IN_MEMORY:
        engine = create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{db_path}",
            echo=False,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    Base.metadata.create_all(engine)

    return sessionmaker(bind=engine, expire_on_commit=False)
