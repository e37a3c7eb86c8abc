"""Database engine initialization and connection management."""

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from .schema import Base, ServiceMetadata

SCHEMA_VERSION = "1.0.0"


def init_database(database_url: str) -> sessionmaker[Any]:
    """Initialize database and return session factory."""
    url = make_url(database_url)
    connect_args: dict[str, Any] = {}

    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            # Ensure parent directory exists
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)

    session_maker = sessionmaker(bind=engine)

    with session_maker() as session:
        schema_version = session.get(ServiceMetadata, "schema_version")
        if not schema_version:
            session.add(ServiceMetadata(key="schema_version", value=SCHEMA_VERSION))
            session.commit()

    return session_maker
