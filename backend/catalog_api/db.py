"""Engine construction for the catalog SQLite database."""
from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import Engine, make_url
from sqlmodel import SQLModel, create_engine

from . import models  # noqa: F401  (registers tables on the metadata)
from .settings import CatalogSettings


def create_engine_from_settings(settings: CatalogSettings) -> Engine:
    """Build the engine, creating the SQLite file's directory when needed."""

    url = make_url(settings.database_url)
    connect_args: dict[str, object] = {}
    if url.get_backend_name() == "sqlite":
        # stores run in asyncio.to_thread workers
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, echo=settings.database_echo, connect_args=connect_args)


def init_database(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
