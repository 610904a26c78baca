from __future__ import annotations

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


DEFAULT_DATABASE_URL = "sqlite:///adr.db"


def database_url() -> str:
    return os.getenv("ADR_DATABASE_URL", DEFAULT_DATABASE_URL)


def build_engine(url: str | None = None) -> Engine:
    return create_engine(url or database_url(), echo=False, future=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, future=True)
