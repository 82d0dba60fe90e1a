"""Engine and session factory built from the settings handed to ``create_app``."""
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .core.config import Settings


def build_engine(settings: Settings) -> Engine:
    url = settings.database_url
    # sqlite connections are shared with the threadpool that runs sync routes
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args, future=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db(request: Request) -> Generator[Session, None, None]:
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    # Registers models on Base.metadata before create_all()
    from .models import Base

    Base.metadata.create_all(bind=engine)
