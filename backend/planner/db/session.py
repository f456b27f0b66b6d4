from __future__ import annotations

from collections.abc import Callable, Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from planner.core.config import settings

SessionFactory = Callable[[], Session]


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.database_url)


def session_factory_for(bind: Engine) -> SessionFactory:
    def _factory() -> Session:
        return Session(bind, expire_on_commit=False)

    return _factory


session_maker = session_factory_for(engine)


def init_db(bind: Engine | None = None) -> None:
    # Import models so their tables are registered on the metadata.
    import planner.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session() -> Iterator[Session]:
    with session_maker() as session:
        yield session
