from sqlalchemy.engine import make_url
from sqlmodel import Session, SQLModel, create_engine

from app.config import settings


def _engine_kwargs(url: str) -> dict:
    timeout = settings.external_call_timeout

    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False, "timeout": timeout}}

    return {
        "connect_args": {"connect_timeout": int(timeout)},
        "pool_timeout": timeout,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))


def create_db_and_tables():
    # import models so SQLModel registers tables
    from app.models.report import Report  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
