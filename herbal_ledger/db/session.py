# herbal_ledger/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from herbal_ledger.core.config import settings


def make_engine(db_uri: str, *, echo: bool = False) -> Engine:
    """
    SQLite connections are handed between the event loop and worker
    threads, so same-thread checks are disabled. In-memory databases
    must share one connection or every thread would see an empty DB.
    """
    if db_uri.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in db_uri or db_uri.rstrip("/") in {"sqlite:", "sqlite+pysqlite:"}:
            kwargs["poolclass"] = StaticPool
        return create_engine(db_uri, echo=echo, future=True, **kwargs)

    return create_engine(
        db_uri,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=280,
        future=True,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
        future=True,
    )


engine: Engine = make_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
