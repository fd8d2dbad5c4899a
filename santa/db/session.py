from __future__ import annotations

from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from santa.db.models import Base

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

_engine: Optional[Engine] = None


def init_engine(database_url: str) -> Engine:
    global _engine

    url = make_url(database_url)
    options = {"future": True}
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # every session must see the same in-memory database
        options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        options["pool_pre_ping"] = True

    engine = create_engine(url, **options)
    Base.metadata.create_all(engine)
    SessionLocal.configure(bind=engine)
    _engine = engine
    return engine


def dispose_engine() -> None:
    global _engine

    if _engine is None:
        return
    _engine.dispose()
    SessionLocal.configure(bind=None)
    _engine = None


def _ensure_initialized() -> None:
    if SessionLocal.kw.get("bind") is None:
        raise RuntimeError("Database engine not initialized. Call init_engine() before use.")


@contextmanager
def get_session():
    _ensure_initialized()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
