from santa.db.models import (
    Assignment,
    Base,
    Draw,
    DrawStatus,
    Exclusion,
    Member,
    NAME_MAX_LENGTH,
)
from santa.db.session import SessionLocal, dispose_engine, get_session, init_engine

__all__ = [
    "Assignment",
    "Base",
    "Draw",
    "DrawStatus",
    "Exclusion",
    "Member",
    "NAME_MAX_LENGTH",
    "SessionLocal",
    "dispose_engine",
    "get_session",
    "init_engine",
]
