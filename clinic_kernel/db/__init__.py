"""Database layer - engine, session helpers and the declarative base."""

from clinic_kernel.db.base import Base, LongText, Money, RecordId, ShortText
from clinic_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "LongText",
    "Money",
    "RecordId",
    "ShortText",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
