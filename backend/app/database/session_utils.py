"""
Dialect checks for code paths that lock rows while reserving capacity or stock.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

_ROW_LOCK_DIALECTS = {"postgresql", "mysql", "oracle"}


def get_dialect_name(session: Session) -> str:
    return session.get_bind().dialect.name


def supports_row_locks(session: Session) -> bool:
    """True when ``SELECT ... FOR UPDATE`` actually locks rows on this dialect."""
    return get_dialect_name(session) in _ROW_LOCK_DIALECTS
