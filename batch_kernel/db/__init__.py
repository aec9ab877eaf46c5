"""Database layer - engine creation, isolation levels, transactional scope."""

from batch_kernel.db.engine import (
    Isolation,
    create_engine_from_url,
    is_embedded,
    session_scope,
    supports_isolation,
)

__all__ = [
    "Isolation",
    "create_engine_from_url",
    "is_embedded",
    "session_scope",
    "supports_isolation",
]
