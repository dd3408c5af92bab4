"""Unit of Work abstractions and concrete implementations.

Re-exports the SQLAlchemy-backed units of work used by the auth service,
alongside the abstract contract service layers depend on.
"""

from .base import UnitOfWork
from .sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

__all__ = [
    "UnitOfWork",
    "SQLAlchemyUnitOfWork",
    "SQLAlchemyReadOnlyUnitOfWork",
]
