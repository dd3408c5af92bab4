"""Generic repository base for SQLAlchemy 2.x.

Persistence-only concerns shared by the identity repositories:
- Primary-key and equality-filter lookups.
- Safe sorting with a whitelist mapping and a primary-key tiebreaker.
- Safe update helpers with per-repository updatable-field whitelists.
- No business logic, no commit/rollback; services own transactions.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, and_, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from mystorage_auth.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


def parse_sort_tokens(raw: Iterable[str]) -> list[tuple[str, bool]]:
    """Parse public sort tokens into ``(field, is_desc)`` tuples.

    :param raw: Public tokens like ``["-created_at", "email"]``.
    :type raw: Iterable[str]
    :returns: List of ``(field_name, is_desc)`` tokens.
    :rtype: list[tuple[str, bool]]
    """
    parsed: list[tuple[str, bool]] = []
    for token in raw:
        is_desc = token.startswith("-")
        field = (token[1:] if is_desc else token).strip()
        if field:
            parsed.append((field, is_desc))
    return parsed


class BaseRepository(Generic[E]):
    """Generic, persistence-only repository for a single aggregate.

    Subclasses MUST define ``model``. They MAY override ``_sortable_fields``,
    ``_filterable_fields`` and ``_updatable_fields``.

    This class NEVER opens, commits or rolls back transactions.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the repository with an optional SQLAlchemy session.

        :param session: Session shared across the Unit of Work scope; falls
            back to the Flask-scoped session when omitted.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the injected session, or the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    # ------------------------------ Extensibility ----------------------------

    def _pk_attr(self) -> InstrumentedAttribute[Any] | None:
        return getattr(self.model, "id", None)

    def _sortable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        """Whitelist mapping of public sort keys to model attributes."""
        return {}

    def _filterable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        """Whitelist of equality-filterable fields; unknown keys are ignored."""
        return {}

    def _updatable_fields(self) -> set[str]:
        """Whitelist of keys that may be assigned through :meth:`update`."""
        return set()

    # ------------------------------ Internals --------------------------------

    def _apply_equality_filters(
        self, stmt: Select[Any], filters: Mapping[str, Any] | None
    ) -> Select[Any]:
        if not filters:
            return stmt
        allowed = self._filterable_fields()
        clauses = [allowed[k] == v for k, v in filters.items() if k in allowed]
        return stmt.where(and_(*clauses)) if clauses else stmt

    def _apply_sorting(self, stmt: Select[Any], tokens: Iterable[str]) -> Select[Any]:
        """Apply whitelisted ``ORDER BY`` clauses, then the PK as tiebreaker.

        :param stmt: Base selectable.
        :type stmt: :class:`sqlalchemy.sql.Select`
        :param tokens: Public sort tokens (e.g., ``["-created_at"]``).
        :type tokens: Iterable[str]
        :rtype: :class:`sqlalchemy.sql.Select`
        """
        sortable = self._sortable_fields()
        orders = [
            sortable[field].desc() if is_desc else sortable[field].asc()
            for field, is_desc in parse_sort_tokens(tokens)
            if field in sortable
        ]
        if orders:
            stmt = stmt.order_by(*orders)
        pk_attr = self._pk_attr()
        if pk_attr is not None:
            stmt = stmt.order_by(pk_attr.asc())
        return stmt

    # --------------------------------- CRUD ----------------------------------

    def add(self, instance: E) -> E:
        """Stage a new entity and flush to materialize the PK.

        :param instance: New entity instance.
        :type instance: E
        :returns: The same instance after ``flush()``.
        :rtype: E
        """
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """Retrieve a single entity by primary key.

        :param entity_id: Primary-key value.
        :type entity_id: Any
        :returns: Entity or ``None``.
        :rtype: E | None
        """
        pk_attr = self._pk_attr()
        if pk_attr is None:
            raise RuntimeError("BaseRepository.get requires a detectable PK attribute.")
        stmt = select(self.model).where(pk_attr == entity_id)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def find_one(self, **filters: Any) -> E | None:
        stmt = self._apply_equality_filters(select(self.model), filters)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def exists(self, **filters: Any) -> bool:
        """Check existence for whitelisted equality filters."""
        stmt = self._apply_equality_filters(select(func.count()).select_from(self.model), filters)
        return bool(self.session.execute(stmt).scalar())

    def delete(self, instance: E) -> None:
        self.session.delete(instance)
        self.flush()

    def flush(self) -> None:
        self.session.flush()

    def update(self, instance: E, **fields: Any) -> E:
        """Assign whitelisted fields to ``instance`` and flush.

        :param instance: Entity to mutate.
        :type instance: E
        :param fields: Public mapping of fields to assign.
        :type fields: Any
        :returns: The mutated instance.
        :rtype: E
        :raises ValueError: If any key is not whitelisted.
        """
        allowed = self._updatable_fields()
        unknown = [k for k in fields if k not in allowed]
        if unknown:
            raise ValueError(f"Unknown or non-updatable fields: {unknown}")
        for key, value in fields.items():
            setattr(instance, key, value)
        self.flush()
        return instance

    def list(
        self,
        *,
        filters: Mapping[str, Any] | None = None,
        sort: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[E]:
        """List entities with whitelisted filtering and stable sorting.

        :param filters: Equality filters (public keys).
        :type filters: Mapping[str, Any] | None
        :param sort: Public sort tokens (e.g., ``["-created_at"]``).
        :type sort: Iterable[str] | None
        :param limit: Optional limit.
        :type limit: int | None
        :rtype: list[E]
        """
        stmt = self._apply_equality_filters(select(self.model), filters)
        stmt = self._apply_sorting(stmt, sort or [])
        if limit is not None:
            stmt = stmt.limit(int(limit))
        return cast(list[E], list(self.session.execute(stmt).scalars().all()))
