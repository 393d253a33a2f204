"""Base repository for owner-scoped, ordered, soft-deletable drive items.

Folders, files and documents share the same shape: an owner, a container
column (``parent_id`` for folders, ``folder_id`` otherwise), an integer
``sort_order`` among siblings, and a ``deleted_at`` soft-delete marker.
This base owns the queries that depend only on that shape:

- ``_base_query()`` excludes soft-deleted rows, so every lookup, listing,
  ordering computation and move/reorder validation ignores the trash.
- ``get_owned()`` conflates "missing" and "owned by someone else" into the
  subclass's not-found error.
- ``next_sort_order()`` / ``apply_order()`` implement sibling ordering.

Subclasses set ``model_class``, ``container_column`` and ``not_found_error``.
"""

from datetime import datetime, timezone
from typing import Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session

from ..database import Base
from ..exceptions import OpenDeskError

ModelT = TypeVar("ModelT", bound=Base)


class OwnedRepository(Generic[ModelT]):
    """Shared repository logic for owner-scoped drive items."""

    model_class: Type[ModelT]
    container_column: str = "folder_id"
    not_found_error: Type[OpenDeskError]

    def __init__(self, db: Session):
        self.db = db

    @property
    def _container(self):
        return getattr(self.model_class, self.container_column)

    def _base_query(self) -> Query:
        """Active (non-deleted) rows only."""
        return self.db.query(self.model_class).filter(self.model_class.deleted_at.is_(None))

    def _owned_query(self, owner_id: str) -> Query:
        return self._base_query().filter(self.model_class.owner_id == owner_id)

    def _in_container(self, query: Query, container_id: Optional[str]) -> Query:
        # NULL container means the owner's root; "= NULL" would match nothing.
        if container_id is None:
            return query.filter(self._container.is_(None))
        return query.filter(self._container == container_id)

    def get_owned_optional(self, owner_id: str, entity_id: str) -> Optional[ModelT]:
        return self._owned_query(owner_id).filter(self.model_class.id == entity_id).first()

    def get_owned(self, owner_id: str, entity_id: str) -> ModelT:
        """Get an active row owned by *owner_id*. Raises not_found_error otherwise."""
        entity = self.get_owned_optional(owner_id, entity_id)
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity

    def get_by_id_including_deleted(self, entity_id: str) -> Optional[ModelT]:
        return self.db.query(self.model_class).filter(self.model_class.id == entity_id).first()

    def list_in_container(self, owner_id: str, container_id: Optional[str]) -> List[ModelT]:
        """Active rows in a container: sort_order ascending, most recently updated first on ties."""
        query = self._in_container(self._owned_query(owner_id), container_id)
        return query.order_by(
            self.model_class.sort_order.asc(),
            self.model_class.updated_at.desc(),
        ).all()

    def next_sort_order(self, owner_id: str, container_id: Optional[str]) -> int:
        """``max(sort_order) + 1`` over the container's active rows; 1 when empty.

        Computed at the moment of the write with no reservation. Two
        concurrent writers may get the same value; listing order then falls
        back to ``updated_at``.
        """
        query = self.db.query(func.max(self.model_class.sort_order)).filter(
            self.model_class.owner_id == owner_id,
            self.model_class.deleted_at.is_(None),
        )
        query = self._in_container(query, container_id)
        current_max = query.scalar()
        return (current_max or 0) + 1

    def count_owned_in_container(
        self, owner_id: str, container_id: Optional[str], entity_ids: Sequence[str]
    ) -> int:
        """Count active rows among *entity_ids* owned by *owner_id* inside the container."""
        if not entity_ids:
            return 0
        query = self._in_container(self._owned_query(owner_id), container_id)
        return query.filter(self.model_class.id.in_(list(entity_ids))).count()

    def apply_order(self, owner_id: str, ordered_ids: Sequence[str]) -> None:
        """Set ``sort_order = position + 1`` for each id in one UPDATE statement.

        Does not commit; the caller owns the transaction.
        """
        if not ordered_ids:
            return
        positions = {entity_id: index + 1 for index, entity_id in enumerate(ordered_ids)}
        self.db.flush()
        (
            self.db.query(self.model_class)
            .filter(
                self.model_class.owner_id == owner_id,
                self.model_class.id.in_(list(positions)),
            )
            .update(
                {self.model_class.sort_order: case(positions, value=self.model_class.id)},
                synchronize_session=False,
            )
        )
        self.db.expire_all()

    def move_to(self, entity: ModelT, container_id: Optional[str]) -> ModelT:
        """Re-parent *entity* and append it after the target's last sibling."""
        new_order = self.next_sort_order(entity.owner_id, container_id)
        setattr(entity, self.container_column, container_id)
        entity.sort_order = new_order
        self.db.flush()
        self.db.refresh(entity)
        return entity

    def soft_delete(self, entity: ModelT, when: Optional[datetime] = None) -> ModelT:
        entity.deleted_at = when or datetime.now(timezone.utc)
        self.db.flush()
        self.db.refresh(entity)
        return entity

    def expired(self, cutoff: datetime) -> List[ModelT]:
        """Soft-deleted rows whose deletion predates *cutoff*."""
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.deleted_at.isnot(None))
            .filter(self.model_class.deleted_at < cutoff)
            .all()
        )

    def owned_in_containers(self, owner_id: str, container_ids: Sequence[str]) -> List[ModelT]:
        """Active rows owned by *owner_id* whose container is one of *container_ids*."""
        if not container_ids:
            return []
        return self._owned_query(owner_id).filter(self._container.in_(list(container_ids))).all()

    def mark_deleted(self, rows: Sequence[ModelT], when: datetime) -> int:
        """Stamp *rows* with one ``deleted_at``. Flushes, does not commit."""
        for row in rows:
            row.deleted_at = when
        self.db.flush()
        return len(rows)

    def get_many_owned(self, owner_id: str, entity_ids: Sequence[str]) -> List[ModelT]:
        if not entity_ids:
            return []
        return self._owned_query(owner_id).filter(self.model_class.id.in_(list(entity_ids))).all()

    def purge(self, entity_ids: Sequence[str]) -> int:
        """Physically delete rows by id in one statement. Does not commit.

        Returns ``len(entity_ids)``; the driver row count leaves out rows
        removed by ON DELETE CASCADE.
        """
        if not entity_ids:
            return 0
        (
            self.db.query(self.model_class)
            .filter(self.model_class.id.in_(list(entity_ids)))
            .delete(synchronize_session=False)
        )
        return len(entity_ids)
