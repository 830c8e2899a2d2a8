"""Dense, zero-based ordering of categories, tasks and subtasks.

An ordered scope is the set of documents that share one parent: the
categories of a workspace, the top-level tasks of a category, or the subtasks
of a task. Within a scope positions are always exactly ``0..n-1``. Every
method here keeps that true, and each one runs inside a single transaction
while holding the scope locks (when a lock provider is configured).

Uncategorized top-level tasks form an unordered scope: their position is
kept but never shifted.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence
import logging
import uuid

from mongoengine import Document
from mongoengine.errors import DoesNotExist
from pymongo.client_session import ClientSession

from workboard.core.errors import AppError
from workboard.db.database import Database, save_document, delete_document, update_matching
from workboard.db.redis_db import RedisStore, ScopeLockTimeout
from workboard.db.models.category_model_db import Category as CategoryDBModel
from workboard.db.models.task_model_db import Task as TaskDBModel

logger = logging.getLogger(__name__)

LOCK_BUSY_MESSAGE = "Another reorder is in progress, please retry"
# Passes through move/remove before a document that keeps changing scope is a conflict
SCOPE_ATTEMPTS = 3


class Scope:
    """One ordered collection: documents of ``model`` whose ``field`` is ``owner``."""

    def __init__(self, model, kind: str, field: str, owner: Optional[Document], extra: Optional[dict] = None):
        self.model = model
        self.kind = kind
        self.field = field
        self.owner = owner
        self.extra = extra or {}

    @property
    def owner_id(self) -> Optional[uuid.UUID]:
        return self.owner.id if self.owner is not None else None

    @property
    def is_ordered(self) -> bool:
        return self.owner is not None

    @property
    def lock_key(self) -> str:
        return f"{self.kind}:{self.owner_id}"

    def query(self, **filters):
        return self.model.objects(**{self.field: self.owner}, **self.extra, **filters)

    def assign(self, document: Document) -> None:
        setattr(document, self.field, self.owner)

    def __eq__(self, other) -> bool:
        return isinstance(other, Scope) and (self.kind, self.owner_id) == (other.kind, other.owner_id)

    def __hash__(self):
        return hash((self.kind, self.owner_id))

    def __repr__(self):
        return f"Scope({self.kind}={self.owner_id})"


def category_scope(workspace) -> Scope:
    return Scope(CategoryDBModel, "workspace", "workspace", workspace)


def task_scope(category) -> Scope:
    # Subtasks carry their own ordering and never count toward a category's
    return Scope(TaskDBModel, "category", "category", category, extra={"parent_task": None})


def subtask_scope(parent_task) -> Scope:
    return Scope(TaskDBModel, "parent", "parent_task", parent_task)


def scope_of_task(task: TaskDBModel) -> Scope:
    if task.parent_task_id is not None:
        return subtask_scope(task.parent_task)
    return task_scope(task.category if task.category_id is not None else None)


class PositionManager:
    def __init__(self, db: Database, locks: Optional[RedisStore] = None):
        self.db = db
        self.locks = locks

    @contextmanager
    def locked(self, *scopes: Scope, name: str = "position update") -> Iterator[Optional[ClientSession]]:
        """Hold the scope locks, then open a transaction for the enclosed writes."""
        keys = [s.lock_key for s in scopes if s.is_ordered]
        if self.locks is None or not keys:
            with self.db.transaction(name) as session:
                yield session
            return
        try:
            with self.locks.scope_locks(keys):
                with self.db.transaction(name) as session:
                    yield session
        except ScopeLockTimeout as e:
            raise AppError.conflict(LOCK_BUSY_MESSAGE, internal_message=str(e))

    def next_position(self, scope: Scope) -> int:
        if not scope.is_ordered:
            return 0
        last = scope.query().order_by('-position').only('position').first()
        return last.position + 1 if last is not None else 0

    def append(self, document: Document, scope: Scope) -> Document:
        """Insert ``document`` as the last entry of ``scope``."""
        with self.locked(scope, name=f"append {scope.kind}") as session:
            scope.assign(document)
            document.position = self.next_position(scope)
            save_document(document, session)
        return document

    def move(self, document: Document, target: Scope, index: int, apply: Optional[Callable[[Document], None]] = None) -> Document:
        """Place ``document`` at ``index`` of ``target``, closing the gap it leaves.

        ``index`` is clamped to the valid range of the target scope. ``apply``
        may change other fields of the freshly reloaded document; they are
        saved in the same transaction.
        """
        for _ in range(SCOPE_ATTEMPTS):
            source = self._current_scope(document)
            with self.locked(source, target, name=f"move {document.id}") as session:
                self._refresh(document)
                if self._current_scope(document) != source:
                    # Moved by another request before the locks were ours
                    continue
                if apply is not None:
                    apply(document)
                self._place(document, source, target, index, session, changed=apply is not None)
                return document
        raise AppError.conflict(LOCK_BUSY_MESSAGE, internal_message=f"{document.id} kept changing scope")

    def remove(self, document: Document, before_delete: Optional[Callable[[Optional[ClientSession]], None]] = None) -> None:
        """Delete ``document`` and shift its later siblings down by one.

        ``before_delete`` receives the transaction session so its writes
        commit or roll back with the delete.
        """
        for _ in range(SCOPE_ATTEMPTS):
            scope = self._current_scope(document)
            with self.locked(scope, name=f"delete {document.id}") as session:
                self._refresh(document)
                if self._current_scope(document) != scope:
                    continue
                old_position = document.position
                if before_delete is not None:
                    before_delete(session)
                delete_document(document, session)
                if scope.is_ordered:
                    update_matching(scope.query(position__gt=old_position), {"$inc": {"position": -1}}, session)
                return
        raise AppError.conflict(LOCK_BUSY_MESSAGE, internal_message=f"{document.id} kept changing scope")

    def reorder(self, scope: Scope, ordered_ids: Sequence[uuid.UUID]) -> None:
        """Assign position = list index to each id.

        Entries of the scope missing from ``ordered_ids`` keep their relative
        order and follow the listed ones.
        """
        ordered_ids = list(dict.fromkeys(ordered_ids))
        with self.locked(scope, name=f"reorder {scope}") as session:
            if scope.query(id__in=ordered_ids).count() != len(ordered_ids):
                raise AppError.conflict(LOCK_BUSY_MESSAGE, internal_message=f"reorder ids left {scope}")
            listed = set(ordered_ids)
            rest: List[uuid.UUID] = [d.id for d in scope.query().order_by('position').only('id') if d.id not in listed]
            for position, doc_id in enumerate(ordered_ids + rest):
                update_matching(scope.query(id=doc_id), {"$set": {"position": position}}, session)

    def _place(self, document: Document, source: Scope, target: Scope, index: int,
               session: Optional[ClientSession], changed: bool) -> None:
        old_position = document.position
        size = target.query(id__ne=document.id).count() if target.is_ordered else 0
        new_position = min(max(index, 0), size)

        if source == target:
            if new_position == old_position or not target.is_ordered:
                if changed:
                    save_document(document, session)
                return
            document.position = new_position
            save_document(document, session)
            if new_position > old_position:
                update_matching(target.query(id__ne=document.id, position__gt=old_position, position__lte=new_position),
                                {"$inc": {"position": -1}}, session)
            else:
                update_matching(target.query(id__ne=document.id, position__gte=new_position, position__lt=old_position),
                                {"$inc": {"position": 1}}, session)
            return

        # The moved document is written first with its final value, then
        # excluded by id from the shift of its new scope.
        target.assign(document)
        document.position = new_position
        save_document(document, session)
        if target.is_ordered:
            update_matching(target.query(id__ne=document.id, position__gte=new_position), {"$inc": {"position": 1}}, session)
        if source.is_ordered:
            update_matching(source.query(position__gt=old_position), {"$inc": {"position": -1}}, session)
        logger.info(f"Moved {document.id} from {source} to {target} at {new_position}")

    def _refresh(self, document: Document) -> None:
        try:
            document.reload()
        except DoesNotExist:
            raise AppError.not_found(f"{type(document).__name__} not found")

    def _current_scope(self, document: Document) -> Scope:
        if isinstance(document, CategoryDBModel):
            return category_scope(document.workspace)
        return scope_of_task(document)
