"""
Base Store.

Shared infrastructure for all entity stores:
- Session reference (injected per request by ``get_db``)
- Lookup helpers raising ``NotFound``
- Patch-based updates from pydantic models
- Offset pagination with clamped page size
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.core.config import settings
from app.core.exceptions import Conflict, NotFound, StorageError

logger = logging.getLogger("stores")

ModelT = TypeVar("ModelT")


@dataclass
class Page(Generic[ModelT]):
    """One page of a listing."""

    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> dict:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
        }


def clamp_pagination(page: Optional[int], page_size: Optional[int]) -> tuple[int, int]:
    """Normalize a 1-indexed page number and bound the page size to 1..MAX_PAGE_SIZE."""
    page = max(int(page or 1), 1)
    if page_size is None:
        page_size = settings.DEFAULT_PAGE_SIZE
    page_size = min(max(int(page_size), 1), settings.MAX_PAGE_SIZE)
    return page, page_size


def commit_or_raise(db: Session, operation: str, conflict_message: Optional[str] = None) -> None:
    """
    Commit the session, translating datastore failures into domain errors.

    Unique and check violations become ``Conflict``. A dangling foreign key
    and any other failure are rolled back, logged with the operation name and
    surfaced as ``StorageError``.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if "foreign key" in str(exc.orig).lower():
            logger.error(f"Foreign key violation during {operation}: {exc.orig}")
            raise StorageError()
        logger.warning(f"Integrity violation during {operation}")
        raise Conflict(conflict_message)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Storage failure during {operation}")
        raise StorageError()


class BaseStore(Generic[ModelT]):
    """Base class for all stores. Receives the session via __init__."""

    model: Type[ModelT]
    entity_name: str = "Resource"

    def __init__(self, db: Session) -> None:
        self.db = db

    def query(self) -> Query:
        return self.db.query(self.model)

    def get(self, entity_id: int) -> Optional[ModelT]:
        return self.db.get(self.model, entity_id)

    def find_by_id(self, entity_id: int) -> ModelT:
        entity = self.get(entity_id)
        if entity is None:
            raise NotFound(f"{self.entity_name} not found")
        return entity

    def create(self, fields: dict) -> ModelT:
        """Insert a row and flush so the generated id is available."""
        entity = self.model(**fields)
        self.db.add(entity)
        self.db.flush()
        return entity

    def update(self, entity_id: int, patch: Union[BaseModel, dict]) -> bool:
        """
        Apply a partial update.

        Only fields explicitly set on the patch model are written. Returns
        False when the row does not exist.
        """
        entity = self.get(entity_id)
        if entity is None:
            return False
        self.apply(entity, patch)
        return True

    def apply(self, entity: ModelT, patch: Union[BaseModel, dict]) -> ModelT:
        changes: dict[str, Any] = (
            patch.model_dump(exclude_unset=True) if isinstance(patch, BaseModel) else dict(patch)
        )
        for key, value in changes.items():
            setattr(entity, key, value)
        self.db.flush()
        return entity

    def delete(self, entity_id: int) -> bool:
        entity = self.get(entity_id)
        if entity is None:
            return False
        self.db.delete(entity)
        self.db.flush()
        return True

    def paginate(
        self,
        query: Optional[Query] = None,
        page: Optional[int] = 1,
        page_size: Optional[int] = None,
        order_by: Any = None,
    ) -> Page:
        """Offset pagination; newest first unless ``order_by`` is given."""
        page, page_size = clamp_pagination(page, page_size)
        query = query if query is not None else self.query()

        total = query.order_by(None).count()
        if order_by is None:
            order_by = (self.model.created_at.desc(), self.model.id.desc())
        if not isinstance(order_by, (list, tuple)):
            order_by = (order_by,)

        items = query.order_by(*order_by).offset((page - 1) * page_size).limit(page_size).all()
        return Page(items=items, total=total, page=page, limit=page_size)
