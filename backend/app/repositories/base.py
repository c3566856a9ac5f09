"""
Base Repository — Repository Pattern (GoF)

Generic CRUD over one ORM model. Subclasses add the query methods their
service needs. Connection-level failures are rolled back and re-raised as
``TransientPersistenceException`` so the retry policy can see them; every
other database error propagates unchanged.
"""
from contextlib import contextmanager
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from app.core.exceptions import TransientPersistenceException
from app.database import Base

T = TypeVar("T", bound=Base)


def is_transient_error(exc: BaseException) -> bool:
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


class BaseRepository(Generic[T]):

    def __init__(self, model: Type[T], db: Session):
        self.model = model
        self.db = db

    @contextmanager
    def transient_guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except DBAPIError as exc:
            if not is_transient_error(exc):
                raise
            self.db.rollback()
            raise TransientPersistenceException(operation, exc) from exc

    def get_by_id(self, entity_id: int) -> Optional[T]:
        with self.transient_guard(f"{self.model.__tablename__}.get"):
            return self.db.query(self.model).filter(self.model.id == entity_id).first()

    def get_all(self) -> List[T]:
        return self.db.query(self.model).order_by(self.model.id).all()

    def list_paginated(self, page: int = 1, page_size: int = 20) -> Tuple[List[T], int]:
        q = self.db.query(self.model)
        total = q.count()
        items = q.order_by(self.model.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
        return items, total

    def create(self, obj: T) -> T:
        with self.transient_guard(f"{self.model.__tablename__}.create"):
            self.db.add(obj)
            self.db.commit()
            self.db.refresh(obj)
            return obj

    def update(self, obj: T, updates: Dict[str, Any]) -> T:
        with self.transient_guard(f"{self.model.__tablename__}.update"):
            for key, value in updates.items():
                if hasattr(obj, key):
                    setattr(obj, key, value)
            self.db.commit()
            self.db.refresh(obj)
            return obj

    def delete(self, obj: T) -> None:
        self.db.delete(obj)
        self.db.commit()
