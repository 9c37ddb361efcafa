# extract_builder/core/base_dao.py
"""Generic base DAO for common database operations."""

from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from extract_builder.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """Generic DAO for common database operations."""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def get_all(self, skip: int = 0, limit: int = 100, order_by: Optional[str] = None, **filters) -> List[ModelType]:
        """Get all records with optional filtering."""
        query = select(self.model)

        filter_conditions = [
            getattr(self.model, key) == value
            for key, value in filters.items()
            if hasattr(self.model, key) and value is not None
        ]
        if filter_conditions:
            query = query.where(and_(*filter_conditions))

        if order_by and hasattr(self.model, order_by):
            query = query.order_by(getattr(self.model, order_by))

        query = query.offset(skip).limit(limit)
        result = self.db.execute(query)
        return list(result.scalars().all())

    def get_by_id(self, id: int) -> Optional[ModelType]:
        """Get record by ID."""
        return self.db.get(self.model, id)

    def get_all_by_field(self, field_name: str, value: Any, order_by: Optional[str] = None) -> List[ModelType]:
        """Get all records by field value."""
        if not hasattr(self.model, field_name):
            return []

        query = select(self.model).where(getattr(self.model, field_name) == value)
        if order_by and hasattr(self.model, order_by):
            query = query.order_by(getattr(self.model, order_by))
        result = self.db.execute(query)
        return list(result.scalars().all())

    def create(self, **data) -> ModelType:
        """Create new record."""
        db_obj = self.model(**data)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def count(self, **filters) -> int:
        """Count records with optional filtering."""
        query = select(func.count(self.model.id))

        filter_conditions = [
            getattr(self.model, key) == value
            for key, value in filters.items()
            if hasattr(self.model, key) and value is not None
        ]
        if filter_conditions:
            query = query.where(and_(*filter_conditions))

        result = self.db.execute(query)
        return result.scalar()
