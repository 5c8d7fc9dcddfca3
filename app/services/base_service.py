"""
Shared persistence helpers for the directory services (customers, packages).

Lookups raise FileNotFoundError for a missing row, which the API layer
turns into a 404. Failed writes roll the session back and surface as
ValueError (400).
"""
from typing import Any, Dict, Generic, Type, TypeVar

from sqlmodel import Session, SQLModel

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseCRUDService(Generic[ModelType]):
    def __init__(self, session: Session, model: Type[ModelType]):
        self.session = session
        self.model = model

    def get_by_id(self, record_id: Any) -> ModelType:
        record = self.session.get(self.model, record_id)
        if record is None:
            raise FileNotFoundError(f"{self.model.__name__} {record_id} not found.")
        return record

    def _save(self, record: ModelType, action: str) -> ModelType:
        try:
            self.session.add(record)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise ValueError(f"Error {action} {self.model.__name__}: {e}")
        self.session.refresh(record)
        return record

    def create(self, data: Dict[str, Any]) -> ModelType:
        return self._save(self.model(**data), "creating")

    def update(self, record_id: Any, data: Dict[str, Any]) -> ModelType:
        """Set the given fields. The primary key and unknown keys are ignored."""
        if not data:
            raise ValueError("No fields to update provided.")

        record = self.get_by_id(record_id)
        for key, value in data.items():
            if key != "id" and hasattr(record, key):
                setattr(record, key, value)
        return self._save(record, "updating")
