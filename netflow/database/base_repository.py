# netflow/database/base_repository.py

from typing import TypeVar, Generic, Type, Optional, Any

from sqlalchemy.orm import Session

from ..core.logging import NetflowLogger


T = TypeVar('T')


class BaseRepository(Generic[T]):
    def __init__(self, db_manager, model_class: Type[T]):
        self.db_manager = db_manager
        self.model_class = model_class
        self.logger = NetflowLogger.get_logger(f'database.repository.{model_class.__name__.lower()}')

    def get(self, session: Session, key: Any) -> Optional[T]:
        try:
            return session.get(self.model_class, key)
        except Exception as e:
            self.logger.error(f"Error getting {self.model_class.__name__} by key {key}: {e}")
            raise

    def insert_statement(self, session: Session):
        """Dialect-specific INSERT supporting ON CONFLICT."""
        if session.get_bind().dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        return insert(self.model_class.__table__)
