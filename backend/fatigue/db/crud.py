"""
CRUD operations for database models.
"""
from typing import TypeVar, Generic, Type, List, Optional, Dict, Any, Union
from sqlalchemy.orm import Session
from sqlalchemy import select
from pydantic import BaseModel

from fatigue.core.engine import RunResult
from fatigue.models.analysis_run import AnalysisRun

ModelType = TypeVar("ModelType")
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType]):
    """Base CRUD operations with default methods."""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: int) -> Optional[ModelType]:
        return db.get(self.model, id)

    def get_multi(
        self,
        db: Session,
        skip: int = 0,
        limit: int = 100
    ) -> List[ModelType]:
        """
        Get multiple records with pagination, newest first.

        Args:
            db: Database session
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of model instances
        """
        stmt = select(self.model).order_by(self.model.id.desc()).offset(skip).limit(limit)
        return list(db.execute(stmt).scalars().all())

    def create(
        self,
        db: Session,
        obj_in: Union[CreateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        """
        Create a new record.

        Args:
            db: Database session
            obj_in: Pydantic schema or dict with creation data

        Returns:
            Created model instance
        """
        obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        db_obj = self.model(**obj_in_data)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj


class CRUDAnalysisRun(CRUDBase[AnalysisRun, BaseModel]):
    """Persistence of fatigue run outcomes."""

    def create_from_result(self, db: Session, config_path: str, result: RunResult) -> AnalysisRun:
        record = result.to_record()
        return self.create(db, {
            "name": result.name,
            "config_path": config_path,
            "status": result.status,
            "governing_node": record["governing_node"],
            "total_damage": record["total_damage"],
            "life": record["life"],
            "result": record,
        })

    def create_failed(self, db: Session, name: str, config_path: str, error: str) -> AnalysisRun:
        return self.create(db, {
            "name": name,
            "config_path": config_path,
            "status": "failed",
            "error": error,
        })


analysis_run_crud = CRUDAnalysisRun(AnalysisRun)
