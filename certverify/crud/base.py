from typing import TypeVar, Generic, Type, Any, Optional, Dict
from sqlalchemy.orm import Session
from pydantic import BaseModel
from certverify.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchema = TypeVar("CreateSchema", bound=BaseModel)
UpdateSchema = TypeVar("UpdateSchema", bound=BaseModel)

class CRUDBase(Generic[ModelType, CreateSchema, UpdateSchema]):
    def __init__(self, model: Type[ModelType]): self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return db.get(self.model, id)

    def update(self, db: Session, db_obj: ModelType, obj_in: UpdateSchema | Dict[str, Any]) -> ModelType:
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for f,v in data.items(): setattr(db_obj, f, v)
        db.add(db_obj); db.commit(); db.refresh(db_obj)
        return db_obj
