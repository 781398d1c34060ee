from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from certverify.core.security_password import hash_password
from certverify.crud.base import CRUDBase
from certverify.models.user import ROLE_RECIPIENT, User
from certverify.schemas.user import UserCreate, UserUpdate


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):
    def create(self, db: Session, obj_in: UserCreate, extra=None) -> User:
        data = obj_in.model_dump()
        data["email"] = normalize_email(data["email"])
        data["hashed_password"] = hash_password(data.pop("password"))
        if extra: data.update(extra)
        user = User(**data)
        db.add(user); db.commit(); db.refresh(user)
        return user

    def update(self, db: Session, db_obj: User, obj_in) -> User:
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        if data.get("password"):
            data["hashed_password"] = hash_password(data.pop("password"))
        else:
            data.pop("password", None)
        return super().update(db, db_obj, data)

    def get_by_email(self, db: Session, email: str) -> User | None:
        return db.execute(select(User).where(User.email == normalize_email(email))).scalar_one_or_none()

    def list(self, db: Session, *, role: Optional[str] = None, skip=0, limit=100) -> List[User]:
        stmt = select(User).order_by(User.id)
        if role:
            stmt = stmt.where(User.role == role)
        return db.execute(stmt.offset(skip).limit(limit)).scalars().all()

    def recipient_name(self, db: Session, user_id: int) -> Optional[str]:
        """Nome do destinatário ativo, ou None se não existir."""
        user = db.get(User, user_id)
        if not user or user.role != ROLE_RECIPIENT or user.status != "active":
            return None
        return user.name

    def count_recipients(self, db: Session) -> int:
        return db.execute(select(func.count(User.id)).where(User.role == ROLE_RECIPIENT)).scalar_one()

user_crud = CRUDUser(User)
