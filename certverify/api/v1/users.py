# certverify/api/v1/users.py
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from certverify.api.deps import get_db
from certverify.core.errors import NotFound
from certverify.core.rbac import require_roles
from certverify.crud.user import user_crud
from certverify.schemas.user import RoleName, UserCreate, UserOut, UserUpdate

router = APIRouter(dependencies=[Depends(require_roles("admin"))])


@router.post("/", response_model=UserOut, status_code=201)
def create_user(body: UserCreate, db: Session = Depends(get_db)):
    if user_crud.get_by_email(db, body.email):
        raise HTTPException(409, detail="E-mail already registered")
    return UserOut.model_validate(user_crud.create(db, body))


@router.get("/", response_model=List[UserOut])
def list_users(
    role: Optional[RoleName] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return [UserOut.model_validate(u) for u in user_crud.list(db, role=role, skip=skip, limit=limit)]


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    u = user_crud.get(db, user_id)
    if not u:
        raise NotFound("User not found")
    return UserOut.model_validate(u)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(body: UserUpdate, user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    u = user_crud.get(db, user_id)
    if not u:
        raise NotFound("User not found")
    return UserOut.model_validate(user_crud.update(db, u, body))
