# certverify/schemas/user.py
from __future__ import annotations
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field

RoleName = Literal["admin", "recipient"]

class UserBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    role: RoleName = "recipient"
    status: str = "active"

class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=128)

class UserUpdate(BaseModel):
    name: Optional[str] = None
    status: Optional[Literal["active", "disabled"]] = None
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    role: Optional[RoleName] = None

class UserOut(BaseModel):
    id: int
    name: str
    email: str          # str: e-mails de seed (admin@mtn.cm etc.) não passam sempre no EmailStr
    role: str
    status: Optional[str] = None

    model_config = {"from_attributes": True}
