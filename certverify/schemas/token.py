# certverify/schemas/token.py
from pydantic import BaseModel, Field
from certverify.schemas.user import UserOut

class LoginIn(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

class RefreshIn(BaseModel):
    refresh_token: str

class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut
