# certverify/api/v1/router.py
from fastapi import APIRouter
from certverify.api.v1 import auth, certificates, me, reports, users

api_router = APIRouter()

api_router.include_router(auth.router,         prefix="/auth",         tags=["auth"])
api_router.include_router(certificates.router, prefix="/certificates", tags=["certificates"])
api_router.include_router(me.router,           prefix="/me",           tags=["dashboard"])
api_router.include_router(users.router,        prefix="/users",        tags=["users"])
api_router.include_router(reports.router,      prefix="/reports",      tags=["reports"])
