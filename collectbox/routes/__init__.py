"""API routers, mounted by the app factory under /api/v1."""

from fastapi import APIRouter

from collectbox.routes import admin, collections, forms, uploads

api_router = APIRouter()
api_router.include_router(collections.router)
api_router.include_router(admin.router)
api_router.include_router(forms.router)
api_router.include_router(uploads.router)

__all__ = ["api_router"]
