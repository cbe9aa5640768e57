from fastapi import APIRouter

from fintable.api.routes import sessions

api_router = APIRouter()

api_router.include_router(sessions.router, prefix="/sessions", tags=["Sessions"])

__all__ = ["api_router"]
