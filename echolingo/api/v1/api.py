"""API router for version 1."""
from fastapi import APIRouter

from echolingo.api.v1.endpoints import (
    admin,
    auth,
    health,
    news,
    providers,
    translate,
    tts,
    user_data,
)


api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(providers.router)
api_router.include_router(user_data.router)
api_router.include_router(admin.router)
api_router.include_router(news.router)
api_router.include_router(translate.router)
api_router.include_router(tts.router)
