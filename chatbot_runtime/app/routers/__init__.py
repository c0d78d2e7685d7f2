"""API routers."""
from app.routers.api_health_router import router as api_health_router
from app.routers.health_router import router as health_router
from app.routers.public_chat_router import router as public_chat_router

__all__ = [
    "api_health_router",
    "health_router",
    "public_chat_router",
]
