# Sessionvault API routers
from sessionvault.api.auth import router as auth_router
from sessionvault.api.health import router as health_router

__all__ = ["auth_router", "health_router"]
