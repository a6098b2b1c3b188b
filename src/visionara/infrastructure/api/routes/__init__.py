"""API routes for Visionara."""

from visionara.infrastructure.api.routes.auth_router import router as auth_router
from visionara.infrastructure.api.routes.password_router import router as password_router
from visionara.infrastructure.api.routes.profile_router import router as profile_router
from visionara.infrastructure.api.routes.roles_router import router as roles_router
from visionara.infrastructure.api.routes.users_router import router as users_router

__all__ = [
    "auth_router",
    "password_router",
    "profile_router",
    "roles_router",
    "users_router",
]
