"""API router aggregation."""

from fastapi import APIRouter

from civicconnect.api.v1.routes import auth, categories, health, location, media, reports, users

# Mounted under /api
api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(auth.router, tags=["Auth"])
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
api_router.include_router(categories.router, prefix="/categories", tags=["Categories"])

# Mounted at the root, matching the paths the mobile client calls
root_router = APIRouter()

root_router.include_router(users.router, prefix="/users", tags=["Users"])
root_router.include_router(media.router, tags=["Media"])
root_router.include_router(location.router, prefix="/location", tags=["Location"])
