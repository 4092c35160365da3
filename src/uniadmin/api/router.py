"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from uniadmin.api.routes import auth, health, hierarchy, org_units

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router)
api_router.include_router(org_units.router)
api_router.include_router(hierarchy.router)
