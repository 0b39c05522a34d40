from fastapi import APIRouter

from opsdesk.api.admin import router as admin_router
from opsdesk.api.auth import router as auth_router
from opsdesk.api.cron import router as cron_router
from opsdesk.api.deadlines import router as deadlines_router
from opsdesk.api.magazine import router as magazine_router
from opsdesk.api.sla import router as sla_router
from opsdesk.api.templates import router as templates_router
from opsdesk.api.texas_authors import router as texas_authors_router
from opsdesk.api.users import router as users_router
from opsdesk.api.work_items import router as work_items_router

api_router = APIRouter()

# Auth routes at /auth/*
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])

# API routes at /api/*
api_router.include_router(users_router, prefix="/api", tags=["users"])
api_router.include_router(work_items_router, prefix="/api", tags=["work-items"])
api_router.include_router(templates_router, prefix="/api", tags=["templates"])
api_router.include_router(magazine_router, prefix="/api", tags=["magazine"])
api_router.include_router(texas_authors_router, prefix="/api", tags=["texas-authors"])
api_router.include_router(deadlines_router, prefix="/api", tags=["deadlines"])
api_router.include_router(sla_router, prefix="/api", tags=["sla"])
api_router.include_router(admin_router, prefix="/api", tags=["admin"])
api_router.include_router(cron_router, prefix="/api", tags=["cron"])
