"""Admin API (HR/ADMIN)."""
from fastapi import APIRouter
from app.api.v1.admin import auto_logout as admin_auto_logout

admin_router = APIRouter(prefix="/admin", tags=["admin"])
admin_router.include_router(admin_auto_logout.router, prefix="/auto-logout", tags=["admin-auto-logout"])
