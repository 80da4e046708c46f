"""Module: api."""

# backend/medalert/api/v1/api.py
from fastapi import APIRouter

# Operational routes.
from medalert.api.v1.routes.health import router as health_router
from medalert.api.v1.routes.sweep import router as sweep_router

# Domain routes.
from medalert.api.v1.routes.users import router as users_router
from medalert.api.v1.routes.medications import router as medications_router
from medalert.api.v1.routes.doses import router as doses_router
from medalert.api.v1.routes.inventory import router as inventory_router
from medalert.api.v1.routes.streaks import router as streaks_router
from medalert.api.v1.routes.notifications import router as notifications_router


api_router = APIRouter()

# Register operational endpoints first for service-level concerns.
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(sweep_router, prefix="/sweep", tags=["sweep"])

# Register domain endpoints; medication sub-resources share the /medications prefix.
api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(medications_router, prefix="/medications", tags=["medications"])
api_router.include_router(inventory_router, prefix="/medications", tags=["inventory"])
api_router.include_router(notifications_router, prefix="/medications", tags=["notifications"])
api_router.include_router(doses_router, prefix="/doses", tags=["doses"])
api_router.include_router(streaks_router, tags=["streaks"])
