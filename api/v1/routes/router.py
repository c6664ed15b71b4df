from fastapi import APIRouter

from api.v1.routes import (
    health,
)
from packages.billing.routes import subscriptions, usage, webhooks
from packages.directory.routes import users
from packages.directory.routes.members import (
    admin_router,
    district_router,
    employer_router,
    employer_staff_router,
    members_router,
    parents_router,
    staff_router,
)

api_router = APIRouter()

# Health check (no auth required)
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Webhooks (no auth - signature verified internally)
api_router.include_router(webhooks.router, tags=["webhooks"])

# Profiles (auth per endpoint; signup runs before a profile exists)
api_router.include_router(users.router, prefix="/users", tags=["users"])

# Member management (auth per endpoint; creates also require an active subscription)
api_router.include_router(parents_router, prefix="/parents", tags=["parents"])
api_router.include_router(admin_router, prefix="/admin", tags=["school-admin"])
api_router.include_router(staff_router, prefix="/staff", tags=["school-staff"])
api_router.include_router(district_router, prefix="/district", tags=["district"])
api_router.include_router(employer_router, prefix="/employer", tags=["employer"])
api_router.include_router(
    employer_staff_router, prefix="/employer-staff", tags=["employer-staff"]
)
api_router.include_router(members_router, prefix="/members", tags=["members"])

# Billing (catalog is public, everything else requires a profile)
api_router.include_router(
    subscriptions.router, prefix="/subscriptions", tags=["subscriptions"]
)
api_router.include_router(usage.router, prefix="/usage", tags=["usage"])
