"""
API router aggregating all route modules.
"""

from fastapi import APIRouter

from app.api.routes import health, auth, acceptance, messages

router = APIRouter()

# Include all route modules
router.include_router(health.router, prefix="/health", tags=["Health"])
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(acceptance.router, prefix="/accept-messages", tags=["Acceptance"])
router.include_router(messages.router, prefix="/messages", tags=["Messages"])
