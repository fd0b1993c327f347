from fastapi import APIRouter

from .endpoints import dropshipping, health

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(dropshipping.router)
