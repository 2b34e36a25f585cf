from fastapi import APIRouter

from .endpoints import (
    bag_lifts,
    health,
    observability,
    rewards,
)

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(rewards.router)
router.include_router(bag_lifts.router)
router.include_router(observability.router)
