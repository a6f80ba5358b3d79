"""
API router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.routes.ring import router as ring_router
from api.routes.votings import router as votings_router

router = APIRouter()

router.include_router(votings_router, prefix="/vote", tags=["Votes"])
router.include_router(ring_router, prefix="/vote", tags=["Ring"])
