"""API v1 router combining all endpoints."""

from fastapi import APIRouter

from cricsim.api.v1 import match

api_router = APIRouter()

api_router.include_router(match.router, prefix="/match", tags=["Match Simulation"])
